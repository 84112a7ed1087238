from __future__ import annotations

import logging
from dataclasses import replace

import pytest

from factories import make_position
from route_optimizer.models import OptimizationOptions
from route_optimizer.optimization.filters import (
    apply_filters,
    filter_by_accuracy,
    filter_by_speed,
    filter_by_time_interval,
)


def test_accuracy_filter_drops_imprecise_fixes_only() -> None:
    precise = make_position(45.0, 9.0, accuracy=12.0)
    boundary = make_position(45.001, 9.0, accuracy=100.0)
    noisy = make_position(45.002, 9.0, accuracy=450.0)
    unbounded = make_position(45.003, 9.0, accuracy=float("inf"))
    kept = filter_by_accuracy(
        [precise, boundary, noisy, unbounded], min_accuracy=100.0
    )
    assert kept == [precise, boundary]


@pytest.mark.parametrize("accuracy", [None, float("nan"), -5.0])
def test_accuracy_filter_fails_open(accuracy) -> None:
    unknown = make_position(45.0, 9.0, accuracy=accuracy)
    assert filter_by_accuracy([unknown], min_accuracy=1.0) == [unknown]


def test_speed_filter_drops_satellite_jumps() -> None:
    normal = make_position(45.0, 9.0, speed=120.0)
    jump = make_position(45.5, 9.5, speed=800.0)
    missing = make_position(45.001, 9.0, speed=None)
    infinite = make_position(45.002, 9.0, speed=float("inf"))
    kept = filter_by_speed([normal, jump, missing, infinite], max_speed=200.0)
    assert kept == [normal, missing]


def test_time_filter_keeps_minimum_spacing() -> None:
    offsets = [0, 10, 31, 45, 62]
    samples = [
        make_position(45.0 + i * 0.001, 9.0, seconds=s) for i, s in enumerate(offsets)
    ]
    kept = filter_by_time_interval(samples, min_time_interval=30000)
    assert kept == [samples[0], samples[2], samples[4]]


def test_time_filter_passes_samples_without_timestamp() -> None:
    first = make_position(45.0, 9.0, seconds=0)
    undated = replace(make_position(45.001, 9.0), timestamp=None)
    close = make_position(45.002, 9.0, seconds=20)
    later = make_position(45.003, 9.0, seconds=30)
    kept = filter_by_time_interval(
        [first, undated, close, later], min_time_interval=30000
    )
    # The undated sample does not reset the reference time.
    assert kept == [first, undated, later]


def test_time_filter_short_inputs_are_returned_unchanged() -> None:
    assert filter_by_time_interval([]) == []
    single = [make_position(45.0, 9.0)]
    assert filter_by_time_interval(single) == single


def test_apply_filters_respects_disabled_stages(
    caplog: pytest.LogCaptureFixture,
) -> None:
    samples = [
        make_position(45.0, 9.0, seconds=0, accuracy=500.0),
        make_position(45.001, 9.0, seconds=1, speed=900.0),
        make_position(45.002, 9.0, seconds=2),
    ]
    options = OptimizationOptions(
        enable_accuracy_filter=False,
        enable_speed_filter=False,
        enable_time_filter=False,
    )
    assert apply_filters(samples, options) == samples

    with caplog.at_level(logging.DEBUG):
        filtered = apply_filters(samples, OptimizationOptions())
    assert filtered == [samples[2]]
    assert "Accuracy filter: 3 -> 2 positions" in caplog.text


def test_filters_preserve_relative_order() -> None:
    samples = [
        make_position(45.0 + i * 0.001, 9.0, seconds=i * 40, speed=float(i * 30))
        for i in range(10)
    ]
    kept = apply_filters(samples, OptimizationOptions())
    indices = [samples.index(pos) for pos in kept]
    assert indices == sorted(indices)
