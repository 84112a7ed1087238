from __future__ import annotations

import json

from factories import meridian_track, raw_payload
from route_optimizer.main import main


def test_optimize_command_writes_result(tmp_path) -> None:
    source = tmp_path / "positions.json"
    source.write_text(
        json.dumps({"positions": [raw_payload(pos) for pos in meridian_track(40)]}),
        encoding="utf-8",
    )
    target = tmp_path / "optimized.json"

    exit_code = main(["optimize", str(source), "-o", str(target), "--tolerance", "5"])

    assert exit_code == 0
    result = json.loads(target.read_text(encoding="utf-8"))
    assert len(result["positions"]) == 2
    assert result["optimization"]["originalCount"] == 40
    assert result["optimization"]["options"]["tolerance"] == 5.0


def test_optimize_command_prints_to_stdout(tmp_path, capsys) -> None:
    source = tmp_path / "positions.json"
    source.write_text(
        json.dumps([raw_payload(pos) for pos in meridian_track(5)]), encoding="utf-8"
    )

    assert main(["optimize", str(source), "--preset", "conservative"]) == 0

    printed = json.loads(capsys.readouterr().out)
    assert printed["optimization"]["options"]["minAccuracy"] == 50.0
