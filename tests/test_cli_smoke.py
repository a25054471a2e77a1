from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path

import numpy as np
import pytest

from ftl.__main__ import main


def _write_tensor(path: Path, shape, data) -> Path:
    path.write_text(json.dumps({"shape": shape, "data": data}), encoding="utf-8")
    return path


def test_cli_contract_smoke(tmp_path: Path):
    left = _write_tensor(tmp_path / "a.json", [3, 2], [1, 2, 3, 4, 5, 6])
    right = _write_tensor(tmp_path / "b.json", [2, 3], [7, 8, 9, 10, 11, 12])
    out = tmp_path / "out" / "c.json"

    env = os.environ.copy()
    proc = subprocess.run(
        [
            "python",
            "-m",
            "ftl",
            "contract",
            str(left),
            str(right),
            "--left",
            "i,j",
            "--right",
            "j,k",
            "--out",
            str(out),
        ],
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )
    if proc.returncode != 0:
        pytest.fail(f"CLI failed: {proc.returncode}\n{proc.stdout}\n{proc.stderr}")
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["shape"] == [3, 3]
    assert payload["data"] == [39, 54, 69, 49, 68, 87, 59, 82, 105]


def test_cli_add_prints_result_and_explain(tmp_path: Path, capsys):
    left = tmp_path / "a.npy"
    np.save(left, np.arange(6.0).reshape(2, 3))
    right = _write_tensor(tmp_path / "b.json", [2, 3], [1, 1, 1, 1, 1, 1])
    main(["add", str(left), str(right), "--strategy", "vectorized", "--explain"])
    captured = capsys.readouterr().out
    assert "# shape (2, 3)" in captured
    assert "[node 00] add" in captured


def test_cli_writes_npy(tmp_path: Path):
    left = tmp_path / "a.npy"
    np.save(left, np.arange(6.0).reshape(2, 3))
    out = tmp_path / "diff.npy"
    main(["sub", str(left), str(left), "--out", str(out)])
    np.testing.assert_array_equal(np.load(out), np.zeros((2, 3)))


def test_cli_reports_shape_errors(tmp_path: Path):
    left = _write_tensor(tmp_path / "a.json", [2, 3], [0] * 6)
    right = _write_tensor(tmp_path / "b.json", [3, 2], [0] * 6)
    with pytest.raises(SystemExit, match="add failed"):
        main(["add", str(left), str(right)])


def test_cli_missing_file(tmp_path: Path):
    with pytest.raises(SystemExit, match="Tensor file not found"):
        main(["sub", str(tmp_path / "missing.json"), str(tmp_path / "missing.json")])
