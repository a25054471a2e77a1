from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


@pytest.mark.parametrize(
    "script",
    sorted(EXAMPLES_DIR.glob("*.py"), key=lambda p: p.name),
    ids=lambda p: p.name,
)
def test_examples_run(script: Path) -> None:
    proc = subprocess.run(
        ["python", str(script)],
        cwd=str(EXAMPLES_DIR),
        capture_output=True,
        text=True,
        check=False,
    )
    if proc.returncode != 0:
        pytest.fail(f"{script.name} failed: {proc.returncode}\n{proc.stdout}\n{proc.stderr}")
    assert "[perf]" in proc.stdout or "nodes" in proc.stdout
