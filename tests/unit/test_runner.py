from __future__ import annotations

import pytest
from typer.testing import CliRunner

from mobicore.runner import main
from mobicore.runner.main import app, build_pytest_args


def test_build_pytest_args() -> None:
    assert build_pytest_args(None, None, "tests/e2e", "") == ["tests/e2e"]
    assert build_pytest_args("configs/ios.yaml", "ios", "tests/e2e", "-m smoke -x") == [
        "tests/e2e",
        "--config",
        "configs/ios.yaml",
        "--platform",
        "ios",
        "-m",
        "smoke",
        "-x",
    ]


def test_run_command_exits_with_pytest_code(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[list[str]] = []

    def fake_main(args: list[str]) -> int:
        seen.append(args)
        return 3

    monkeypatch.setattr(main.pytest, "main", fake_main)

    result = CliRunner().invoke(app, ["run", "--platform", "android", "--tests-path", "tests/e2e"])

    assert result.exit_code == 3
    assert seen == [["tests/e2e", "--platform", "android"]]
