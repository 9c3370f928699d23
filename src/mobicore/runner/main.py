from __future__ import annotations

from typing import Any

import pytest
import typer

# Create a CLI application using Typer
app = typer.Typer(add_completion=False, help="Run mobicore UI test suites")


@app.command()
def run(
    config: str = typer.Option(None, help="Path to the YAML configuration file"),
    platform: str = typer.Option(None, help="android|ios"),
    tests_path: str = typer.Option("tests/e2e", help="Path to the tests to run"),
    extra: str = typer.Option("", help="Additional arguments for pytest (space-separated)"),
) -> Any:
    """
    Run the device tests through pytest with the mobicore plugin.

    Sessions are started and quit per test by the plugin fixtures, so the
    runner only chooses configuration and test selection.

    Example usage:
        mobicore run --config configs/ios.yaml --platform ios --extra "-m smoke"
    """
    args = build_pytest_args(config, platform, tests_path, extra)
    # Exit with pytest's return code
    raise SystemExit(pytest.main(args))


@app.command()
def version() -> None:
    """Print the installed mobicore version."""
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as dist_version

    try:
        typer.echo(dist_version("mobicore"))
    except PackageNotFoundError:
        typer.echo("unknown")


def build_pytest_args(
    config: str | None, platform: str | None, tests_path: str, extra: str
) -> list[str]:
    """Translate runner options into a pytest argument list."""
    args = [tests_path]
    if config:
        args += ["--config", config]
    if platform:
        args += ["--platform", platform]
    if extra:
        args += extra.split()
    return args


if __name__ == "__main__":
    app()
