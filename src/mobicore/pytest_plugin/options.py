import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    """
    Registers mobicore command-line options.

      --config <path>    : Path to the YAML configuration file.
      --platform <name>  : Platform override ("android" or "ios").
    """
    g = parser.getgroup("mobicore")
    g.addoption("--config", action="store", default=None, help="Path to YAML configuration file")
    g.addoption(
        "--platform",
        action="store",
        default=None,
        help="Platform override: android|ios",
    )
