import pytest

from mobicore.errors import ConfigurationError, UnsupportedPlatformError
from mobicore.platform import Platform


def test_platform_members_and_values() -> None:
    """Enum members should have expected names, values, and types."""
    assert Platform.ANDROID.value == "android"
    assert Platform.IOS.value == "ios"
    assert isinstance(Platform.IOS, str)
    assert [p.value for p in Platform] == ["android", "ios"]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("android", Platform.ANDROID),
        ("Android", Platform.ANDROID),
        ("  IOS ", Platform.IOS),
        (Platform.IOS, Platform.IOS),
    ],
)
def test_parse_accepts_case_insensitive_names(raw: object, expected: Platform) -> None:
    assert Platform.parse(raw) is expected  # type: ignore[arg-type]


@pytest.mark.parametrize("raw", ["windows", "", None, "androidx"])
def test_parse_rejects_unknown_platforms(raw: object) -> None:
    """Unknown values fail with a configuration-class error listing the supported platforms."""
    with pytest.raises(UnsupportedPlatformError) as ei:
        Platform.parse(raw)  # type: ignore[arg-type]

    assert isinstance(ei.value, ConfigurationError)
    assert "android, ios" in str(ei.value)
