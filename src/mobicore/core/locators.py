from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from ..platform import Platform

# Appium locator strategies understood by UiAutomator2 and XCUITest
Strategy = Literal[
    "id",
    "accessibility id",
    "xpath",
    "-android uiautomator",
    "-ios predicate string",
    "-ios class chain",
]
StrategyValue = tuple[Strategy, str]


def _checked(value: str | None, strategy: str) -> str:
    if value is None:
        raise ValueError(f"Locator value for strategy '{strategy}' is not specified")
    return value


def by_id(value: str | None) -> StrategyValue:
    return ("id", _checked(value, "id"))


def by_text(value: str | None) -> StrategyValue:
    """Android element whose visible text equals `value`."""
    return ("xpath", f".//*[@text = '{_checked(value, 'text')}']")


def by_name(value: str | None) -> StrategyValue:
    """iOS element whose name contains `value`."""
    return ("xpath", f".//*[contains(@name,'{_checked(value, 'name')}')]")


def by_xpath(value: str | None) -> StrategyValue:
    return ("xpath", _checked(value, "xpath"))


def by_accessibility_id(value: str | None) -> StrategyValue:
    """Content description on Android, accessibility identifier on iOS."""
    return ("accessibility id", _checked(value, "accessibility id"))


def by_android_uiautomator(value: str | None) -> StrategyValue:
    return ("-android uiautomator", _checked(value, "-android uiautomator"))


def by_ios_class_chain(value: str | None) -> StrategyValue:
    return ("-ios class chain", _checked(value, "-ios class chain"))


def by_ios_predicate_string(value: str | None) -> StrategyValue:
    return ("-ios predicate string", _checked(value, "-ios predicate string"))


_PlatformLocators = StrategyValue | Sequence[StrategyValue] | None


def _alternatives(value: _PlatformLocators) -> tuple[StrategyValue, ...]:
    if not value:
        return ()
    if isinstance(value[0], str):
        return (value,)  # type: ignore[return-value]
    return tuple(value)  # type: ignore[arg-type]


@dataclass(frozen=True, init=False)
class PageElement:
    """
    One logical element of a screen, located differently on each platform.

    Each side takes a single locator or a sequence of alternatives; lookups
    try the alternatives in the given order.
    """

    android: tuple[StrategyValue, ...] = ()
    ios: tuple[StrategyValue, ...] = ()

    def __init__(self, android: _PlatformLocators = None, ios: _PlatformLocators = None) -> None:
        object.__setattr__(self, "android", _alternatives(android))
        object.__setattr__(self, "ios", _alternatives(ios))

    def get_all(self, platform: Platform | str) -> list[StrategyValue]:
        """
        Raises:
            UnsupportedPlatformError: If the platform is unknown.
        """
        p = Platform.parse(platform)
        return list(self.android if p is Platform.ANDROID else self.ios)

    @staticmethod
    def by_accessibility_id(acc_id: str) -> PageElement:
        """Same accessibility id on both platforms."""
        shared = by_accessibility_id(acc_id)
        return PageElement(android=shared, ios=shared)

    @staticmethod
    def by_android_uiautomator(expr: str) -> PageElement:
        return PageElement(android=by_android_uiautomator(expr))

    @staticmethod
    def by_ios_predicate_string(expr: str) -> PageElement:
        return PageElement(ios=by_ios_predicate_string(expr))

    @staticmethod
    def by_locators(
        android_locators: Sequence[StrategyValue] | None = None,
        ios_locators: Sequence[StrategyValue] | None = None,
    ) -> PageElement:
        return PageElement(android=tuple(android_locators or ()), ios=tuple(ios_locators or ()))


Locator = PageElement | StrategyValue


def resolve_locators(platform: Platform | str, locator: Locator) -> list[StrategyValue]:
    """
    Turn a locator into the ordered (strategy, value) alternatives for a platform.

    Raises:
        ValueError: If a PageElement has no locator for the platform.
        TypeError: If the locator is neither a (strategy, value) pair nor a PageElement.
    """
    if isinstance(locator, PageElement):
        found = locator.get_all(platform)
        if not found:
            raise ValueError(f"Locator for {Platform.parse(platform).value} is not specified")
        return found
    if isinstance(locator, tuple) and len(locator) == 2:
        return [locator]
    raise TypeError(f"Unsupported locator type {type(locator).__name__}: expected (strategy, value) or PageElement")


def format_strategy_value(sv: StrategyValue) -> str:
    """E.g. "accessibility id: Log in"."""
    strategy, value = sv
    return f"{strategy}: {value}"


def pretty_locator(platform: Platform | str, locator: Locator) -> str:
    """Locator text for logs and allure steps; alternatives are joined with " | "."""
    try:
        found = resolve_locators(platform, locator)
    except (TypeError, ValueError):
        return str(locator)
    return " | ".join(format_strategy_value(sv) for sv in found)
