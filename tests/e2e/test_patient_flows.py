from __future__ import annotations

import allure
import pytest
from screens import (
    AppointmentChooseGPScreen,
    AppointmentChooseProviderScreen,
    HomeScreen,
    LoginScreen,
    SingpassVerificationScreen,
)

from mobicore.config.models import Settings
from mobicore.core.actions import MobileActions

pytestmark = [pytest.mark.e2e, pytest.mark.android]


@allure.feature("Authentication")
@allure.title("Should login successfully with valid credentials")
@pytest.mark.smoke
@pytest.mark.record_screen
def test_successful_login(actions: MobileActions, settings: Settings) -> None:
    login = LoginScreen(actions)
    home = HomeScreen(actions)

    assert login.is_displayed(), "Should be on login page initially"
    login.login_with_default_credentials(settings)
    assert home.is_displayed(), "Should be on home page after successful login"


@allure.feature("Appointments")
@allure.title("Book an appointment")
@pytest.mark.record_screen
def test_book_appointment(actions: MobileActions, settings: Settings) -> None:
    login = LoginScreen(actions)
    singpass = SingpassVerificationScreen(actions)
    home = HomeScreen(actions)
    provider = AppointmentChooseProviderScreen(actions)
    choose_gp = AppointmentChooseGPScreen(actions)

    # Each test has its own session, so it starts from the login screen
    if login.is_displayed():
        login.login_with_default_credentials(settings)

    assert singpass.is_displayed(), "Should be on singpass verification page initially"
    singpass.remind_me_later()

    assert home.is_displayed(), "Should be on home page initially"
    home.book_an_appointment()

    assert provider.is_displayed(), "Should be on appointment choose provider page"
    provider.select_gp_provider_type()

    assert choose_gp.is_displayed(), "Should be on appointment choose GP page"
