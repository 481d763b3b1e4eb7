"""Unit tests for the config and cookie models."""

from __future__ import annotations

import pydantic
import pytest

from vapor_runtime.types import AuthCodes, BotConfig, CookieSet, LoginOptions


def test_bot_config_accepts_camel_case() -> None:
    config = BotConfig(
        **{
            "username": "bot",
            "loginKey": "key",
            "rememberPassword": True,
            "logonID": 7,
            "displayName": "Helper",
        }
    )
    assert config.login_key == "key"
    assert config.remember_password is True
    assert config.logon_id == 7
    assert config.display_name == "Helper"
    assert config.state == "Online"
    assert config.sentry_file_name == "bot.sentry"


def test_bot_config_requires_secret() -> None:
    with pytest.raises(pydantic.ValidationError):
        BotConfig(username="bot")
    with pytest.raises(pydantic.ValidationError):
        BotConfig(username="", password="pw")


def test_login_options_from_config() -> None:
    options = LoginOptions.from_config(BotConfig(username="bot", password="pw", logonID=3))
    assert options.account_name == "bot"
    assert options.password == "pw"
    assert options.obfustucated_private_ip == 3
    assert options.auth_code is None


def test_auth_codes_aliases() -> None:
    codes = AuthCodes.model_validate({"authCode": "A", "twoFactorCode": "B"})
    assert (codes.auth_code, codes.two_factor_code) == ("A", "B")


def test_cookie_set_is_frozen() -> None:
    cookies = CookieSet(session_id="sid", steam_login="T", steam_login_secure="S")
    assert cookies.as_dict() == {"sessionid": "sid", "steamLogin": "T", "steamLoginSecure": "S"}
    with pytest.raises(pydantic.ValidationError):
        cookies.steam_login = "other"  # type: ignore[misc]
