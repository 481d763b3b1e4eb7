"""
Pydantic models for the Vapor runtime.

Field names are snake_case; the camelCase names used by older bot
configs are accepted as aliases.
"""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, Field, model_validator


# ============================================================
#  Configuration
# ============================================================


class BotConfig(BaseModel):
    """Validated bot account settings.

    Only ``username`` and ``password`` (or ``login_key``) are required.
    """

    username: str = Field(min_length=1)
    password: str | None = None
    login_key: str | None = Field(None, alias="loginKey")
    remember_password: bool = Field(False, alias="rememberPassword")
    logon_id: int = Field(0, alias="logonID", ge=0)

    # Passed through to protocol handlers, not read by the runtime itself.
    display_name: str = Field("Vapor Bot", alias="displayName")
    state: str = "Online"
    admins: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="after")
    def _require_secret(self) -> "BotConfig":
        if not self.password and not self.login_key:
            raise ValueError("either 'password' or 'login_key' must be provided")
        return self

    @property
    def sentry_file_name(self) -> str:
        return f"{self.username}.sentry"


class AuthCodes(BaseModel):
    """Out-of-band authentication codes passed to ``connect``."""

    auth_code: str | None = Field(None, alias="authCode")
    two_factor_code: str | None = Field(None, alias="twoFactorCode")

    model_config = {"populate_by_name": True}


class LoginOptions(BaseModel):
    """Pending logon details handed to the network session on connect."""

    account_name: str
    password: str | None = None
    login_key: str | None = None
    should_remember_password: bool = False
    obfustucated_private_ip: int = 0
    auth_code: str | None = None
    two_factor_code: str | None = None
    sha_sentryfile: bytes | None = None

    @classmethod
    def from_config(cls, config: BotConfig) -> "LoginOptions":
        return cls(
            account_name=config.username,
            password=config.password,
            login_key=config.login_key,
            should_remember_password=config.remember_password,
            obfustucated_private_ip=config.logon_id,
        )


# ============================================================
#  Web session
# ============================================================


class CookieSet(BaseModel):
    """Cookies that let an HTTP client act as the logged-on user."""

    session_id: str
    steam_login: str
    steam_login_secure: str

    model_config = {"frozen": True}

    def as_list(self) -> list[str]:
        """Render as ``name=value`` strings, ready for a Cookie header."""
        return [
            f"sessionid={self.session_id}",
            f"steamLogin={self.steam_login}",
            f"steamLoginSecure={self.steam_login_secure}",
        ]

    def as_dict(self) -> dict[str, str]:
        return {
            "sessionid": self.session_id,
            "steamLogin": self.steam_login,
            "steamLoginSecure": self.steam_login_secure,
        }


# ============================================================
#  Plugins
# ============================================================


class PluginDescriptor(BaseModel):
    """A named plugin and the entry point that receives its ``PluginAPI``."""

    name: str
    plugin: Callable[[Any], Any]
