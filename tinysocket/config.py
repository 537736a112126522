"""tinysocket configuration — Pydantic BaseSettings loaded from env / .env."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import PositiveInt, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tinysocket.errors import SettingsError

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

S = TypeVar("S", bound="WolSettings")


class WolSettings(BaseSettings):
    """Wake-on-LAN broadcast target; all the `wake` command needs."""

    network_wol_address: str = "255.255.255.255"
    network_wol_port: PositiveInt = 9

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TINYSOCKET_",
        extra="ignore",
        frozen=True,
    )

    @field_validator("network_wol_address")
    @classmethod
    def _check_wol_address(cls, value: str) -> str:
        if not value:
            raise ValueError("must be a string with length greater than 0")
        try:
            ipaddress.ip_address(value)
        except ValueError:
            raise ValueError("must be a valid IPv4 or IPv6 address") from None
        return value


class SocketSettings(WolSettings):
    """Connection settings shared by every operation of an Endpoint."""

    network_port: PositiveInt
    network_timeout: PositiveInt = 2000  # milliseconds, idle timeout per operation

    @property
    def timeout_seconds(self) -> float:
        return self.network_timeout / 1000.0


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def validate_settings(candidate: SocketSettings | Mapping[str, Any]) -> SocketSettings:
    """Validate a settings record and return it as a frozen SocketSettings.

    Accepts an existing ``SocketSettings`` (re-checked, so instances built with
    ``model_construct`` cannot slip through) or a mapping with either
    snake_case or camelCase keys (``networkPort`` and ``network_port`` are
    equivalent). Values are checked strictly: ports and the timeout must be
    real integers, not numeric strings. The environment is not consulted here.

    Raises:
        SettingsError: naming every offending field.
    """
    if isinstance(candidate, SocketSettings):
        data: dict[str, Any] = candidate.model_dump()
    elif isinstance(candidate, Mapping):
        data = {_snake_case(str(key)): value for key, value in candidate.items()}
    else:
        raise SettingsError("settings must be a mapping or SocketSettings", ("settings",))

    try:
        return SocketSettings.model_validate(data, strict=True)
    except ValidationError as e:
        raise _settings_error(e) from e


def load_settings(**overrides: Any) -> SocketSettings:
    """Build settings from env / .env, with keyword overrides taking priority."""
    return _load(SocketSettings, overrides)


def load_wol_settings(**overrides: Any) -> WolSettings:
    """Like load_settings, but only the Wake-on-LAN target; no TCP port needed."""
    return _load(WolSettings, overrides)


def _load(cls: type[S], overrides: dict[str, Any]) -> S:
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return cls(**values)
    except ValidationError as e:
        raise _settings_error(e) from e


def _settings_error(error: ValidationError) -> SettingsError:
    fields = tuple(str(err["loc"][0]) for err in error.errors() if err["loc"])
    details = "; ".join(
        f"settings.{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )
    return SettingsError(f"Invalid settings: {details}", fields)


@lru_cache(maxsize=1)
def get_settings() -> SocketSettings:
    return load_settings()
