"""tinysocket — timeout-bounded TCP endpoint with Wake-on-LAN support."""

__version__ = "0.1.0"

from tinysocket.config import SocketSettings, WolSettings, validate_settings
from tinysocket.errors import (
    InvalidStateError,
    MacAddressError,
    OperationInProgressError,
    OperationTimeoutError,
    SettingsError,
    TinySocketError,
    WakeOnLanNotConfiguredError,
)
from tinysocket.services.endpoint import Endpoint

__all__ = [
    "Endpoint",
    "InvalidStateError",
    "MacAddressError",
    "OperationInProgressError",
    "OperationTimeoutError",
    "SettingsError",
    "SocketSettings",
    "TinySocketError",
    "WakeOnLanNotConfiguredError",
    "WolSettings",
    "validate_settings",
]
