"""Domain-specific errors for tinysocket."""

from __future__ import annotations


class TinySocketError(Exception):
    """Base error for tinysocket."""


class SettingsError(TinySocketError, ValueError):
    """Raised when a settings record fails validation."""

    def __init__(self, message: str, fields: tuple[str, ...] = ()):
        super().__init__(message)
        self.fields = fields


class MacAddressError(TinySocketError, ValueError):
    """Raised when a MAC address is not in aa:bb:cc:dd:ee:ff form."""


class OperationTimeoutError(TinySocketError, TimeoutError):
    """Raised when an operation does not settle within the network timeout."""

    def __init__(self, operation: str, timeout_ms: int):
        super().__init__(f"{operation} timed out after {timeout_ms} ms")
        self.operation = operation
        self.timeout_ms = timeout_ms


class InvalidStateError(TinySocketError):
    """Raised when an operation is not allowed in the current connection state."""


class OperationInProgressError(TinySocketError):
    """Raised when an operation is started while another one is still pending."""


class WakeOnLanNotConfiguredError(TinySocketError):
    """Raised by wake_on_lan() on an endpoint without a MAC address."""
