"""Network endpoint — timeout-bounded TCP request/response plus Wake-on-LAN."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from tinysocket.config import SocketSettings, validate_settings
from tinysocket.errors import (
    MacAddressError,
    OperationInProgressError,
    OperationTimeoutError,
    WakeOnLanNotConfiguredError,
)
from tinysocket.services.connection_state import ConnectionState, ConnectionStateTracker
from tinysocket.services.stream_protocol import StreamProtocol
from tinysocket.utils.wol import is_valid_mac, send_magic_packet

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Endpoint:
    """One remote host: a single long-lived TCP connection and a WoL target.

    Operations run one at a time. Each one races its own completion against
    the connection's error and idle-timeout signals and settles exactly once.
    """

    def __init__(
        self,
        host: str,
        mac_address: str | None,
        settings: SocketSettings | Mapping[str, Any],
    ):
        self.settings = validate_settings(settings)
        if mac_address is not None and not is_valid_mac(mac_address):
            raise MacAddressError(f"Invalid MAC address: {mac_address!r}")

        self.host = host
        self.mac_address = mac_address
        self.connection = StreamProtocol()
        self._state = ConnectionStateTracker(name=f"{host}:{self.settings.network_port}")
        self._pending: str | None = None

    def __repr__(self) -> str:
        return (
            f"<Endpoint {self.host}:{self.settings.network_port} "
            f"state={self._state.state.value}>"
        )

    @property
    def state(self) -> ConnectionState:
        return self._state.state

    @property
    def is_connected(self) -> bool:
        return self._state.state == ConnectionState.CONNECTED

    async def __aenter__(self) -> Endpoint:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.is_connected:
            await self.disconnect()
        else:
            self.connection.abort()

    # -- race protocol ------------------------------------------------------

    def _begin(self, operation: str) -> None:
        """Reject ``operation`` while another one is pending, before any state change."""
        if self._pending is not None:
            raise OperationInProgressError(
                f"Cannot {operation}() while {self._pending}() is still pending"
            )

    async def _race(self, operation: str, start: Callable[[], Awaitable[T]]) -> T:
        """Run ``start()`` against the connection's error and timeout signals.

        Whichever settles first decides the outcome. On timeout the transport
        is aborted and OperationTimeoutError raised; a transport error is
        re-raised unchanged. Observers are gone before this returns.
        """
        self._begin(operation)
        self._pending = operation
        logger.debug("%s: %s() started", self.host, operation)
        try:
            with self.connection.observe() as (errored, timed_out):
                task = asyncio.ensure_future(start())
                try:
                    done, _ = await asyncio.wait(
                        {task, errored, timed_out},
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                finally:
                    if not task.done():
                        task.cancel()

                if task in done:
                    result = task.result()
                elif errored in done:
                    raise errored.result()
                else:
                    self.connection.abort()
                    raise OperationTimeoutError(operation, self.settings.network_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._state.transition(ConnectionState.ERRORED)
            self.connection.abort()
            logger.debug("%s: %s() failed: %r", self.host, operation, e)
            raise
        finally:
            self._pending = None

        logger.debug("%s: %s() done", self.host, operation)
        return result

    # -- public operations --------------------------------------------------

    async def connect(self) -> None:
        """Open the TCP connection to (host, network_port)."""
        self._begin("connect")
        self._state.require(ConnectionState.IDLE, operation="connect")
        self._state.transition(ConnectionState.CONNECTING)
        self.connection.set_idle_timeout(self.settings.timeout_seconds)
        try:
            await self._race("connect", self._open_connection)
        except asyncio.CancelledError:
            self._state.transition(ConnectionState.ERRORED)
            self.connection.abort()
            raise
        self._state.transition(ConnectionState.CONNECTED)

    async def _open_connection(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.create_connection(
            lambda: self.connection, self.host, self.settings.network_port,
        )

    async def read(self) -> bytes:
        """Return the next inbound chunk as delivered by the transport."""
        self._begin("read")
        self._state.require(ConnectionState.CONNECTED, operation="read")
        return await self._race("read", self.connection.next_chunk)

    async def write(self, data: bytes) -> None:
        """Send ``data`` and wait until it is flushed to the socket."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"data must be bytes-like, not {type(data).__name__}")
        self._begin("write")
        self._state.require(ConnectionState.CONNECTED, operation="write")
        await self._race("write", lambda: self.connection.write(bytes(data)))

    async def send_receive(self, data: bytes) -> bytes:
        """Write ``data``, then read one reply chunk."""
        await self.write(data)
        return await self.read()

    async def disconnect(self) -> None:
        """Close the connection gracefully."""
        self._begin("disconnect")
        self._state.require(ConnectionState.CONNECTED, operation="disconnect")
        self._state.transition(ConnectionState.DISCONNECTING)
        await self._race("disconnect", self.connection.close)
        self._state.transition(ConnectionState.CLOSED)

    async def wake_on_lan(self) -> None:
        """Broadcast a magic packet for this endpoint's MAC address.

        Independent of the TCP connection. Socket errors propagate.
        """
        if not self.mac_address:
            raise WakeOnLanNotConfiguredError(
                "Unable to wake on lan: mac address was not configured"
            )
        await send_magic_packet(
            self.mac_address,
            self.settings.network_wol_address,
            self.settings.network_wol_port,
        )
        logger.info("WoL packet sent for %s (%s)", self.host, self.mac_address)
