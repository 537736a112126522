"""Stream transport handle — asyncio protocol with idle timer and scoped observers."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class StreamProtocol(asyncio.Protocol):
    """Owns one TCP transport and turns its callbacks into futures.

    Signals exposed to the endpoint:
      - inbound chunks (``next_chunk``), one future per chunk
      - write flush confirmation (``write``)
      - close confirmation (``close``)
      - transport error and idle timeout, delivered only to observers
        registered through ``observe()``
    """

    def __init__(self) -> None:
        self.transport: asyncio.Transport | None = None
        self._chunks: deque[bytes] = deque()
        self._chunk_waiter: asyncio.Future[bytes] | None = None
        self._drain_waiter: asyncio.Future[None] | None = None
        self._closed: asyncio.Future[None] | None = None
        self._paused = False
        self._eof = False
        self._lost = False
        self._aborted = False
        self._exception: BaseException | None = None

        self._idle_timeout: float | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._error_observers: set[asyncio.Future[BaseException]] = set()
        self._timeout_observers: set[asyncio.Future[None]] = set()

    # -- idle timer ---------------------------------------------------------

    def set_idle_timeout(self, seconds: float) -> None:
        """Arm the idle timer; it stays armed for the life of the connection."""
        self._idle_timeout = seconds
        self.touch()

    def touch(self) -> None:
        """Record activity, pushing the idle deadline forward."""
        if self._idle_timeout is None or self._lost:
            return
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._idle_timeout, self._on_idle)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_idle(self) -> None:
        self._timer = None
        logger.debug("Idle timeout elapsed (%d observer(s))", len(self._timeout_observers))
        for fut in list(self._timeout_observers):
            if not fut.done():
                fut.set_result(None)

    # -- observers ----------------------------------------------------------

    @contextmanager
    def observe(self) -> Iterator[tuple[asyncio.Future[BaseException], asyncio.Future[None]]]:
        """Register one error observer and one timeout observer for an operation.

        Yields ``(errored, timed_out)``. ``errored`` resolves to the transport
        exception; it is already resolved if the transport failed earlier.
        Both observers are unregistered and cancelled on exit.
        """
        loop = asyncio.get_running_loop()
        errored: asyncio.Future[BaseException] = loop.create_future()
        timed_out: asyncio.Future[None] = loop.create_future()
        if self._exception is not None:
            errored.set_result(self._exception)

        self._error_observers.add(errored)
        self._timeout_observers.add(timed_out)
        self.touch()
        try:
            yield errored, timed_out
        finally:
            self._error_observers.discard(errored)
            self._timeout_observers.discard(timed_out)
            errored.cancel()
            timed_out.cancel()

    # -- operations ---------------------------------------------------------

    def next_chunk(self) -> asyncio.Future[bytes]:
        """Future for the next inbound chunk, exactly as the transport delivered it."""
        fut: asyncio.Future[bytes] = asyncio.get_running_loop().create_future()
        if self._chunks:
            fut.set_result(self._chunks.popleft())
        elif self._eof or self._lost:
            fut.set_exception(self._closed_error())
        else:
            self._chunk_waiter = fut
        return fut

    def write(self, data: bytes) -> asyncio.Future[None]:
        """Queue ``data``; the future resolves once the write buffer is empty."""
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        if self.transport is None or self._lost or self.transport.is_closing():
            fut.set_exception(self._closed_error())
            return fut

        self.transport.write(data)
        self.touch()
        if self._paused:
            self._drain_waiter = fut
        else:
            fut.set_result(None)
        return fut

    def close(self) -> asyncio.Future[None]:
        """Close gracefully; the future resolves when the transport is gone."""
        if self._closed is None:
            self._closed = asyncio.get_running_loop().create_future()
        if self._lost:
            if not self._closed.done():
                self._closed.set_result(None)
        elif self.transport is not None:
            self.transport.close()
        return self._closed

    def abort(self) -> None:
        """Terminate the transport immediately, discarding buffered data."""
        self._cancel_timer()
        self._aborted = True
        if self.transport is not None and not self._lost:
            self.transport.abort()

    @property
    def is_terminated(self) -> bool:
        if self._lost or self._aborted:
            return True
        return self.transport is not None and self.transport.is_closing()

    def _closed_error(self) -> BaseException:
        if self._exception is not None:
            return self._exception
        return ConnectionResetError("Connection closed by remote host")

    # -- asyncio.Protocol callbacks -----------------------------------------

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore[assignment]
        # high=0: any unsent byte pauses writing, so resume_writing means flushed
        self.transport.set_write_buffer_limits(high=0)
        if self._closed is None:
            self._closed = asyncio.get_running_loop().create_future()
        self.touch()

    def data_received(self, data: bytes) -> None:
        self.touch()
        self._chunks.append(data)
        waiter, self._chunk_waiter = self._chunk_waiter, None
        if waiter is not None and not waiter.done():
            waiter.set_result(self._chunks.popleft())

    def eof_received(self) -> bool | None:
        self._eof = True
        waiter, self._chunk_waiter = self._chunk_waiter, None
        if waiter is not None and not waiter.done():
            waiter.set_exception(self._closed_error())
        return None  # let the transport close itself

    def pause_writing(self) -> None:
        self._paused = True

    def resume_writing(self) -> None:
        self._paused = False
        waiter, self._drain_waiter = self._drain_waiter, None
        if waiter is not None and not waiter.done():
            waiter.set_result(None)

    def connection_lost(self, exc: Exception | None) -> None:
        self._lost = True
        self._cancel_timer()
        if exc is not None:
            self._exception = exc
            logger.debug("Transport lost: %r", exc)
            for fut in list(self._error_observers):
                if not fut.done():
                    fut.set_result(exc)

        for waiter in (self._chunk_waiter, self._drain_waiter):
            if waiter is not None and not waiter.done():
                waiter.set_exception(self._closed_error())
        self._chunk_waiter = None
        self._drain_waiter = None

        if self._closed is not None and not self._closed.done():
            self._closed.set_result(None)
