"""Test fixtures — settings records and loopback TCP servers."""

import asyncio
import socket

import pytest
import pytest_asyncio


@pytest.fixture
def settings_data():
    """Valid settings record, camelCase keys as produced by config files."""
    return {
        "networkPort": 9761,
        "networkTimeout": 50,
        "networkWolAddress": "255.255.255.255",
        "networkWolPort": 9,
    }


async def _start_server(handler):
    writers: list[asyncio.StreamWriter] = []

    async def _handle(reader, writer):
        writers.append(writer)
        try:
            await handler(reader, writer)
        except ConnectionError:
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(_handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port, writers


async def _stop_server(server, writers):
    for writer in writers:
        writer.close()
    server.close()
    await server.wait_closed()


@pytest_asyncio.fixture
async def echo_server():
    """Loopback server echoing every chunk back. Yields its port."""

    async def _echo(reader, writer):
        while data := await reader.read(4096):
            writer.write(data)
            await writer.drain()

    server, port, writers = await _start_server(_echo)
    yield port
    await _stop_server(server, writers)


@pytest_asyncio.fixture
async def silent_server():
    """Loopback server that accepts connections and never answers."""

    async def _silent(reader, writer):
        while await reader.read(4096):
            pass

    server, port, writers = await _start_server(_silent)
    yield port
    await _stop_server(server, writers)


@pytest_asyncio.fixture
async def hangup_server():
    """Loopback server that closes every connection right after accepting it."""

    async def _hangup(reader, writer):
        return

    server, port, writers = await _start_server(_hangup)
    yield port
    await _stop_server(server, writers)


@pytest.fixture
def closed_port():
    """A local TCP port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
