"""Tests for Wake-on-LAN packet building and sending."""

import asyncio
import socket
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tinysocket.errors import MacAddressError
from tinysocket.utils.wol import (
    MAGIC_PACKET_SIZE,
    build_magic_packet,
    is_valid_mac,
    parse_mac,
    send_magic_packet,
)


class TestMacValidation:
    @pytest.mark.parametrize(
        "mac",
        ["aa:bb:cc:dd:ee:ff", "AA:BB:CC:DD:EE:FF", "00:11:22:33:44:55", "aA:0b:C1:d2:E3:f4"],
    )
    def test_accepts(self, mac):
        assert is_valid_mac(mac) is True

    @pytest.mark.parametrize(
        "mac",
        [
            "",
            "aa:bb:cc:dd:ee",  # five groups
            "aa:bb:cc:dd:ee:ff:00",  # seven groups
            "aa-bb-cc-dd-ee-ff",  # wrong separator
            "aabbccddeeff",
            "gg:bb:cc:dd:ee:ff",  # not hex
            "a:bb:cc:dd:ee:ff",
            "aa:bb:cc:dd:ee:ff\n",
            None,
        ],
    )
    def test_rejects(self, mac):
        assert is_valid_mac(mac) is False

    def test_parse_mac(self):
        assert parse_mac("aa:BB:cc:01:02:03") == bytes([0xAA, 0xBB, 0xCC, 0x01, 0x02, 0x03])

    def test_parse_mac_invalid(self):
        with pytest.raises(MacAddressError):
            parse_mac("aa-bb-cc-dd-ee-ff")


class TestMagicPacket:
    def test_layout(self):
        packet = build_magic_packet("aa:bb:cc:dd:ee:ff")
        assert len(packet) == MAGIC_PACKET_SIZE == 102
        assert packet[:6] == b"\xff" * 6
        for i in range(16):
            offset = 6 + 6 * i
            assert packet[offset:offset + 6] == bytes([0xAA, 0xBB, 0xCC, 0xDD, 0xEE, 0xFF])

    def test_case_insensitive(self):
        assert build_magic_packet("AA:BB:CC:DD:EE:FF") == build_magic_packet("aa:bb:cc:dd:ee:ff")

    def test_invalid_mac(self):
        with pytest.raises(MacAddressError):
            build_magic_packet("not-a-mac")


class TestSendMagicPacket:
    @pytest.mark.asyncio
    async def test_sends_single_datagram(self):
        loop = asyncio.get_running_loop()
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as receiver:
            receiver.bind(("127.0.0.1", 0))
            receiver.setblocking(False)
            port = receiver.getsockname()[1]

            await send_magic_packet("01:02:03:04:05:06", "127.0.0.1", port)

            data = await asyncio.wait_for(loop.sock_recv(receiver, 1024), timeout=2)

        assert data == build_magic_packet("01:02:03:04:05:06")

    @pytest.mark.asyncio
    async def test_ipv6_address(self):
        if not socket.has_ipv6:
            pytest.skip("IPv6 not available")
        loop = asyncio.get_running_loop()
        with socket.socket(socket.AF_INET6, socket.SOCK_DGRAM) as receiver:
            try:
                receiver.bind(("::1", 0))
            except OSError:
                pytest.skip("IPv6 loopback not available")
            receiver.setblocking(False)
            port = receiver.getsockname()[1]

            await send_magic_packet("01:02:03:04:05:06", "::1", port)

            data = await asyncio.wait_for(loop.sock_recv(receiver, 1024), timeout=2)

        assert len(data) == 102

    @pytest.mark.asyncio
    async def test_send_error_propagates(self):
        loop = asyncio.get_running_loop()
        with patch.object(loop, "sock_sendto", AsyncMock(side_effect=OSError("Network is unreachable"))):
            with pytest.raises(OSError, match="unreachable"):
                await send_magic_packet("01:02:03:04:05:06", "127.0.0.1", 9)


class TestSocketRelease:
    @pytest.fixture
    def fake_socket(self):
        with patch("tinysocket.utils.wol.socket.socket") as socket_cls:
            sock = MagicMock()
            sock.__enter__.return_value = sock
            socket_cls.return_value = sock
            yield socket_cls, sock

    @pytest.mark.asyncio
    async def test_closed_after_send(self, fake_socket):
        socket_cls, sock = fake_socket
        loop = asyncio.get_running_loop()
        with patch.object(loop, "sock_sendto", AsyncMock(return_value=102)) as sendto:
            await send_magic_packet("01:02:03:04:05:06", "192.168.1.255", 9)

        socket_cls.assert_called_once_with(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt.assert_called_once_with(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sendto.assert_awaited_once_with(
            sock, build_magic_packet("01:02:03:04:05:06"), ("192.168.1.255", 9)
        )
        sock.__exit__.assert_called_once()

    @pytest.mark.asyncio
    async def test_closed_after_send_error(self, fake_socket):
        _, sock = fake_socket
        loop = asyncio.get_running_loop()
        with patch.object(loop, "sock_sendto", AsyncMock(side_effect=OSError("Network is unreachable"))):
            with pytest.raises(OSError, match="unreachable"):
                await send_magic_packet("01:02:03:04:05:06", "192.168.1.255", 9)

        sock.__exit__.assert_called_once()
        exc_type = sock.__exit__.call_args.args[0]
        assert exc_type is OSError

    @pytest.mark.asyncio
    async def test_ipv6_target_uses_inet6(self, fake_socket):
        socket_cls, sock = fake_socket
        loop = asyncio.get_running_loop()
        with patch.object(loop, "sock_sendto", AsyncMock(return_value=102)):
            await send_magic_packet("01:02:03:04:05:06", "ff02::1", 9)

        socket_cls.assert_called_once_with(socket.AF_INET6, socket.SOCK_DGRAM)
        sock.__exit__.assert_called_once()
