"""Tests for the multicast wire helpers."""

from __future__ import annotations

import pytest

from traffic_remote.protocol import (
    DEFAULT_GROUP,
    DEFAULT_PORT,
    HEADER_SIZE,
    MalformedDatagram,
    MessageType,
    RemoteNetworkError,
    beacon_message,
    encode_header,
    open_receiver_socket,
    open_sender_socket,
    parse_header,
)


class TestConstants:
    def test_group_and_port(self):
        assert DEFAULT_GROUP == "239.255.1.1"
        assert DEFAULT_PORT == 49788
        assert HEADER_SIZE == 8


class TestHeader:
    def test_beacon_is_bare_header(self):
        msg = beacon_message()
        assert len(msg) == HEADER_SIZE
        header = parse_header(msg)
        assert header.is_beacon
        assert header.version == 1

    def test_type_and_version_nibbles(self):
        raw = encode_header(MessageType.POSITION_UPDATE, 2, plugin_id=0x1234)
        assert raw[0] == 0x24
        assert raw[2:4] == b"\x34\x12"
        header = parse_header(raw + b"payload")
        assert header.msg_type is MessageType.POSITION_UPDATE
        assert header.version == 2
        assert header.plugin_id == 0x1234
        assert not header.is_beacon

    def test_truncated(self):
        with pytest.raises(MalformedDatagram):
            parse_header(b"\x04\x00\x00")

    def test_empty(self):
        with pytest.raises(MalformedDatagram):
            parse_header(b"")

    def test_unlisted_type_is_kept_as_int(self):
        header = parse_header(bytes([0x1F]) + b"\x00" * 7)
        assert header.msg_type == 15
        assert not isinstance(header.msg_type, MessageType)
        assert header.version == 1
        assert not header.is_beacon

    def test_version_out_of_range(self):
        with pytest.raises(ValueError):
            encode_header(MessageType.SETTINGS, 16)


class TestSockets:
    def test_receiver_bad_group(self):
        with pytest.raises(RemoteNetworkError, match="cannot join"):
            open_receiver_socket("not-an-ip", 0)

    def test_sender_bad_interface(self):
        with pytest.raises(RemoteNetworkError, match="beacon socket"):
            open_sender_socket(DEFAULT_GROUP, 0, interface="not-an-ip")
