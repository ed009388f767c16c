import struct

import msgpack
import pytest

from beatrelay.packet import MessagePack


def test_encode_wire_format():
    data = MessagePack(b"\x01\x02", 120.0).encode()
    assert data == b"\x82\xa3pcm\x92\x01\x02\xa3bpm\xcb" + struct.pack(">d", 120.0)


def test_encoded_keys_and_types():
    obj = msgpack.unpackb(MessagePack(bytes([0, 200, 255]), 98.5).encode())
    assert list(obj) == ["pcm", "bpm"]
    assert obj["pcm"] == [0, 200, 255]
    assert obj["bpm"] == 98.5


@pytest.mark.parametrize(
    "packet",
    [MessagePack(b"", 0.0), MessagePack(bytes(range(256)), 143.5542)],
)
def test_round_trip(packet):
    assert MessagePack.decode(packet.encode()) == packet


def test_decode_accepts_binary_pcm():
    data = msgpack.packb({"pcm": b"\x05\x06", "bpm": 90}, use_bin_type=True)
    assert MessagePack.decode(data) == MessagePack(b"\x05\x06", 90.0)


@pytest.mark.parametrize(
    "obj",
    [[1, 2], {"pcm": [1]}, {"pcm": [300], "bpm": 1.0},
     {"pcm": "abc", "bpm": 1.0}, {"pcm": [1], "bpm": "fast"}],
)
def test_decode_rejects_bad_shapes(obj):
    with pytest.raises(ValueError):
        MessagePack.decode(msgpack.packb(obj, use_bin_type=True))


def test_decode_rejects_garbage():
    with pytest.raises(ValueError):
        MessagePack.decode(b"\xc1")