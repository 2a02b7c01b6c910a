import os

import pytest

from u2fserver.errors import TruncatedData
from u2fserver.utils import ByteBuffer, DecodeError, sha256, websafe_decode, websafe_encode


@pytest.mark.parametrize(
    "data",
    [b"", b"\x00", b"\xff\xfe", b"abc", b"abcd", b"\xfb\xff\xbf", os.urandom(33)],
)
def test_websafe_round_trip(data):
    encoded = websafe_encode(data)
    assert "=" not in encoded
    assert websafe_decode(encoded) == data


def test_websafe_encode_uses_url_alphabet():
    assert websafe_encode(b"\xfb\xff\xbf") == "-_-_"
    assert websafe_encode(b"\x00" * 32) == "A" * 43


def test_websafe_decode_accepts_bytes_and_padding():
    assert websafe_decode(b"YWI") == b"ab"
    assert websafe_decode("YWI=") == b"ab"


@pytest.mark.parametrize("value", ["+/+/", "YW I", "Y", "YWJjZ", "é"])
def test_websafe_decode_rejects_invalid_input(value):
    with pytest.raises(DecodeError):
        websafe_decode(value)


def test_decode_error_is_value_error():
    with pytest.raises(ValueError):
        websafe_decode("*")


def test_sha256():
    assert sha256(b"").hex() == (
        "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )


def test_byte_buffer_reads_in_order():
    buf = ByteBuffer(b"\x05abcdef")
    assert buf.read_byte("reservedByte") == 0x05
    assert buf.peek(2) == b"ab"
    assert buf.read(3, "first") == b"abc"
    assert buf.unpack(">H", "second") == (0x6465,)
    assert buf.read() == b"f"


def test_byte_buffer_short_read_names_field():
    buf = ByteBuffer(b"\x01\x02")
    with pytest.raises(TruncatedData) as exc_info:
        buf.read(4, "counter")
    assert exc_info.value.field == "counter"
    assert "counter" in str(exc_info.value)


def test_byte_buffer_read_byte_on_empty():
    with pytest.raises(TruncatedData):
        ByteBuffer(b"").read_byte("userPresence")
