# Copyright (c) 2018 Yubico AB
# All rights reserved.
#
#   Redistribution and use in source and binary forms, with or
#   without modification, are permitted provided that the following
#   conditions are met:
#
#    1. Redistributions of source code must retain the above copyright
#       notice, this list of conditions and the following disclaimer.
#    2. Redistributions in binary form must reproduce the above
#       copyright notice, this list of conditions and the following
#       disclaimer in the documentation and/or other materials provided
#       with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS
# "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT
# LIMITED TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS
# FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE
# COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT,
# INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING,
# BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES;
# LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT
# LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN
# ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

"""Various utility functions and classes used throughout the package."""

from __future__ import annotations

import binascii
import hashlib
import re
import struct
from base64 import urlsafe_b64decode, urlsafe_b64encode
from io import BytesIO
from typing import Optional, Tuple, Union

from .errors import TruncatedData

__all__ = [
    "websafe_encode",
    "websafe_decode",
    "sha256",
    "ByteBuffer",
    "DecodeError",
]

_WEBSAFE_ALPHABET = re.compile(rb"[A-Za-z0-9_-]*")


class DecodeError(ValueError):
    """Data is not valid unpadded websafe-base64."""


def sha256(data: bytes) -> bytes:
    """Produces a SHA256 hash of the input.

    :param data: The input data to hash.
    :return: The resulting hash.
    """
    h = hashlib.sha256()
    h.update(data)
    return h.digest()


def websafe_decode(data: Union[str, bytes]) -> bytes:
    """Decodes a websafe-base64 encoded string.
    See: "Base 64 Encoding with URL and Filename Safe Alphabet" from Section 5
    in RFC4648 without padding.

    :param data: The input to decode.
    :return: The decoded bytes.
    :raises DecodeError: If the input has characters outside the alphabet
        or a length that no byte string encodes to.
    """
    if isinstance(data, str):
        try:
            data = data.encode("ascii")
        except UnicodeEncodeError as e:
            raise DecodeError("Non-ASCII characters in websafe-base64 data") from e
    stripped = data.rstrip(b"=")
    if not _WEBSAFE_ALPHABET.fullmatch(stripped):
        raise DecodeError("Invalid character in websafe-base64 data")
    if len(stripped) % 4 == 1:
        raise DecodeError("Invalid websafe-base64 data length")
    try:
        return urlsafe_b64decode(stripped + b"=" * (-len(stripped) % 4))
    except binascii.Error as e:
        raise DecodeError(str(e)) from e


def websafe_encode(data: bytes) -> str:
    """Encodes a byte string into websafe-base64 encoding.

    :param data: The input to encode.
    :return: The encoded string.
    """
    return urlsafe_b64encode(data).replace(b"=", b"").decode("ascii")


class ByteBuffer(BytesIO):
    """BytesIO-like object with checked reads.

    Every read names the field it is reading, and raises
    :class:`~u2fserver.errors.TruncatedData` when the buffer ends early.
    """

    def unpack(self, fmt: str, field: Optional[str] = None) -> Tuple:
        s = struct.Struct(fmt)
        return s.unpack(self.read(s.size, field))

    def read(self, size: Optional[int] = -1, field: Optional[str] = None) -> bytes:
        if size is not None and size < 0:
            size = None
        data = super().read(size)
        if size is not None and len(data) != size:
            raise TruncatedData(field, reason=f"needed {size} bytes, got {len(data)}")
        return data

    def read_byte(self, field: Optional[str] = None) -> int:
        return self.read(1, field)[0]

    def peek(self, size: int) -> bytes:
        """Return up to size bytes without advancing the position."""
        pos = self.tell()
        data = super().read(size)
        self.seek(pos)
        return data
