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

"""Minimal DER helpers for carving a certificate out of a byte stream."""

from __future__ import annotations

from typing import Tuple

from .errors import InvalidDerTag, TruncatedData, UnsupportedDerLength

DER_SEQUENCE = 0x30


def decode_definite_length(data: bytes) -> Tuple[int, int]:
    """Decode the tag and length header of a DER SEQUENCE.

    Only one and two byte long-form lengths are handled, which covers any
    structure shorter than 65536 bytes. Attestation certificates always are;
    longer encodings raise :class:`UnsupportedDerLength`.

    :param data: Bytes starting with the DER SEQUENCE.
    :return: A tuple of (total length including header, header size).
    """
    view = memoryview(data)
    if len(view) < 2:
        raise TruncatedData("DER header", reason="needed 2 bytes")
    if view[0] != DER_SEQUENCE:
        raise InvalidDerTag("DER header", expected=DER_SEQUENCE, actual=view[0])

    first_length_byte = view[1]
    if first_length_byte < 0x81:
        return first_length_byte + 2, 2
    if first_length_byte == 0x81:
        if len(view) < 3:
            raise TruncatedData("DER header", reason="needed 3 bytes")
        return view[2] + 3, 3
    if first_length_byte == 0x82:
        if len(view) < 4:
            raise TruncatedData("DER header", reason="needed 4 bytes")
        return int.from_bytes(view[2:4], "big") + 4, 4
    raise UnsupportedDerLength("DER header", reason=f"length byte 0x{first_length_byte:02x}")
