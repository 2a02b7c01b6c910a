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

"""Helpers shared by the U2F registration and sign messages."""

from __future__ import annotations

import json
from typing import Any, Mapping, Union

from .errors import InvalidEncoding, MalformedJson
from .utils import DecodeError, websafe_decode

U2F_V2 = "U2F_V2"


def dump_json(data: Mapping[str, Any]) -> bytes:
    """Serialize a message as compact JSON, keeping the key order."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def load_json_object(data: Union[str, bytes], name: str) -> Mapping[str, Any]:
    try:
        value = json.loads(data)
    except (TypeError, ValueError) as e:
        raise MalformedJson(name, reason=str(e)) from e
    except RecursionError as e:
        raise MalformedJson(name, reason="JSON nesting too deep") from e
    if not isinstance(value, dict):
        raise MalformedJson(name, reason="expected a JSON object")
    return value


def require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MalformedJson(key, reason="missing or not a string")
    return value


def decode_field(value: str, name: str) -> bytes:
    """Decode a websafe-base64 message member."""
    try:
        return websafe_decode(value)
    except DecodeError as e:
        raise InvalidEncoding(name, reason=str(e)) from e
