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

from __future__ import annotations

import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional

from .errors import ChallengeMismatch, ClientDataRejected, MalformedJson
from .messages import decode_field
from .utils import sha256, websafe_encode

logger = logging.getLogger(__name__)

TYPE_REGISTER = "navigator.id.finishEnrollment"
TYPE_SIGN = "navigator.id.getAssertion"


@dataclass(frozen=True)
class ClientData:
    """Client data produced by the U2F client and hashed into every signature.

    Only the challenge is required. The remaining well-known members are
    exposed for optional checks by the caller.
    """

    raw: bytes
    challenge: Optional[str]
    typ: Optional[str] = None
    origin: Optional[str] = None
    data: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def parse(cls, raw: bytes) -> ClientData:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise MalformedJson("clientData", reason=str(e)) from e
        except RecursionError as e:
            raise MalformedJson("clientData", reason="JSON nesting too deep") from e
        if not isinstance(data, dict):
            raise MalformedJson("clientData", reason="expected a JSON object")
        return cls(
            raw=bytes(raw),
            challenge=_str_or_none(data.get("challenge")),
            typ=_str_or_none(data.get("typ")),
            origin=_str_or_none(data.get("origin")),
            data=data,
        )

    @classmethod
    def from_b64(cls, value: str, name: str = "clientData") -> ClientData:
        """Decode and parse the websafe-base64 ``clientData`` response member."""
        return cls.parse(decode_field(value, name))

    @property
    def hash(self) -> bytes:
        return sha256(self.raw)

    @property
    def text(self) -> str:
        return self.raw.decode("utf-8", "replace")

    def verify_challenge(self, challenge: bytes) -> None:
        """Check the embedded challenge against the one that was issued.

        :param challenge: The raw challenge bytes given to the client.
        """
        expected = websafe_encode(challenge)
        received = self.challenge or ""
        # compare_digest only accepts ASCII strings.
        if not received.isascii() or not hmac.compare_digest(expected, received):
            logger.info("Client data challenge does not match the issued challenge")
            raise ChallengeMismatch("clientData.challenge")


ClientDataCheck = Callable[[ClientData], None]


def verify_client_data(
    typ: Optional[str] = None, origins: Optional[Iterable[str]] = None
) -> ClientDataCheck:
    """Build an opt-in check for the client data type and origin.

    Without a check only the challenge is verified.

    :param typ: Required value of ``typ``, e.g. :data:`TYPE_REGISTER`.
    :param origins: Accepted values of ``origin`` (the facets of the app).
    :return: A callable usable as ``client_data_check``.
    """
    allowed = frozenset(_normalise_origin(o) for o in origins) if origins is not None else None

    def check(client_data: ClientData) -> None:
        if typ is not None and client_data.typ != typ:
            raise ClientDataRejected("clientData.typ", expected=typ, actual=client_data.typ)
        if allowed is not None and (
            client_data.origin is None or _normalise_origin(client_data.origin) not in allowed
        ):
            raise ClientDataRejected("clientData.origin", reason="origin is not a trusted facet")

    return check


def _normalise_origin(origin: str) -> str:
    return origin.strip().rstrip("/")


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None
