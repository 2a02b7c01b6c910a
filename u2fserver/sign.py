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

import logging
import struct
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from cryptography.exceptions import InvalidSignature as _InvalidSignature

from .client_data import ClientData, ClientDataCheck
from .errors import SignatureVerificationFailed, UserPresenceNotVerified
from .keys import P256PublicKey
from .messages import U2F_V2, decode_field, dump_json, load_json_object, require_str
from .utils import ByteBuffer, sha256, websafe_encode

logger = logging.getLogger(__name__)

USER_PRESENCE_VERIFIED = 0x01


@dataclass(frozen=True)
class SignResponse:
    """Sign response as sent by the U2F client."""

    signature_data: str
    client_data: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SignResponse:
        return cls(
            signature_data=require_str(data, "signatureData"),
            client_data=require_str(data, "clientData"),
        )

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> SignResponse:
        return cls.from_dict(load_json_object(data, "signResponse"))

    @classmethod
    def parse(cls, response: Any) -> SignResponse:
        if isinstance(response, cls):
            return response
        if isinstance(response, Mapping):
            return cls.from_dict(response)
        return cls.from_json(response)

    def to_dict(self) -> Dict[str, str]:
        return {"signatureData": self.signature_data, "clientData": self.client_data}


@dataclass(frozen=True)
class SignatureData:
    """Binary signature data returned by a U2F authenticator.

    Layout: user presence (1 byte), counter (4 bytes, big-endian), signature.
    """

    user_presence: int
    counter_bytes: bytes
    signature: bytes

    @classmethod
    def parse(cls, data: bytes) -> SignatureData:
        buf = ByteBuffer(data)

        user_presence = buf.read_byte("userPresence")
        if user_presence != USER_PRESENCE_VERIFIED:
            raise UserPresenceNotVerified(
                "signatureData", expected=USER_PRESENCE_VERIFIED, actual=user_presence
            )
        counter_bytes = buf.read(4, "counter")
        signature = buf.read()
        return cls(user_presence, counter_bytes, signature)

    @classmethod
    def from_b64(cls, value: str) -> SignatureData:
        return cls.parse(decode_field(value, "signatureData"))

    @property
    def counter(self) -> int:
        return struct.unpack(">I", self.counter_bytes)[0]

    def signed_digest(self, app_param: bytes, client_param: bytes) -> bytes:
        """The SHA256 digest covered by the signature.

        :param app_param: SHA256 hash of the app ID.
        :param client_param: SHA256 hash of the ClientData bytes.
        """
        return sha256(
            app_param
            + bytes([self.user_presence])
            + self.counter_bytes
            + client_param
        )

    def verify(self, public_key: P256PublicKey, app_param: bytes, client_param: bytes) -> None:
        try:
            public_key.verify_digest(self.signed_digest(app_param, client_param), self.signature)
        except (_InvalidSignature, ValueError) as e:
            raise SignatureVerificationFailed("signatureData") from e


@dataclass(frozen=True)
class SignResult:
    """The outcome of a successful authentication.

    Deciding whether the counter indicates a cloned credential is up to the
    caller.
    """

    client_data_json: str
    counter: int
    user_presence: int


@dataclass(frozen=True)
class SignChallenge:
    """A single authentication ceremony for a registered credential.

    :param app_id: The application identity used at registration.
    :param key_handle: The websafe-base64 key handle from the registration.
    :param registered_public_key_pem: The PEM public key from the registration.
    :param challenge: Random bytes chosen by the caller.
    """

    app_id: str
    key_handle: str
    registered_public_key_pem: str
    challenge: bytes

    def to_dict(self) -> Dict[str, str]:
        return {
            "version": U2F_V2,
            "appId": self.app_id,
            "keyHandle": self.key_handle,
            "challenge": websafe_encode(self.challenge),
        }

    def generate(self) -> bytes:
        """Return the sign request message as JSON for the U2F client."""
        return dump_json(self.to_dict())

    def validate_response(
        self,
        response: Union[SignResponse, Mapping[str, Any], str, bytes],
        *,
        client_data_check: Optional[ClientDataCheck] = None,
    ) -> SignResult:
        """Validate a sign response against this challenge.

        :param response: The response from the U2F client, as JSON or parsed.
        :param client_data_check: Optional extra check of the client data.
        :return: The counter and user presence reported by the authenticator.
        """
        response = SignResponse.parse(response)

        client_data = ClientData.from_b64(response.client_data)
        client_data.verify_challenge(self.challenge)
        if client_data_check is not None:
            client_data_check(client_data)

        signature_data = SignatureData.from_b64(response.signature_data)
        public_key = P256PublicKey.from_pem(
            self.registered_public_key_pem, "registeredPublicKey"
        )
        signature_data.verify(
            public_key, sha256(self.app_id.encode("utf-8")), client_data.hash
        )

        logger.info(
            "Validated authentication for app ID %s, counter %d",
            self.app_id,
            signature_data.counter,
        )
        return SignResult(
            client_data_json=client_data.text,
            counter=signature_data.counter,
            user_presence=signature_data.user_presence,
        )
