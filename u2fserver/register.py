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
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature as _InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from .client_data import ClientData, ClientDataCheck
from .der import decode_definite_length
from .errors import (
    CertificateParseError,
    InvalidReservedByte,
    SignatureVerificationFailed,
)
from .keys import USER_PUBLIC_KEY_LENGTH, P256PublicKey
from .messages import U2F_V2, decode_field, dump_json, load_json_object, require_str
from .utils import ByteBuffer, sha256, websafe_encode

logger = logging.getLogger(__name__)

REGISTRATION_RESERVED_BYTE = 0x05

# Reads at most the tag plus a two byte long-form length.
_MAX_DER_HEADER = 4


@dataclass(frozen=True)
class RegistrationResponse:
    """Registration response as sent by the U2F client."""

    registration_data: str
    client_data: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RegistrationResponse:
        return cls(
            registration_data=require_str(data, "registrationData"),
            client_data=require_str(data, "clientData"),
        )

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> RegistrationResponse:
        return cls.from_dict(load_json_object(data, "registerResponse"))

    @classmethod
    def parse(cls, response: Any) -> RegistrationResponse:
        if isinstance(response, cls):
            return response
        if isinstance(response, Mapping):
            return cls.from_dict(response)
        return cls.from_json(response)

    def to_dict(self) -> Dict[str, str]:
        return {"registrationData": self.registration_data, "clientData": self.client_data}


@dataclass(frozen=True)
class RegistrationData:
    """Binary registration data returned by a U2F authenticator.

    Layout: reserved byte (0x05), user public key (65 bytes), key handle
    length (1 byte), key handle, attestation certificate (DER), signature.
    """

    reserved_byte: int
    user_public_key: bytes
    key_handle: bytes
    certificate: x509.Certificate = field(repr=False, compare=False)
    certificate_der: bytes = field(repr=False)
    signature: bytes

    @classmethod
    def parse(cls, data: bytes) -> RegistrationData:
        buf = ByteBuffer(data)

        reserved_byte = buf.read_byte("reservedByte")
        if reserved_byte != REGISTRATION_RESERVED_BYTE:
            raise InvalidReservedByte(
                "registrationData",
                expected=REGISTRATION_RESERVED_BYTE,
                actual=reserved_byte,
            )

        user_public_key = buf.read(USER_PUBLIC_KEY_LENGTH, "userPublicKey")
        key_handle_length = buf.read_byte("keyHandleLength")
        key_handle = buf.read(key_handle_length, "keyHandle")

        certificate_length, _ = decode_definite_length(buf.peek(_MAX_DER_HEADER))
        certificate_der = buf.read(certificate_length, "attestationCertificate")
        try:
            certificate = x509.load_der_x509_certificate(certificate_der, default_backend())
        except ValueError as e:
            raise CertificateParseError("attestationCertificate", reason=str(e)) from e

        signature = buf.read()
        logger.debug(
            "Parsed registration data: key handle %d bytes, certificate %d bytes, "
            "signature %d bytes",
            len(key_handle),
            len(certificate_der),
            len(signature),
        )
        return cls(
            reserved_byte=reserved_byte,
            user_public_key=user_public_key,
            key_handle=key_handle,
            certificate=certificate,
            certificate_der=certificate_der,
            signature=signature,
        )

    @classmethod
    def from_b64(cls, value: str) -> RegistrationData:
        return cls.parse(decode_field(value, "registrationData"))

    def signed_data(self, app_param: bytes, client_param: bytes) -> bytes:
        """The byte string covered by the attestation signature.

        :param app_param: SHA256 hash of the app ID.
        :param client_param: SHA256 hash of the ClientData bytes.
        """
        return b"\0" + app_param + client_param + self.key_handle + self.user_public_key

    def verify(self, app_param: bytes, client_param: bytes) -> None:
        """Verify the attestation signature with the certificate public key.

        :param app_param: SHA256 hash of the app ID.
        :param client_param: SHA256 hash of the ClientData bytes.
        """
        try:
            pub = self.certificate.public_key()
        except (UnsupportedAlgorithm, ValueError) as e:
            raise SignatureVerificationFailed(
                "attestationCertificate", reason="unsupported attestation key"
            ) from e
        if not isinstance(pub, ec.EllipticCurvePublicKey):
            raise SignatureVerificationFailed(
                "attestationCertificate", reason="attestation key is not an EC key"
            )

        try:
            pub.verify(
                self.signature,
                self.signed_data(app_param, client_param),
                ec.ECDSA(hashes.SHA256()),
            )
        except _InvalidSignature as e:
            raise SignatureVerificationFailed("registrationData") from e


@dataclass(frozen=True)
class RegistrationResult:
    """The outcome of a successful registration."""

    client_data_json: str
    key_handle: str
    user_public_key_pem: str
    attestation_certificate: Optional[x509.Certificate] = field(
        default=None, repr=False, compare=False
    )


@dataclass(frozen=True)
class RegistrationChallenge:
    """A single registration ceremony for an application.

    :param app_id: The application identity, usually the origin URL.
    :param challenge: Random bytes chosen by the caller.
    """

    app_id: str
    challenge: bytes

    def to_dict(self) -> Dict[str, str]:
        return {
            "version": U2F_V2,
            "appId": self.app_id,
            "challenge": websafe_encode(self.challenge),
        }

    def generate(self) -> bytes:
        """Return the register request message as JSON for the U2F client."""
        return dump_json(self.to_dict())

    def validate_response(
        self,
        response: Union[RegistrationResponse, Mapping[str, Any], str, bytes],
        *,
        client_data_check: Optional[ClientDataCheck] = None,
        attestation_verifier: Optional[Callable[[x509.Certificate], None]] = None,
    ) -> RegistrationResult:
        """Validate a registration response against this challenge.

        :param response: The response from the U2F client, as JSON or parsed.
        :param client_data_check: Optional extra check of the client data.
        :param attestation_verifier: Optional trust check of the attestation
            certificate, e.g. an :class:`~u2fserver.attestation.AttestationVerifier`.
        :return: The key handle and public key to store for the credential.
        """
        response = RegistrationResponse.parse(response)

        client_data = ClientData.from_b64(response.client_data)
        client_data.verify_challenge(self.challenge)
        if client_data_check is not None:
            client_data_check(client_data)

        registration_data = RegistrationData.from_b64(response.registration_data)
        registration_data.verify(sha256(self.app_id.encode("utf-8")), client_data.hash)
        if attestation_verifier is not None:
            attestation_verifier(registration_data.certificate)

        user_public_key = P256PublicKey.from_ctap1(registration_data.user_public_key)

        logger.info("Validated registration for app ID %s", self.app_id)
        return RegistrationResult(
            client_data_json=client_data.text,
            key_handle=websafe_encode(registration_data.key_handle),
            user_public_key_pem=user_public_key.to_pem(),
            attestation_certificate=registration_data.certificate,
        )
