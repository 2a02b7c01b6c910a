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

from typing import Any, Optional


class ValidationError(Exception):
    """Base exception for U2F response validation errors.

    :param field: Name of the offending message field.
    :param expected: Expected value, for fixed marker values.
    :param actual: Received value, for fixed marker values.
    :param reason: Short description of the underlying failure.
    """

    MESSAGE = "Validation failed"

    def __init__(
        self,
        field: Optional[str] = None,
        *,
        expected: Any = None,
        actual: Any = None,
        reason: Optional[str] = None,
    ):
        self.field = field
        self.expected = expected
        self.actual = actual
        self.reason = reason
        super().__init__(self.describe())

    @property
    def code(self) -> str:
        """Name of the error variant, as reported to callers."""
        return type(self).__name__

    def describe(self) -> str:
        text = self.MESSAGE
        if self.field:
            text += f" in {self.field}"
        if self.expected is not None or self.actual is not None:
            text += f": expected {_render(self.expected)}, got {_render(self.actual)}"
        elif self.reason:
            text += f": {self.reason}"
        return text


def _render(value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return f"0x{value:02x}"
    return str(value)


class MalformedJson(ValidationError):
    """Outer response or inner client data is not valid JSON."""

    MESSAGE = "Unable to parse JSON"


class InvalidEncoding(ValidationError):
    """A websafe-base64 field could not be decoded."""

    MESSAGE = "Invalid websafe-base64 encoding"


class ChallengeMismatch(ValidationError):
    """The returned challenge does not match the issued one."""

    MESSAGE = "Invalid challenge"


class ClientDataRejected(ValidationError):
    """Client data failed an opt-in origin or type check."""

    MESSAGE = "Client data rejected"


class InvalidReservedByte(ValidationError):
    """The registration data reserved byte is not 0x05."""

    MESSAGE = "Invalid reserved byte"


class UserPresenceNotVerified(ValidationError):
    """The signature data user presence byte is not 0x01."""

    MESSAGE = "User presence not verified"


class TruncatedData(ValidationError):
    """A binary message ended before a field could be read."""

    MESSAGE = "Not enough data"


class CertificateParseError(ValidationError):
    """The attestation certificate could not be parsed."""

    MESSAGE = "Unable to parse attestation certificate"


class DerError(CertificateParseError):
    """Base exception for DER header decoding errors."""

    MESSAGE = "Invalid DER header"


class InvalidDerTag(DerError):
    """The DER structure does not start with a SEQUENCE tag."""

    MESSAGE = "Invalid DER certificate tag"


class UnsupportedDerLength(DerError):
    """The DER length uses more than two length bytes."""

    MESSAGE = "Unsupported DER length"


class InvalidPublicKey(ValidationError):
    """The public key is not a valid P-256 point or PEM document."""

    MESSAGE = "Invalid public key"


class SignatureVerificationFailed(ValidationError):
    """The signature of the response could not be verified."""

    MESSAGE = "Invalid signature"


class UntrustedAttestation(ValidationError):
    """The attestation certificate does not chain to a trusted root."""

    MESSAGE = "Untrusted attestation"
