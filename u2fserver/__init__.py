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

"""Server side verification of FIDO U2F registration and sign responses."""

from __future__ import annotations

from .client_data import TYPE_REGISTER, TYPE_SIGN, ClientData, verify_client_data
from .errors import (
    CertificateParseError,
    ChallengeMismatch,
    ClientDataRejected,
    DerError,
    InvalidDerTag,
    InvalidEncoding,
    InvalidPublicKey,
    InvalidReservedByte,
    MalformedJson,
    SignatureVerificationFailed,
    TruncatedData,
    UnsupportedDerLength,
    UntrustedAttestation,
    UserPresenceNotVerified,
    ValidationError,
)
from .register import (
    RegistrationChallenge,
    RegistrationData,
    RegistrationResponse,
    RegistrationResult,
)
from .sign import SignatureData, SignChallenge, SignResponse, SignResult
from .utils import websafe_decode, websafe_encode

__version__ = "1.0.0"

__all__ = [
    "TYPE_REGISTER",
    "TYPE_SIGN",
    "ClientData",
    "verify_client_data",
    "CertificateParseError",
    "ChallengeMismatch",
    "ClientDataRejected",
    "DerError",
    "InvalidDerTag",
    "InvalidEncoding",
    "InvalidPublicKey",
    "InvalidReservedByte",
    "MalformedJson",
    "SignatureVerificationFailed",
    "TruncatedData",
    "UnsupportedDerLength",
    "UntrustedAttestation",
    "UserPresenceNotVerified",
    "ValidationError",
    "RegistrationChallenge",
    "RegistrationData",
    "RegistrationResponse",
    "RegistrationResult",
    "SignatureData",
    "SignChallenge",
    "SignResponse",
    "SignResult",
    "websafe_decode",
    "websafe_encode",
]
