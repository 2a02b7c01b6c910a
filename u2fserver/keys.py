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

from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from .errors import InvalidPublicKey

# SubjectPublicKeyInfo prefix for an uncompressed P-256 point:
# SEQUENCE { SEQUENCE { id-ecPublicKey, prime256v1 }, BIT STRING (66 bytes) }
SPKI_P256_HEADER = bytes.fromhex(
    "3059"
    "3013"
    "06072a8648ce3d0201"
    "06082a8648ce3d030107"
    "034200"
)

USER_PUBLIC_KEY_LENGTH = 65


class P256PublicKey:
    """A U2F credential public key (ECDSA on NIST P-256).

    :param public_key: A Cryptography EC public key on SECP256R1.
    """

    _HASH_ALG = hashes.SHA256()

    def __init__(self, public_key: ec.EllipticCurvePublicKey, field: str = "publicKey"):
        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            raise InvalidPublicKey(field, reason="not an elliptic curve key")
        if not isinstance(public_key.curve, ec.SECP256R1):
            raise InvalidPublicKey(field, reason=f"unsupported curve {public_key.curve.name}")
        self._public_key = public_key

    @classmethod
    def from_ctap1(cls, data: bytes, field: str = "userPublicKey") -> P256PublicKey:
        """Creates a key from a CTAP1 formatted public key byte string.

        The raw point is wrapped in a fixed SubjectPublicKeyInfo header and
        loaded, which rejects points that are not on the curve.

        :param data: A 65 byte uncompressed SECP256R1 point.
        :return: A P256PublicKey.
        """
        der = SPKI_P256_HEADER + bytes(data)
        try:
            public_key = serialization.load_der_public_key(der, default_backend())
        except (ValueError, UnsupportedAlgorithm) as e:
            raise InvalidPublicKey(field, reason=str(e) or "invalid curve point") from e
        return cls(public_key, field)  # type: ignore[arg-type]

    @classmethod
    def from_pem(cls, pem: Union[str, bytes], field: str = "publicKey") -> P256PublicKey:
        """Loads a key from a ``PUBLIC KEY`` PEM document.

        :param pem: PEM text as returned from a registration.
        :return: A P256PublicKey.
        """
        if isinstance(pem, str):
            try:
                pem = pem.encode("ascii")
            except UnicodeEncodeError as e:
                raise InvalidPublicKey(field, reason="non-ASCII PEM data") from e
        try:
            public_key = serialization.load_pem_public_key(pem, default_backend())
        except (ValueError, UnsupportedAlgorithm) as e:
            raise InvalidPublicKey(field, reason="unable to load PEM public key") from e
        return cls(public_key, field)  # type: ignore[arg-type]

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._public_key

    @property
    def raw(self) -> bytes:
        """The uncompressed point, as sent by the device."""
        return self._public_key.public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )

    def to_pem(self) -> str:
        return self._public_key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def verify(self, message: bytes, signature: bytes) -> None:
        """Validates an ECDSA-SHA256 signature over a message.

        :param message: The message which was signed.
        :param signature: The DER encoded signature to check.
        """
        self._public_key.verify(signature, message, ec.ECDSA(self._HASH_ALG))

    def verify_digest(self, digest: bytes, signature: bytes) -> None:
        """Validates an ECDSA signature over an already computed SHA256 digest.

        :param digest: The 32 byte digest which was signed.
        :param signature: The DER encoded signature to check.
        """
        self._public_key.verify(signature, digest, ec.ECDSA(Prehashed(self._HASH_ALG)))

    def __eq__(self, other):
        if not isinstance(other, P256PublicKey):
            return NotImplemented
        return self.raw == other.raw

    def __hash__(self):
        return hash(self.raw)

    def __repr__(self):
        return f"{type(self).__name__}({self.raw.hex()})"
