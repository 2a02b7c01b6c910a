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

import abc
import logging
from typing import Iterable, List, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature as _InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.serialization import Encoding

from .errors import UntrustedAttestation

logger = logging.getLogger(__name__)

_DER = Encoding.DER


def verify_x509_chain(chain: List[bytes]) -> None:
    """Verifies a chain of certificates.

    Checks that the first item in the chain is signed by the next, and so on.
    The first item is the leaf, the last is the root.
    """

    if not chain:
        return

    remaining = list(chain)
    child = _load_certificate(remaining.pop(0))

    while remaining:
        issuer = _load_certificate(remaining.pop(0))
        hash_algorithm = child.signature_hash_algorithm
        if hash_algorithm is None:
            raise UntrustedAttestation(
                "attestationCertificate", reason="missing signature hash algorithm"
            )
        try:
            pub = issuer.public_key()
        except (UnsupportedAlgorithm, ValueError) as e:
            raise UntrustedAttestation(
                "attestationCertificate", reason="unsupported issuer key"
            ) from e

        try:
            if isinstance(pub, rsa.RSAPublicKey):
                pub.verify(
                    child.signature,
                    child.tbs_certificate_bytes,
                    padding.PKCS1v15(),
                    hash_algorithm,
                )
            elif isinstance(pub, ec.EllipticCurvePublicKey):
                pub.verify(
                    child.signature,
                    child.tbs_certificate_bytes,
                    ec.ECDSA(hash_algorithm),
                )
            else:
                raise UntrustedAttestation(
                    "attestationCertificate",
                    reason=f"unsupported issuer key type {type(pub).__name__}",
                )
        except _InvalidSignature as e:
            raise UntrustedAttestation(
                "attestationCertificate", reason="certificate signature is invalid"
            ) from e

        child = issuer


def _load_certificate(der: bytes) -> x509.Certificate:
    try:
        return x509.load_der_x509_certificate(der, default_backend())
    except ValueError as e:
        raise UntrustedAttestation("attestationCertificate", reason=str(e)) from e


class AttestationVerifier(abc.ABC):
    """Base class for verifying attestation certificates.

    Override the ca_lookup method to provide a trusted root certificate used
    to verify the attestation certificate of a registration.
    """

    @abc.abstractmethod
    def ca_lookup(self, certificate: x509.Certificate) -> Optional[bytes]:
        """Lookup a CA certificate to be used to verify a trust path.

        :param certificate: The attestation certificate of the registration.
        :return: The DER encoded CA certificate, or None if none is trusted.
        """
        raise NotImplementedError()

    def verify_attestation(self, certificate: x509.Certificate) -> None:
        """Verify that the attestation certificate chains to a trusted CA.

        :param certificate: The attestation certificate of the registration.
        """
        ca = self.ca_lookup(certificate)
        if not ca:
            raise UntrustedAttestation(
                "attestationCertificate", reason="no root found for authenticator"
            )

        leaf = certificate.public_bytes(_DER)
        # A trusted certificate may be the attestation certificate itself.
        if leaf != ca:
            verify_x509_chain([leaf, ca])
        logger.debug("Attestation certificate chains to a trusted root")

    def __call__(self, certificate: x509.Certificate) -> None:
        """Allows passing an instance as attestation_verifier"""
        self.verify_attestation(certificate)


class FixedRootsVerifier(AttestationVerifier):
    """Trusts attestation certificates issued by any of a fixed set of roots.

    :param roots: DER encoded root certificates.
    """

    def __init__(self, roots: Iterable[bytes]):
        self._roots = [_load_certificate(der) for der in roots]

    @classmethod
    def from_pem_bundle(cls, data: bytes) -> FixedRootsVerifier:
        try:
            certificates = x509.load_pem_x509_certificates(data)
        except ValueError as e:
            raise ValueError(f"Invalid attestation root bundle: {e}") from e
        return cls(cert.public_bytes(_DER) for cert in certificates)

    def ca_lookup(self, certificate):
        for root in self._roots:
            if root.subject == certificate.issuer:
                return root.public_bytes(_DER)
        return None
