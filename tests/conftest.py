"""Shared fixtures providing a software U2F authenticator."""
from __future__ import annotations

import json
import os
import struct
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Union

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from u2fserver.client_data import TYPE_REGISTER, TYPE_SIGN
from u2fserver.utils import sha256, websafe_encode

APP_ID = "https://example.com"


def make_certificate(
    subject_key,
    common_name: str,
    *,
    issuer_key=None,
    issuer_name: Optional[x509.Name] = None,
    ca: bool = False,
) -> x509.Certificate:
    """Build a certificate for ``subject_key``, self-signed unless an issuer is given."""

    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name or subject)
        .public_key(subject_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
    )
    if ca:
        builder = builder.add_extension(
            x509.BasicConstraints(ca=True, path_length=None), critical=True
        )
    return builder.sign(issuer_key or subject_key, hashes.SHA256())


def make_client_data(typ: str, challenge: Union[bytes, str], origin: str) -> bytes:
    if isinstance(challenge, bytes):
        challenge = websafe_encode(challenge)
    return json.dumps({"typ": typ, "challenge": challenge, "origin": origin}).encode("utf-8")


def raw_public_key(private_key) -> bytes:
    return private_key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )


class SoftU2FDevice:
    """A U2F authenticator implemented in software.

    Produces registration and sign responses in the format the U2F client
    hands to the relying party.
    """

    def __init__(self, attestation_key=None, attestation_certificate=None, counter: int = 0):
        self.attestation_key = attestation_key or ec.generate_private_key(ec.SECP256R1())
        self.attestation_certificate = attestation_certificate or make_certificate(
            self.attestation_key, "Soft U2F Attestation"
        )
        self.counter = counter
        self.credentials: Dict[bytes, ec.EllipticCurvePrivateKey] = {}

    def registration_data(
        self,
        app_id: str,
        client_data: bytes,
        key_handle: bytes,
        user_public_key: Optional[bytes] = None,
        reserved_byte: int = 0x05,
    ) -> bytes:
        credential_key = ec.generate_private_key(ec.SECP256R1())
        self.credentials[key_handle] = credential_key
        if user_public_key is None:
            user_public_key = raw_public_key(credential_key)

        signed = (
            b"\0"
            + sha256(app_id.encode("utf-8"))
            + sha256(client_data)
            + key_handle
            + user_public_key
        )
        signature = self.attestation_key.sign(signed, ec.ECDSA(hashes.SHA256()))
        certificate_der = self.attestation_certificate.public_bytes(serialization.Encoding.DER)
        return (
            bytes([reserved_byte])
            + user_public_key
            + bytes([len(key_handle)])
            + key_handle
            + certificate_der
            + signature
        )

    def register(
        self,
        app_id: str,
        challenge: Union[bytes, str],
        key_handle: Optional[bytes] = None,
        origin: Optional[str] = None,
        typ: str = TYPE_REGISTER,
    ) -> Dict[str, str]:
        client_data = make_client_data(typ, challenge, origin or app_id)
        data = self.registration_data(app_id, client_data, key_handle or os.urandom(64))
        return {
            "registrationData": websafe_encode(data),
            "clientData": websafe_encode(client_data),
        }

    def public_key_pem(self, key_handle: bytes) -> str:
        return (
            self.credentials[key_handle]
            .public_key()
            .public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            .decode("ascii")
        )

    def signature_data(
        self,
        app_id: str,
        client_data: bytes,
        key_handle: bytes,
        user_presence: int = 0x01,
    ) -> bytes:
        self.counter += 1
        counter = struct.pack(">I", self.counter)
        signed = (
            sha256(app_id.encode("utf-8"))
            + bytes([user_presence])
            + counter
            + sha256(client_data)
        )
        signature = self.credentials[key_handle].sign(signed, ec.ECDSA(hashes.SHA256()))
        return bytes([user_presence]) + counter + signature

    def authenticate(
        self,
        app_id: str,
        key_handle: bytes,
        challenge: Union[bytes, str],
        origin: Optional[str] = None,
        typ: str = TYPE_SIGN,
        user_presence: int = 0x01,
    ) -> Dict[str, str]:
        client_data = make_client_data(typ, challenge, origin or app_id)
        data = self.signature_data(app_id, client_data, key_handle, user_presence)
        return {
            "signatureData": websafe_encode(data),
            "clientData": websafe_encode(client_data),
        }


@pytest.fixture
def device() -> SoftU2FDevice:
    return SoftU2FDevice()


@pytest.fixture
def challenge() -> bytes:
    return os.urandom(32)


@pytest.fixture
def key_handle() -> bytes:
    return os.urandom(64)
