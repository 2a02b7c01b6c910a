import json
import struct

import pytest

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from u2fserver.client_data import TYPE_REGISTER, TYPE_SIGN, verify_client_data
from u2fserver.errors import (
    ChallengeMismatch,
    ClientDataRejected,
    InvalidEncoding,
    InvalidPublicKey,
    MalformedJson,
    SignatureVerificationFailed,
    TruncatedData,
    UserPresenceNotVerified,
)
from u2fserver.register import RegistrationChallenge
from u2fserver.sign import SignatureData, SignChallenge, SignResponse
from u2fserver.utils import websafe_decode, websafe_encode

from conftest import APP_ID


@pytest.fixture
def registration(device, challenge, key_handle):
    response = device.register(APP_ID, challenge, key_handle=key_handle)
    return RegistrationChallenge(APP_ID, challenge).validate_response(response)


def _sign_challenge(registration, challenge):
    return SignChallenge(
        APP_ID, registration.key_handle, registration.user_public_key_pem, challenge
    )


def _with_signature_data(response, data: bytes):
    return dict(response, signatureData=websafe_encode(data))


def test_generate_sign_request():
    request = SignChallenge("https://example.com", "a2V5", "", bytes(32))
    assert request.generate() == (
        b'{"version":"U2F_V2","appId":"https://example.com","keyHandle":"a2V5",'
        b'"challenge":"AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"}'
    )


def test_validate_sign(device, registration, challenge, key_handle):
    device.counter = 41
    response = device.authenticate(APP_ID, key_handle, challenge)

    result = _sign_challenge(registration, challenge).validate_response(json.dumps(response))

    assert result.counter == 42
    assert result.user_presence == 0x01
    assert result.client_data_json == websafe_decode(response["clientData"]).decode("utf-8")


@pytest.mark.parametrize("wrap", [json.dumps, dict, SignResponse.from_dict])
def test_validate_sign_response_forms(device, registration, challenge, key_handle, wrap):
    response = device.authenticate(APP_ID, key_handle, challenge)
    _sign_challenge(registration, challenge).validate_response(wrap(response))


def test_counter_is_reported_for_each_authentication(device, registration, key_handle):
    for expected in (1, 2, 3):
        challenge = bytes([expected]) * 32
        response = device.authenticate(APP_ID, key_handle, challenge)
        result = _sign_challenge(registration, challenge).validate_response(response)
        assert result.counter == expected


def test_maximum_counter(device, registration, challenge, key_handle):
    device.counter = 0xFFFFFFFE
    response = device.authenticate(APP_ID, key_handle, challenge)
    result = _sign_challenge(registration, challenge).validate_response(response)
    assert result.counter == 0xFFFFFFFF


def test_signature_data_layout(device, registration, challenge, key_handle):
    device.counter = 0x01020303
    response = device.authenticate(APP_ID, key_handle, challenge)
    data = SignatureData.from_b64(response["signatureData"])

    assert data.user_presence == 0x01
    assert data.counter_bytes == b"\x01\x02\x03\x04"
    assert data.counter == 0x01020304
    assert data.signature.startswith(b"\x30")


def test_modified_counter_fails(device, registration, challenge, key_handle):
    response = device.authenticate(APP_ID, key_handle, challenge)
    data = bytearray(websafe_decode(response["signatureData"]))
    data[1:5] = struct.pack(">I", 1000)

    with pytest.raises(SignatureVerificationFailed):
        _sign_challenge(registration, challenge).validate_response(
            _with_signature_data(response, bytes(data))
        )


def test_user_presence_not_verified(device, registration, challenge, key_handle):
    response = device.authenticate(APP_ID, key_handle, challenge, user_presence=0x00)

    with pytest.raises(UserPresenceNotVerified) as exc_info:
        _sign_challenge(registration, challenge).validate_response(response)
    assert exc_info.value.expected == 0x01
    assert exc_info.value.actual == 0x00
    assert "expected 0x01, got 0x00" in str(exc_info.value)


def test_challenge_mismatch(device, registration, challenge, key_handle):
    response = device.authenticate(APP_ID, key_handle, b"\xff" * 32)
    with pytest.raises(ChallengeMismatch):
        _sign_challenge(registration, challenge).validate_response(response)


def test_challenge_is_checked_before_signature_data(device, registration, challenge, key_handle):
    response = device.authenticate(APP_ID, key_handle, b"\xff" * 32, user_presence=0x00)
    with pytest.raises(ChallengeMismatch):
        _sign_challenge(registration, challenge).validate_response(response)


def test_wrong_app_id_fails(device, registration, challenge, key_handle):
    response = device.authenticate("https://other.example.com", key_handle, challenge)
    with pytest.raises(SignatureVerificationFailed):
        _sign_challenge(registration, challenge).validate_response(response)


def test_wrong_public_key_fails(device, registration, challenge, key_handle):
    other_key = ec.generate_private_key(ec.SECP256R1()).public_key()
    other_pem = other_key.public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode("ascii")
    response = device.authenticate(APP_ID, key_handle, challenge)

    request = SignChallenge(APP_ID, registration.key_handle, other_pem, challenge)
    with pytest.raises(SignatureVerificationFailed):
        request.validate_response(response)


def test_invalid_registered_public_key(device, registration, challenge, key_handle):
    response = device.authenticate(APP_ID, key_handle, challenge)
    request = SignChallenge(APP_ID, registration.key_handle, "not a key", challenge)

    with pytest.raises(InvalidPublicKey) as exc_info:
        request.validate_response(response)
    assert exc_info.value.field == "registeredPublicKey"


@pytest.mark.parametrize("length", [0, 1, 3])
def test_truncated_signature_data(device, registration, challenge, key_handle, length):
    response = device.authenticate(APP_ID, key_handle, challenge)
    data = websafe_decode(response["signatureData"])[:length]

    with pytest.raises(TruncatedData):
        _sign_challenge(registration, challenge).validate_response(
            _with_signature_data(response, data)
        )


@pytest.mark.parametrize("signature", [b"", b"\x30\x02\x01\x01", b"\x00" * 70])
def test_malformed_signature_fails(device, registration, challenge, key_handle, signature):
    response = device.authenticate(APP_ID, key_handle, challenge)
    data = websafe_decode(response["signatureData"])[:5] + signature

    with pytest.raises(SignatureVerificationFailed):
        _sign_challenge(registration, challenge).validate_response(
            _with_signature_data(response, data)
        )


@pytest.mark.parametrize(
    "response",
    [b"{", b'"text"', b'{"signatureData": "AQ"}', b'{"signatureData": null, "clientData": "e30"}'],
)
def test_malformed_response_json(registration, challenge, response):
    with pytest.raises(MalformedJson):
        _sign_challenge(registration, challenge).validate_response(response)


def test_deeply_nested_response(registration, challenge):
    with pytest.raises(MalformedJson) as exc_info:
        _sign_challenge(registration, challenge).validate_response(b"[" * 200000)
    assert exc_info.value.field == "signResponse"


def test_surrogate_challenge_in_client_data(device, registration, challenge, key_handle):
    response = device.authenticate(APP_ID, key_handle, challenge)
    response["clientData"] = websafe_encode(b'{"challenge": "\\ud800"}')
    with pytest.raises(ChallengeMismatch):
        _sign_challenge(registration, challenge).validate_response(response)


def test_invalid_signature_data_encoding(device, registration, challenge, key_handle):
    response = device.authenticate(APP_ID, key_handle, challenge)
    response["signatureData"] = "A"
    with pytest.raises(InvalidEncoding) as exc_info:
        _sign_challenge(registration, challenge).validate_response(response)
    assert exc_info.value.field == "signatureData"


def test_opt_in_type_check(device, registration, challenge, key_handle):
    check = verify_client_data(typ=TYPE_SIGN)
    request = _sign_challenge(registration, challenge)

    request.validate_response(
        device.authenticate(APP_ID, key_handle, challenge), client_data_check=check
    )

    response = device.authenticate(APP_ID, key_handle, challenge, typ=TYPE_REGISTER)
    request.validate_response(response)
    with pytest.raises(ClientDataRejected):
        request.validate_response(response, client_data_check=check)


def test_error_message_does_not_leak_data(device, registration, challenge, key_handle):
    response = device.authenticate(APP_ID, key_handle, challenge)
    data = bytearray(websafe_decode(response["signatureData"]))
    data[-1] ^= 0xFF

    with pytest.raises(SignatureVerificationFailed) as exc_info:
        _sign_challenge(registration, challenge).validate_response(
            _with_signature_data(response, bytes(data))
        )
    assert str(exc_info.value) == "Invalid signature in signatureData"
