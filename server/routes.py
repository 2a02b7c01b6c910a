"""Routes for the registration and authentication validation flows."""
from __future__ import annotations

import binascii
import json
import os
from typing import Any, Mapping, Tuple

from flask import jsonify, request

from u2fserver.client_data import TYPE_REGISTER, TYPE_SIGN
from u2fserver.errors import ValidationError
from u2fserver.register import RegistrationChallenge
from u2fserver.sign import SignChallenge

from .config import (
    app,
    build_client_data_check,
    determine_app_id,
    get_attestation_verifier,
)

CHALLENGE_LENGTH = 32


class BadRequest(Exception):
    """The request is missing parameters or is not valid JSON."""


def _load_params() -> Mapping[str, Any]:
    body = request.get_data()
    try:
        params = json.loads(body)
    except ValueError as exc:
        raise BadRequest(f"Unable to parse JSON : {exc}") from exc
    except RecursionError as exc:
        raise BadRequest("Unable to parse JSON : nesting too deep") from exc
    if not isinstance(params, dict):
        raise BadRequest("Expected a JSON object.")
    return params


def _require_app_id(params: Mapping[str, Any]) -> str:
    app_id = determine_app_id(params.get("applicationId"))
    if not app_id:
        raise BadRequest("Missing applicationId")
    return app_id


def _require_challenge(params: Mapping[str, Any]) -> bytes:
    challenge_hex = params.get("challenge")
    if not isinstance(challenge_hex, str) or not challenge_hex:
        raise BadRequest("Missing challenge")
    try:
        return binascii.unhexlify(challenge_hex)
    except (binascii.Error, ValueError) as exc:
        raise BadRequest("Invalid challenge") from exc


def _require_response(params: Mapping[str, Any], key: str) -> Any:
    value = params.get(key)
    if value is None:
        raise BadRequest(f"Missing {key}")
    return value


def _validation_failed(exc: ValidationError) -> Tuple[Any, int]:
    app.logger.warning("U2F validation failed (%s): %s", exc.code, exc)
    return jsonify({"error": str(exc), "code": exc.code}), 400


@app.errorhandler(BadRequest)
def _bad_request(exc: BadRequest):
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(500)
def _internal_error(exc):
    # Flask has already logged the exception through app.logger.
    return jsonify({"error": "Unable to process request."}), 500


@app.route("/register/begin", methods=["POST"])
def register_begin():
    params = _load_params()
    app_id = _require_app_id(params)
    challenge = os.urandom(CHALLENGE_LENGTH)
    registration = RegistrationChallenge(app_id, challenge)
    return jsonify({"challenge": challenge.hex(), "request": registration.to_dict()})


@app.route("/register", methods=["POST"])
def register():
    params = _load_params()
    app_id = _require_app_id(params)
    challenge = _require_challenge(params)
    response = _require_response(params, "registerResponse")

    registration = RegistrationChallenge(app_id, challenge)
    try:
        result = registration.validate_response(
            response,
            client_data_check=build_client_data_check(TYPE_REGISTER),
            attestation_verifier=get_attestation_verifier(),
        )
    except ValidationError as exc:
        return _validation_failed(exc)

    return jsonify(
        {
            "clientData": result.client_data_json,
            "keyHandle": result.key_handle,
            "publicKey": result.user_public_key_pem,
        }
    )


@app.route("/authenticate/begin", methods=["POST"])
def authenticate_begin():
    params = _load_params()
    app_id = _require_app_id(params)
    key_handle = params.get("keyHandle")
    if not isinstance(key_handle, str) or not key_handle:
        raise BadRequest("Missing keyHandle")
    challenge = os.urandom(CHALLENGE_LENGTH)
    sign_request = SignChallenge(app_id, key_handle, "", challenge)
    return jsonify({"challenge": challenge.hex(), "request": sign_request.to_dict()})


@app.route("/authenticate", methods=["POST"])
def authenticate():
    params = _load_params()
    app_id = _require_app_id(params)
    challenge = _require_challenge(params)
    public_key = params.get("publicKey")
    if not isinstance(public_key, str) or not public_key:
        raise BadRequest("Missing publicKey")
    response = _require_response(params, "signResponse")

    sign_request = SignChallenge(app_id, params.get("keyHandle") or "", public_key, challenge)
    try:
        result = sign_request.validate_response(
            response, client_data_check=build_client_data_check(TYPE_SIGN)
        )
    except ValidationError as exc:
        return _validation_failed(exc)

    return jsonify(
        {
            "clientData": result.client_data_json,
            "counter": result.counter,
            "userPresence": result.user_presence,
        }
    )
