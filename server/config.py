"""Configuration and application setup for the U2F validation server."""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Set

from flask import Flask

from u2fserver.attestation import FixedRootsVerifier
from u2fserver.client_data import ClientDataCheck, verify_client_data

app = Flask(__name__)


def _env_flag(name: str) -> Optional[bool]:
    """Return ``True`` or ``False`` when the named env var is explicitly set."""

    raw_value = os.environ.get(name)
    if raw_value is None:
        return None

    normalised = raw_value.strip().lower()
    if normalised in {"", "0", "false", "off", "no"}:
        return False
    return True


def _parse_trusted_facets(raw_value: Optional[str]) -> Optional[Set[str]]:
    """Normalise a comma or newline separated list of facet origins."""

    if raw_value is None:
        return None

    components = re.split(r"[,;\n]+", raw_value)
    facets = {component.strip().rstrip("/") for component in components if component.strip()}
    if not facets:
        return None
    return facets


def _parse_port(raw_value: Optional[str]) -> int:
    if not raw_value:
        return 8080
    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"U2F_SERVER_PORT must be an integer, got {raw_value!r}") from exc


app.config.setdefault("U2F_SERVER_APP_ID", os.environ.get("U2F_SERVER_APP_ID"))
app.config.setdefault(
    "U2F_SERVER_TRUSTED_FACETS",
    _parse_trusted_facets(os.environ.get("U2F_SERVER_TRUSTED_FACETS")),
)
app.config.setdefault(
    "U2F_SERVER_VERIFY_CLIENT_DATA_TYPE",
    bool(_env_flag("U2F_SERVER_VERIFY_CLIENT_DATA_TYPE")),
)
app.config.setdefault(
    "U2F_SERVER_ATTESTATION_ROOTS", os.environ.get("U2F_SERVER_ATTESTATION_ROOTS")
)
app.config.setdefault("U2F_SERVER_HOST", os.environ.get("U2F_SERVER_HOST", "0.0.0.0"))
app.config.setdefault("U2F_SERVER_PORT", _parse_port(os.environ.get("U2F_SERVER_PORT")))


def determine_app_id(explicit_id: Optional[str] = None) -> Optional[str]:
    """Resolve the application ID for the current request."""

    if isinstance(explicit_id, str) and explicit_id.strip():
        return explicit_id.strip()

    configured_id = app.config.get("U2F_SERVER_APP_ID")
    if isinstance(configured_id, str) and configured_id.strip():
        return configured_id.strip()

    return None


def build_client_data_check(typ: str) -> Optional[ClientDataCheck]:
    """Create the configured opt-in client data check, if any."""

    facets = app.config.get("U2F_SERVER_TRUSTED_FACETS")
    check_type = app.config.get("U2F_SERVER_VERIFY_CLIENT_DATA_TYPE")
    if not facets and not check_type:
        return None
    return verify_client_data(
        typ=typ if check_type else None,
        origins=facets or None,
    )


_attestation_verifier_cache: dict = {}


def get_attestation_verifier() -> Optional[FixedRootsVerifier]:
    """Load the configured attestation roots, caching them per bundle path."""

    path = app.config.get("U2F_SERVER_ATTESTATION_ROOTS")
    if not path:
        return None

    verifier = _attestation_verifier_cache.get(path)
    if verifier is None:
        verifier = FixedRootsVerifier.from_pem_bundle(Path(path).read_bytes())
        _attestation_verifier_cache[path] = verifier
        app.logger.info("Loaded attestation roots from %s", path)
    return verifier


__all__ = [
    "app",
    "build_client_data_check",
    "determine_app_id",
    "get_attestation_verifier",
]
