"""Operations against the instance metadata service."""

from __future__ import annotations

import base64
import json
from typing import Any

from .http_client import HttpClient, HttpVerb
from .libtypes import AttestationError, ErrorCode
from .log import log_debug, log_error

IMDS_ENDPOINT = "http://169.254.169.254/metadata"
VCEK_CERT_PATH = "/THIM/amd/certification"


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


def get_vcek_cert(http_client: HttpClient | None = None) -> str:
    """Fetch the VCEK certificate and its chain, returned base64 encoded together."""
    client = http_client if http_client is not None else HttpClient()
    try:
        http_response = client.invoke_imds_request(IMDS_ENDPOINT + VCEK_CERT_PATH, HttpVerb.GET)
    except AttestationError as exc:
        log_error("Failed to retrieve VCek certificate from IMDS: %s", exc.description)
        raise

    try:
        root = json.loads(http_response)
    except ValueError as exc:
        log_error("Invalid JSON reponse from IMDS")
        raise AttestationError(
            ErrorCode.ERROR_INVALID_JSON_RESPONSE, "Invalid JSON reponse from IMDS"
        ) from exc

    if root is None:
        root = {}
    if not isinstance(root, dict):
        log_error("Invalid JSON reponse from IMDS")
        raise AttestationError(
            ErrorCode.ERROR_INVALID_JSON_RESPONSE, "Invalid JSON reponse from IMDS"
        )

    cert = _text(root.get("vcekCert"))
    chain = _text(root.get("certificateChain"))
    if not cert or not chain:
        log_error("Empty VCek cert received from THIM")
        raise AttestationError(
            ErrorCode.ERROR_EMPTY_VCEK_CERT, "Empty VCek cert received from THIM"
        )

    log_debug("VCek cert received from IMDS successfully")
    return base64.b64encode((cert + chain).encode("utf-8")).decode("ascii")