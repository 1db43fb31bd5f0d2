"""RSA public key handling for attestation tokens: JWK extraction, PEM conversion, encryption."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .libtypes import AttestationError, ErrorCode
from .log import log_error


def _b64_decode(text: str) -> bytes:
    """Decode base64 or base64url text, with or without padding."""
    cleaned = text.strip().rstrip("=").replace("-", "+").replace("_", "/")
    cleaned += "=" * (-len(cleaned) % 4)
    return base64.b64decode(cleaned, validate=True)


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise TypeError("value cannot be read as a string")


def _member(value: Any, key: str) -> Any:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise TypeError(f"cannot look up {key!r} in a non-object")
    return value.get(key)


def _element(value: Any, index: int) -> Any:
    if value is None:
        return None
    if not isinstance(value, list):
        raise TypeError("cannot index a non-array")
    return value[index] if index < len(value) else None


def extract_jwk_info_from_attestation_jwt(jwt: str) -> tuple[str, str]:
    """Return the base64url ``(n, e)`` of the first runtime key in the JWT claims.

    Absent members yield empty strings.
    """
    if not jwt:
        log_error("Invalid input argument")
        raise AttestationError(ErrorCode.ERROR_EXTRACTING_JWK_INFO, "Invalid input argument")

    tokens = jwt.split(".")
    if len(tokens) < 3:
        log_error("Invalid JWT token")
        raise AttestationError(ErrorCode.ERROR_EXTRACTING_JWK_INFO, "Invalid JWT token")

    try:
        claims = json.loads(_b64_decode(tokens[1]))
    except (ValueError, binascii.Error) as exc:
        log_error("Error parsing the JWT claims")
        raise AttestationError(
            ErrorCode.ERROR_EXTRACTING_JWK_INFO, "Error parsing the JWT claims"
        ) from exc

    try:
        runtime = _member(claims, "x-ms-runtime")
        key = _element(_member(runtime, "keys"), 0)
        n = _as_string(_member(key, "n"))
        e = _as_string(_member(key, "e"))
    except (TypeError, IndexError) as exc:
        log_error("Unexpected error while extracting JWK info from JWT")
        raise AttestationError(
            ErrorCode.ERROR_EXTRACTING_JWK_INFO,
            "Unexpected error while extracting JWK info from JWT",
        ) from exc
    return n, e


def convert_jwk_to_rsa_pub_key(n: str, e: str) -> bytes:
    """Build a PEM SubjectPublicKeyInfo RSA key from base64url modulus and exponent."""
    if not n or not e:
        log_error("Invalid input parameter")
        raise AttestationError(ErrorCode.ERROR_INVALID_INPUT_PARAMETER, "Invalid input parameter")

    try:
        modulus = int.from_bytes(_b64_decode(n), "big")
        exponent = int.from_bytes(_b64_decode(e), "big")
        public_key = rsa.RSAPublicNumbers(exponent, modulus).public_key()
        return public_key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    except (ValueError, binascii.Error) as exc:
        log_error("Error while converting JWK to RSA public key")
        raise AttestationError(
            ErrorCode.ERROR_CONVERTING_JWK_TO_RSA_PUB,
            "Error while converting JWK to RSA public key",
        ) from exc


def encrypt_data_with_rsa_pub_key(pem: bytes | str, data: bytes) -> bytes:
    """Encrypt ``data`` with the PEM RSA public key using PKCS#1 v1.5 padding."""
    if not pem or not data:
        log_error("Invalid input parameter")
        raise AttestationError(ErrorCode.ERROR_INVALID_INPUT_PARAMETER, "Invalid input parameter")

    if isinstance(pem, str):
        pem = pem.encode("ascii", errors="replace")

    try:
        public_key = serialization.load_pem_public_key(pem)
    except (ValueError, TypeError) as exc:
        log_error("EVP_PKEY_encrypt_init failed")
        raise AttestationError(
            ErrorCode.ERROR_EVP_PKEY_ENCRYPT_INIT_FAILED, "EVP_PKEY_encrypt_init failed"
        ) from exc
    if not isinstance(public_key, rsa.RSAPublicKey):
        log_error("EVP_PKEY_encrypt_init failed")
        raise AttestationError(
            ErrorCode.ERROR_EVP_PKEY_ENCRYPT_INIT_FAILED, "EVP_PKEY_encrypt_init failed"
        )

    try:
        return public_key.encrypt(bytes(data), padding.PKCS1v15())
    except ValueError as exc:
        log_error("EVP_PKEY_encrypt failed")
        raise AttestationError(
            ErrorCode.ERROR_EVP_PKEY_ENCRYPT_FAILED, "EVP_PKEY_encrypt failed"
        ) from exc