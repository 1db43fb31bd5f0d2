"""Reading the encrypted token from the service response and decrypting it."""

from __future__ import annotations

import base64
import binascii
import enum
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .constants import (
    JSON_RESPONSE_AUTHENTICATION_DATA_KEY,
    JSON_RESPONSE_BLOCK_KEY_SIZE_KEY,
    JSON_RESPONSE_BLOCK_MODE_CHAINING_GCM_VALUE,
    JSON_RESPONSE_BLOCK_MODE_KEY,
    JSON_RESPONSE_BLOCK_PADDING_KEY,
    JSON_RESPONSE_BLOCK_PADDING_PKCS7_VALUE,
    JSON_RESPONSE_CIPHER_AES_VALUE,
    JSON_RESPONSE_CIPHER_KEY,
    JSON_RESPONSE_ENC_INNER_KEY_KEY,
    JSON_RESPONSE_EXCRYPTION_PARAMETERS_KEY,
    JSON_RESPONSE_IV_KEY,
    JSON_RESPONSE_JWT_KEY,
)
from .libtypes import AttestationError, ErrorCode
from .log import log_error

AUTH_DATA = b"Transport Key"
"""Additional authenticated data bound to every encrypted token."""

_AES_GCM_KEY_SIZES = (128 // 8, 192 // 8, 256 // 8)


class BlockCipherMode(enum.Enum):
    """Block mode used for symmetric encryption of the token."""

    CHAINING_MODE_GCM = JSON_RESPONSE_BLOCK_MODE_CHAINING_GCM_VALUE
    INVALID = "Invalid"


class CipherAlgorithm(enum.Enum):
    """Symmetric algorithm used for the token."""

    AES = JSON_RESPONSE_CIPHER_AES_VALUE
    INVALID = "Invalid"


class BlockCipherPadding(enum.Enum):
    """Padding scheme used for the token."""

    PKCS7 = JSON_RESPONSE_BLOCK_PADDING_PKCS7_VALUE
    INVALID = "Invalid"


def block_cipher_mode_from_str(text: str) -> BlockCipherMode:
    """Map the wire name of a block mode to its enum member."""
    if text == JSON_RESPONSE_BLOCK_MODE_CHAINING_GCM_VALUE:
        return BlockCipherMode.CHAINING_MODE_GCM
    log_error("Invalid Block mode")
    raise ValueError(f"invalid block mode: {text!r}")


def block_cipher_padding_from_str(text: str) -> BlockCipherPadding:
    """Map the wire name of a padding scheme to its enum member."""
    if text == JSON_RESPONSE_BLOCK_PADDING_PKCS7_VALUE:
        return BlockCipherPadding.PKCS7
    log_error("Invalid Block padding")
    raise ValueError(f"invalid block padding: {text!r}")


def cipher_algorithm_from_str(text: str) -> CipherAlgorithm:
    """Map the wire name of a cipher to its enum member."""
    if text == JSON_RESPONSE_CIPHER_AES_VALUE:
        return CipherAlgorithm.AES
    log_error("Invalid Cipher Algorithm")
    raise ValueError(f"invalid cipher algorithm: {text!r}")


@dataclass
class EncryptionParameters:
    """How the token was encrypted, as needed to decrypt it."""

    block_mode: BlockCipherMode = BlockCipherMode.INVALID
    block_padding: BlockCipherPadding = BlockCipherPadding.INVALID
    cipher_alg: CipherAlgorithm = CipherAlgorithm.INVALID
    key_size: int = 0
    iv: bytes = b""
    authentication_data: bytes = b""


def _parse_error(message: str) -> AttestationError:
    log_error(message)
    return AttestationError(ErrorCode.ERROR_RESPONSE_PARSING, message)


def _text(obj: dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise _parse_error(f"Value of {key} is not a string")


def _int(obj: dict[str, Any], key: str) -> int:
    value = obj.get(key)
    if value is None:
        return 0
    if isinstance(value, (bool, int, float)):
        return int(value)
    return 0


def _b64(text: str, what: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise _parse_error(f"Failed to decode {what} from response") from exc


def _require_object(json_obj: Any) -> dict[str, Any]:
    if not isinstance(json_obj, dict):
        raise _parse_error("Response is not a JSON object")
    return json_obj


def get_encryption_parameters(json_obj: dict[str, Any]) -> EncryptionParameters:
    """Read the encryption parameters and authentication tag from a service response."""
    response = _require_object(json_obj)
    params_obj = response.get(JSON_RESPONSE_EXCRYPTION_PARAMETERS_KEY)
    if params_obj is None:
        log_error("Encryption parameters not found in response")
        raise AttestationError(
            ErrorCode.ERROR_RESPONSE_PARSING,
            "Failed to get encryption parameters from response.",
        )
    params_obj = _require_object(params_obj)

    block_mode_str = _text(params_obj, JSON_RESPONSE_BLOCK_MODE_KEY)
    if not block_mode_str:
        log_error("Block mode not found encryption parameters")
        raise AttestationError(
            ErrorCode.ERROR_RESPONSE_PARSING,
            "Failed to get block mode from encryption parameters",
        )
    try:
        block_mode = block_cipher_mode_from_str(block_mode_str)
    except ValueError as exc:
        raise _parse_error("Unsupported block mode:" + block_mode_str) from exc

    padding_str = _text(params_obj, JSON_RESPONSE_BLOCK_PADDING_KEY)
    if not padding_str:
        log_error("Block padding not found encryption parameters")
        raise AttestationError(
            ErrorCode.ERROR_RESPONSE_PARSING,
            "Failed to get block padding from encryption parameters",
        )
    try:
        block_padding = block_cipher_padding_from_str(padding_str)
    except ValueError as exc:
        raise _parse_error("Unsupported block padding:" + padding_str) from exc

    cipher_str = _text(params_obj, JSON_RESPONSE_CIPHER_KEY)
    if not cipher_str:
        log_error("Cipher algorithm not found encryption parameters")
        raise AttestationError(
            ErrorCode.ERROR_RESPONSE_PARSING,
            "Failed to get cipher algorithm from encryption parameters",
        )
    try:
        cipher = cipher_algorithm_from_str(cipher_str)
    except ValueError as exc:
        raise _parse_error("Unsupported cipher algorithm:" + cipher_str) from exc

    key_bits = _int(params_obj, JSON_RESPONSE_BLOCK_KEY_SIZE_KEY)
    if key_bits == 0:
        raise _parse_error("Failed to get key bits from encryption parameters")

    iv_str = _text(params_obj, JSON_RESPONSE_IV_KEY)
    if not iv_str:
        raise _parse_error("Failed to get iv from encryption parameters")

    auth_str = _text(response, JSON_RESPONSE_AUTHENTICATION_DATA_KEY)
    if not auth_str:
        raise _parse_error("Failed to get authentication data response")

    return EncryptionParameters(
        block_mode=block_mode,
        block_padding=block_padding,
        cipher_alg=cipher,
        key_size=key_bits,
        iv=_b64(iv_str, "iv"),
        authentication_data=_b64(auth_str, "authentication data"),
    )


def get_encrypted_jwt(json_obj: dict[str, Any]) -> bytes:
    """Return the decoded encrypted token carried in a service response."""
    response = _require_object(json_obj)
    jwt_str = _text(response, JSON_RESPONSE_JWT_KEY)
    if not jwt_str:
        raise _parse_error("Failed to get jwt from response.")
    return _b64(jwt_str, "jwt")


def get_encrypted_inner_key(json_obj: dict[str, Any]) -> bytes:
    """Return the decoded encrypted symmetric key carried in a service response."""
    response = _require_object(json_obj)
    key_str = _text(response, JSON_RESPONSE_ENC_INNER_KEY_KEY)
    if not key_str:
        raise _parse_error("Failed to get encrypted inner key from response.")
    return _b64(key_str, "encrypted inner key")


def _decrypt_error(message: str) -> AttestationError:
    log_error(message)
    return AttestationError(ErrorCode.ERROR_JWT_DECRYPTION_FAILED, message)


def decrypt_jwt(
    encryption_params: EncryptionParameters, key: bytes, jwt_encrypted: bytes
) -> str:
    """Decrypt the token with AES-GCM, authenticating it against the stored tag."""
    if encryption_params.block_mode is not BlockCipherMode.CHAINING_MODE_GCM:
        raise _decrypt_error("Error: Unsupported block mode")
    if encryption_params.block_padding is not BlockCipherPadding.PKCS7:
        raise _decrypt_error("Error: Unsupported block padding")
    if encryption_params.cipher_alg is not CipherAlgorithm.AES:
        raise _decrypt_error("Error: Unsupported decryption algorithm")
    if len(key) not in _AES_GCM_KEY_SIZES:
        raise _decrypt_error("Openssl Error: Failed to get decryption algorithm")

    try:
        mode = modes.GCM(
            bytes(encryption_params.iv),
            bytes(encryption_params.authentication_data),
            min_tag_length=4,
        )
        decryptor = Cipher(algorithms.AES(bytes(key)), mode).decryptor()
        decryptor.authenticate_additional_data(AUTH_DATA)
        plain = decryptor.update(bytes(jwt_encrypted)) + decryptor.finalize()
    except InvalidTag as exc:
        raise _decrypt_error("Openssl Error:authentication tag mismatch") from exc
    except ValueError as exc:
        raise _decrypt_error(f"Openssl Error:{exc}") from exc

    return plain.decode("utf-8", errors="surrogateescape")