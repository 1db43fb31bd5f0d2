import base64

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from attestclient.libtypes import AttestationError, ErrorCode
from attestclient.unseal import (
    AUTH_DATA,
    BlockCipherMode,
    BlockCipherPadding,
    CipherAlgorithm,
    EncryptionParameters,
    block_cipher_mode_from_str,
    block_cipher_padding_from_str,
    cipher_algorithm_from_str,
    decrypt_jwt,
    get_encrypted_inner_key,
    get_encrypted_jwt,
    get_encryption_parameters,
)

IV = bytes(range(12))
TAG = bytes(range(16))


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _response(**overrides):
    params = {
        "BlockMode": "ChainingModeGCM",
        "BlockPadding": "PKCS7",
        "Cipher": "AES",
        "KeySizeInBits": 256,
        "Iv": _b64(IV),
    }
    params.update(overrides.pop("params", {}))
    response = {"EncryptionParams": params, "AuthenticationData": _b64(TAG)}
    response.update(overrides)
    return response


def _encrypt(key: bytes, plain: bytes, aad: bytes = AUTH_DATA):
    sealed = AESGCM(key).encrypt(IV, plain, aad)
    return sealed[:-16], sealed[-16:]


def _params(tag: bytes) -> EncryptionParameters:
    return EncryptionParameters(
        block_mode=BlockCipherMode.CHAINING_MODE_GCM,
        block_padding=BlockCipherPadding.PKCS7,
        cipher_alg=CipherAlgorithm.AES,
        key_size=256,
        iv=IV,
        authentication_data=tag,
    )


def test_from_str_known_values():
    assert block_cipher_mode_from_str("ChainingModeGCM") is BlockCipherMode.CHAINING_MODE_GCM
    assert block_cipher_padding_from_str("PKCS7") is BlockCipherPadding.PKCS7
    assert cipher_algorithm_from_str("AES") is CipherAlgorithm.AES


@pytest.mark.parametrize(
    "func",
    [block_cipher_mode_from_str, block_cipher_padding_from_str, cipher_algorithm_from_str],
)
def test_from_str_rejects_unknown(func):
    with pytest.raises(ValueError):
        func("Invalid")


def test_get_encryption_parameters_reads_all_fields():
    params = get_encryption_parameters(_response())
    assert params.block_mode is BlockCipherMode.CHAINING_MODE_GCM
    assert params.block_padding is BlockCipherPadding.PKCS7
    assert params.cipher_alg is CipherAlgorithm.AES
    assert params.key_size == 256
    assert params.iv == IV
    assert params.authentication_data == TAG


def test_missing_encryption_params():
    with pytest.raises(AttestationError) as info:
        get_encryption_parameters({"AuthenticationData": _b64(TAG)})
    assert info.value.description == "Failed to get encryption parameters from response."


@pytest.mark.parametrize(
    "params, description",
    [
        ({"BlockMode": ""}, "Failed to get block mode from encryption parameters"),
        ({"BlockMode": "CBC"}, "Unsupported block mode:CBC"),
        ({"BlockPadding": ""}, "Failed to get block padding from encryption parameters"),
        ({"BlockPadding": "None"}, "Unsupported block padding:None"),
        ({"Cipher": ""}, "Failed to get cipher algorithm from encryption parameters"),
        ({"Cipher": "DES"}, "Unsupported cipher algorithm:DES"),
        ({"KeySizeInBits": 0}, "Failed to get key bits from encryption parameters"),
        ({"Iv": ""}, "Failed to get iv from encryption parameters"),
    ],
)
def test_bad_encryption_params(params, description):
    with pytest.raises(AttestationError) as info:
        get_encryption_parameters(_response(params=params))
    assert info.value.code is ErrorCode.ERROR_RESPONSE_PARSING
    assert info.value.description == description


def test_missing_authentication_data():
    with pytest.raises(AttestationError) as info:
        get_encryption_parameters(_response(AuthenticationData=""))
    assert info.value.description == "Failed to get authentication data response"


def test_get_encrypted_jwt_and_inner_key():
    response = {"Jwt": _b64(b"cipher"), "EncryptedInnerKey": _b64(b"wrapped")}
    assert get_encrypted_jwt(response) == b"cipher"
    assert get_encrypted_inner_key(response) == b"wrapped"


def test_get_encrypted_jwt_missing():
    with pytest.raises(AttestationError) as info:
        get_encrypted_jwt({})
    assert info.value.description == "Failed to get jwt from response."


def test_get_encrypted_inner_key_missing():
    with pytest.raises(AttestationError) as info:
        get_encrypted_inner_key({"EncryptedInnerKey": ""})
    assert info.value.description == "Failed to get encrypted inner key from response."


@pytest.mark.parametrize("key_len", [16, 24, 32])
def test_decrypt_round_trip(key_len):
    key = bytes(range(key_len))
    plain = b"header.claims.signature"
    cipher_text, tag = _encrypt(key, plain)
    assert decrypt_jwt(_params(tag), key, cipher_text) == plain.decode()


def test_decrypt_from_parsed_response():
    key = bytes(32)
    plain = b"a.b.c"
    cipher_text, tag = _encrypt(key, plain)
    response = {
        "EncryptionParams": _response()["EncryptionParams"],
        "AuthenticationData": _b64(tag),
        "Jwt": _b64(cipher_text),
    }
    params = get_encryption_parameters(response)
    assert decrypt_jwt(params, key, get_encrypted_jwt(response)) == "a.b.c"


def test_decrypt_requires_transport_key_aad():
    key = bytes(32)
    cipher_text, tag = _encrypt(key, b"a.b.c", aad=b"other")
    with pytest.raises(AttestationError) as info:
        decrypt_jwt(_params(tag), key, cipher_text)
    assert info.value.code is ErrorCode.ERROR_JWT_DECRYPTION_FAILED


def test_decrypt_wrong_tag():
    key = bytes(32)
    cipher_text, tag = _encrypt(key, b"a.b.c")
    bad_tag = bytes(b ^ 1 for b in tag)
    with pytest.raises(AttestationError):
        decrypt_jwt(_params(bad_tag), key, cipher_text)


def test_decrypt_bad_key_length():
    with pytest.raises(AttestationError) as info:
        decrypt_jwt(_params(TAG), bytes(10), b"data")
    assert info.value.description == "Openssl Error: Failed to get decryption algorithm"


@pytest.mark.parametrize(
    "field, value, description",
    [
        ("block_mode", BlockCipherMode.INVALID, "Error: Unsupported block mode"),
        ("block_padding", BlockCipherPadding.INVALID, "Error: Unsupported block padding"),
        ("cipher_alg", CipherAlgorithm.INVALID, "Error: Unsupported decryption algorithm"),
    ],
)
def test_decrypt_unsupported_parameters(field, value, description):
    params = _params(TAG)
    setattr(params, field, value)
    with pytest.raises(AttestationError) as info:
        decrypt_jwt(params, bytes(32), b"data")
    assert info.value.description == description