# attestclient

`attestclient` is a library of building blocks for guest attestation. It puts together
the evidence a virtual machine sends to an attestation service as the JSON the service
expects. It sends requests to the service and to the instance metadata service. It also
decrypts the token the service returns.

## Installation

```
pip install attestclient
```

To install the test tools as well: `pip install "attestclient[test]"`.

## Modules

- `attestclient.libtypes`
  - `ErrorCode`: an `IntEnum` of the library's error codes.
  - `AttestationError`: the exception raised for attestation failures. It has `code`
    (an `ErrorCode`), `description` and `tpm_error_code`.
  - `OsType`, `EncryptionType`, the `OsInfo` and `ClientParameters` dataclasses, and
    `CLIENT_PARAMS_VERSION`.
- `attestclient.constants`: the JSON keys and values used on the wire.
- `attestclient.log`
  - `AttestationLogger`: an abstract base class. Subclass it and implement `log()`,
    which receives the tag, the `LogLevel`, the calling function and line, and a
    printf-style format with its arguments.
  - `set_logger()` installs a logger. The first one installed stays until
    `reset_logger()` is called.
  - `get_logger()` returns the installed logger.
  - `log_error`, `log_warn`, `log_info` and `log_debug` forward messages to the
    installed logger. They do nothing when no logger is installed.
- `attestclient.osinfo`
  - `get_attestation_pcr_list()`: PCRs 0–7 on Unix-like systems. On Windows it adds
    PCRs 11–14.
  - `parse_os_release_file(path, delim="=")`: returns a dict of key/value pairs, with
    double quotes removed from the values.
  - `parse_version_string("20.04")`: returns `(20, 4)`.
  - `get_windows_version()`: returns the fixed value `(10, 0, "NotApplicable")`.
  - Bad input raises `ValueError`. A file that cannot be opened raises `OSError`.
- `attestclient.urls`: `parse_url()` returns the host of an attestation URL, without
  the scheme, port, path or query.
- `attestclient.jwk`
  - `extract_jwk_info_from_attestation_jwt()`: returns the base64url `(n, e)` of the
    first key under `x-ms-runtime.keys` in the JWT claims.
  - `convert_jwk_to_rsa_pub_key()`: turns `(n, e)` into a PEM public key.
  - `encrypt_data_with_rsa_pub_key()`: encrypts bytes with that key, using PKCS#1 v1.5
    padding.
- `attestclient.http_client`
  - `send_request(url, payload, session=None, sleep=time.sleep)`: POSTs JSON to the
    attestation service. Server errors (5xx) are retried three times, after waits of
    5, 10 and 20 seconds.
  - `HttpClient(session=None, sleep=time.sleep).invoke_imds_request(url, verb, request_body)`:
    sends a request to the instance metadata service with the `Metadata: true` header.
    Status 404, 429 and 5xx are retried three times, after waits of 30, 60 and 120
    seconds.
  - `HttpVerb`: the request method for `invoke_imds_request()`.
  - `parse_error_message()`: returns `code:message` from a JSON error body, or `""`
    when the body has none.
- `attestclient.imds`: `get_vcek_cert(http_client=None)` fetches the VCEK certificate
  and its chain, and returns them base64 encoded together.
- `attestclient.parameters`
  - `PcrValue`, `PcrSet`, `PcrQuote`, `EphemeralKey`, `TpmInfo`, `IsolationType`,
    `IsolationInfo` and `AttestationParameters`.
  - `TpmInfo`, `IsolationInfo` and `AttestationParameters` have `validate()`, which
    returns a bool, and `to_json()`, which returns a dict.
- `attestclient.unseal`
  - `get_encryption_parameters()`, `get_encrypted_jwt()` and `get_encrypted_inner_key()`
    read their parts from a parsed service response.
  - `decrypt_jwt()` decrypts the token with AES-GCM (128-, 192- or 256-bit key), using
    `b"Transport Key"` as the additional authenticated data.
  - `block_cipher_mode_from_str()`, `block_cipher_padding_from_str()` and
    `cipher_algorithm_from_str()` map wire names to their enums, and raise `ValueError`
    for names they do not know.

## Examples

```python
from attestclient.libtypes import AttestationError
from attestclient.osinfo import parse_version_string
from attestclient.urls import parse_url

domain = parse_url("https://attest.example.com/attest/AzureGuest?api-version=2020-10-01")
# "attest.example.com"
major, minor = parse_version_string("20.04")  # (20, 4)

try:
    parse_url("https://")
except AttestationError as exc:
    print(exc.code.name, exc.description)  # ERROR_PARSING_DNS_INFO ...
```

Decrypting a token from a service response. You supply the decrypted inner key yourself:

```python
import json
from attestclient.unseal import decrypt_jwt, get_encrypted_jwt, get_encryption_parameters

response = json.loads(response_body)
params = get_encryption_parameters(response)
attestation_jwt = decrypt_jwt(params, inner_key, get_encrypted_jwt(response))
```

Encrypting a symmetric key for the runtime key carried in an attestation JWT:

```python
from attestclient.jwk import (
    convert_jwk_to_rsa_pub_key,
    encrypt_data_with_rsa_pub_key,
    extract_jwk_info_from_attestation_jwt,
)

n, e = extract_jwk_info_from_attestation_jwt(attestation_jwt)
pem = convert_jwk_to_rsa_pub_key(n, e)
wrapped_key = encrypt_data_with_rsa_pub_key(pem, symmetric_key)
```

## What this package does not do

- It does not talk to a TPM. It cannot read PCRs, produce quotes or decrypt the
  encrypted inner key. `get_encrypted_inner_key()` only returns the encrypted bytes.
  Decrypting them must happen elsewhere.
- It does not read measurement logs and does not parse hardware isolation reports. You
  fill in `TpmInfo`, `IsolationInfo` and `AttestationParameters` yourself.
- It has no single "attest" call that runs the whole exchange. You combine the pieces
  above in your own code.
- It has no command-line entry point.