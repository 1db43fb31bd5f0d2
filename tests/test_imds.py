import base64
import json

import pytest
import responses

from attestclient.http_client import HttpClient
from attestclient.imds import get_vcek_cert
from attestclient.libtypes import AttestationError, ErrorCode

VCEK_URL = "http://169.254.169.254/metadata/THIM/amd/certification"


def _client():
    return HttpClient(sleep=lambda seconds: None)


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_get_vcek_cert_encodes_cert_and_chain(mocked):
    body = json.dumps({"vcekCert": "CERT-PEM", "certificateChain": "CHAIN-PEM"})
    mocked.add(responses.GET, VCEK_URL, body=body, status=200)
    encoded = get_vcek_cert(_client())
    assert base64.b64decode(encoded) == b"CERT-PEMCHAIN-PEM"
    assert mocked.calls[0].request.headers["Metadata"] == "true"


def test_get_vcek_cert_missing_chain(mocked):
    mocked.add(responses.GET, VCEK_URL, body=json.dumps({"vcekCert": "CERT"}), status=200)
    with pytest.raises(AttestationError) as info:
        get_vcek_cert(_client())
    assert info.value.code is ErrorCode.ERROR_EMPTY_VCEK_CERT


def test_get_vcek_cert_empty_cert(mocked):
    body = json.dumps({"vcekCert": "", "certificateChain": "CHAIN"})
    mocked.add(responses.GET, VCEK_URL, body=body, status=200)
    with pytest.raises(AttestationError) as info:
        get_vcek_cert(_client())
    assert info.value.code is ErrorCode.ERROR_EMPTY_VCEK_CERT


def test_get_vcek_cert_invalid_json(mocked):
    mocked.add(responses.GET, VCEK_URL, body="{not json", status=200)
    with pytest.raises(AttestationError) as info:
        get_vcek_cert(_client())
    assert info.value.code is ErrorCode.ERROR_INVALID_JSON_RESPONSE


def test_get_vcek_cert_propagates_http_failure(mocked):
    mocked.add(responses.GET, VCEK_URL, body="denied", status=403)
    with pytest.raises(AttestationError) as info:
        get_vcek_cert(_client())
    assert info.value.code is ErrorCode.ERROR_HTTP_REQUEST_FAILED
    assert info.value.description == "denied"