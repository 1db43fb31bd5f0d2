"""HTTP transport for the attestation service and the instance metadata service."""

from __future__ import annotations

import contextlib
import enum
import itertools
import json
import time
from collections.abc import Callable, Iterator
from typing import Any

import requests

from .constants import (
    JSON_HTTP_ERROR_CODE_KEY,
    JSON_HTTP_ERROR_CODE_LOWER_KEY,
    JSON_HTTP_ERROR_KEY,
    JSON_HTTP_ERROR_LOWER_KEY,
    JSON_HTTP_ERROR_MESSAGE_KEY,
    JSON_HTTP_ERROR_MESSAGE_LOWER_KEY,
)
from .libtypes import AttestationError, ErrorCode
from .log import log_error, log_info

MAX_RETRIES = 3

HTTP_STATUS_OK = 200
HTTP_STATUS_ATTESTATION_FAILURE = 400
HTTP_STATUS_RESOURCE_NOT_FOUND = 404
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR = 500

ATTESTATION_BACKOFF_SECONDS = 5
IMDS_BACKOFF_SECONDS = 30
IMDS_TIMEOUT_SECONDS = 300

Sleeper = Callable[[float], Any]


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


def _pick(obj: dict[str, Any], upper: str, lower: str) -> Any:
    return obj.get(upper) if upper in obj else obj.get(lower)


def parse_error_message(http_response: str) -> str:
    """Return ``code:message`` from a JSON error response, or ``""`` if it has none.

    Server errors use capitalised keys, other errors lower-case ones.
    """
    try:
        response = json.loads(http_response)
    except (ValueError, TypeError):
        log_error("Failed to parse http response")
        return ""

    if not isinstance(response, dict):
        log_error("Failed to find error obj in http response")
        return ""

    error_obj = _pick(response, JSON_HTTP_ERROR_KEY, JSON_HTTP_ERROR_LOWER_KEY)
    if not isinstance(error_obj, dict):
        log_error("Failed to find error obj in http response")
        return ""

    code = _scalar_text(_pick(error_obj, JSON_HTTP_ERROR_CODE_KEY, JSON_HTTP_ERROR_CODE_LOWER_KEY))
    if not code:
        log_error("Failed to get error code from http response")
        return ""

    message = _scalar_text(
        _pick(error_obj, JSON_HTTP_ERROR_MESSAGE_KEY, JSON_HTTP_ERROR_MESSAGE_LOWER_KEY)
    )
    if not message:
        log_error("Failed to get error message from http response")
        return ""

    return f"{code}:{message}"


@contextlib.contextmanager
def _session_scope(session: requests.Session | None) -> Iterator[requests.Session]:
    if session is not None:
        yield session
        return
    with requests.Session() as owned:
        yield owned


def _transport_error(exc: requests.RequestException) -> AttestationError:
    log_error("Failed sending curl request with error:%s", str(exc))
    return AttestationError(
        ErrorCode.ERROR_SENDING_CURL_REQUEST_FAILED,
        f"Failed sending curl request with error:{exc}",
    )


def send_request(
    url: str,
    payload: str,
    session: requests.Session | None = None,
    sleep: Sleeper = time.sleep,
) -> str:
    """POST a JSON payload to the attestation endpoint and return the response body.

    Server errors are retried up to three times with a 5, 10, 20 second backoff.
    """
    headers = {"Content-Type": "application/json"}
    with _session_scope(session) as http:
        for attempt in itertools.count():
            try:
                response = http.post(url, data=payload.encode("utf-8"), headers=headers)
            except requests.RequestException as exc:
                raise _transport_error(exc) from exc

            status = response.status_code
            body = response.text
            if status == HTTP_STATUS_OK:
                return body
            if status == HTTP_STATUS_ATTESTATION_FAILURE:
                log_error(
                    "Attestation failed with error code:%ld description:%s", status, body
                )
                raise AttestationError(ErrorCode.ERROR_ATTESTATION_FAILED, body)
            if status >= HTTP_STATUS_SERVER_ERROR:
                log_error("Http Request failed with error:%ld description:%s", status, body)
                log_info("Retrying")
                if attempt == MAX_RETRIES:
                    log_error("Maxinum retries exceeded.")
                    raise AttestationError(ErrorCode.ERROR_HTTP_REQUEST_EXCEEDED_RETRIES, body)
                sleep(ATTESTATION_BACKOFF_SECONDS * 2**attempt)
                continue
            log_error("Http Request failed with error:%ld description:%s", status, body)
            raise AttestationError(ErrorCode.ERROR_HTTP_REQUEST_FAILED, body)
    raise AssertionError("unreachable")


class HttpVerb(enum.Enum):
    """HTTP method for a metadata service request."""

    GET = "GET"
    POST = "POST"


class HttpClient:
    """Client for the instance metadata service, with retry and backoff."""

    def __init__(
        self,
        session: requests.Session | None = None,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self.session = session
        self.sleep = sleep

    def invoke_imds_request(
        self,
        url: str,
        verb: HttpVerb = HttpVerb.GET,
        request_body: str = "",
    ) -> str:
        """Send a request carrying the ``Metadata: true`` header and return the body.

        Not-found, throttling and server errors are retried up to three times
        with a 30, 60, 120 second backoff.
        """
        headers = {"Metadata": "true"}
        data: bytes | None = None
        if verb is HttpVerb.POST:
            if not request_body:
                log_error("Request body missing for POST request")
                raise AttestationError(
                    ErrorCode.ERROR_EMPTY_REQUEST_BODY, "Request body missing for POST request"
                )
            data = request_body.encode("utf-8")

        with _session_scope(self.session) as http:
            for attempt in itertools.count():
                try:
                    response = http.request(
                        verb.value,
                        url,
                        data=data,
                        headers=headers,
                        timeout=IMDS_TIMEOUT_SECONDS,
                    )
                except requests.RequestException as exc:
                    raise _transport_error(exc) from exc

                status = response.status_code
                body = response.text
                if status == HTTP_STATUS_OK:
                    if not body:
                        log_error("Empty response received")
                        raise AttestationError(
                            ErrorCode.ERROR_EMPTY_RESPONSE, "Empty response received"
                        )
                    return body
                if (
                    status in (HTTP_STATUS_RESOURCE_NOT_FOUND, HTTP_STATUS_TOO_MANY_REQUESTS)
                    or status >= HTTP_STATUS_SERVER_ERROR
                ):
                    if attempt == MAX_RETRIES:
                        log_error(
                            "Http Request failed with error:%ld description:%s", status, body
                        )
                        raise AttestationError(
                            ErrorCode.ERROR_HTTP_REQUEST_EXCEEDED_RETRIES, body
                        )
                    log_error(
                        "HTTP request failed with response code:%ld description:%s",
                        status,
                        body,
                    )
                    log_info("Retrying HTTP request:%d", attempt)
                    self.sleep(IMDS_BACKOFF_SECONDS * 2**attempt)
                    continue
                log_error(
                    "HTTP request failed with response code:%ld description:%s", status, body
                )
                raise AttestationError(ErrorCode.ERROR_HTTP_REQUEST_FAILED, body)
        raise AssertionError("unreachable")