"""Extraction of the domain name from an attestation endpoint URL."""

from __future__ import annotations

from .libtypes import AttestationError, ErrorCode
from .log import log_error, log_info

_WHITESPACE = " \t\n\r\f\v"


def parse_url(url: str) -> str:
    """Return the host part of ``url``, without scheme, port, path or query."""
    if not url:
        log_error("Invalid input parameter")
        raise AttestationError(ErrorCode.ERROR_INVALID_INPUT_PARAMETER, "Invalid input parameter")

    sanitized = url.strip(_WHITESPACE)

    if sanitized.startswith("https://"):
        offset = 8
    elif sanitized.startswith("http://"):
        offset = 7
    else:
        offset = 0

    path_idx = sanitized.find("/", offset + 1)
    dns = sanitized[offset:path_idx] if path_idx >= 0 else sanitized[offset:]
    dns = dns.split(":", 1)[0]
    protocol = sanitized[: offset - 3] if offset > 0 else ""

    if not dns:
        log_error("failed to extract domain name info from the URL")
        raise AttestationError(
            ErrorCode.ERROR_PARSING_DNS_INFO, "Error extracting DNS info from URL"
        )

    log_info("Attestation URL info - protocol {%s}, domain {%s}", protocol, dns)
    return dns