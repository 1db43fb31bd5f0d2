"""Operating-system facts gathered for attestation: PCR selection, release file and version parsing."""

from __future__ import annotations

import re
import sys
from os import PathLike

from .log import log_error

_UNIX_PCRS = (0, 1, 2, 3, 4, 5, 6, 7)
_WINDOWS_PCRS = (0, 1, 2, 3, 4, 5, 6, 7, 11, 12, 13, 14)

_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_UINT32_MASK = 0xFFFFFFFF
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


def get_attestation_pcr_list(platform_unix: bool | None = None) -> list[int]:
    """Return the PCR indices used for attestation on this (or the given) platform."""
    if platform_unix is None:
        platform_unix = sys.platform != "win32"
    return list(_UNIX_PCRS if platform_unix else _WINDOWS_PCRS)


def _find_first_of(text: str, chars: str) -> int:
    positions = [pos for pos in (text.find(ch) for ch in set(chars)) if pos >= 0]
    return min(positions, default=-1)


def parse_os_release_file(
    path: str | PathLike[str], delim: str = "="
) -> dict[str, str]:
    """Read key/value pairs from an os-release style file.

    A line is split at the first character that occurs in ``delim``; lines
    without one are skipped. Double quotes are removed from values.
    """
    if path is None or not delim:
        log_error("Invaid input argument")
        raise ValueError("a path and a non-empty delimiter are required")

    try:
        with open(path, encoding="utf-8", errors="surrogateescape", newline="") as handle:
            content = handle.read()
    except OSError:
        log_error("Failed to open file:%s", str(path))
        raise

    entries: dict[str, str] = {}
    for line in content.split("\n"):
        pos = _find_first_of(line, delim)
        if pos < 0:
            continue
        key = line[:pos]
        entries[key] = line[pos + 1 :].replace('"', "")
    return entries


def _parse_int(text: str) -> int:
    match = _LEADING_INT.match(text)
    if match is None:
        log_error("Invaid input argument")
        raise ValueError(f"not an integer: {text!r}")
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        log_error("Input out of range")
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _parse_component(text: str, which: str) -> int:
    try:
        value = _parse_int(text)
    except ValueError:
        value = _INT_MIN
    if value == _INT_MIN:
        log_error("Failed to get %s version from string:%s", which, text)
        raise ValueError(f"cannot read {which} version from {text!r}")
    return value


def parse_version_string(text: str) -> tuple[int, int]:
    """Split a version such as ``20.04`` into ``(major, minor)``.

    The minor number defaults to 0 when absent; anything after a second dot
    is ignored. Numbers are stored as unsigned 32-bit values.
    """
    if not text:
        log_error("Invlid input parameter")
        raise ValueError("empty version string")

    parts = text.split(".", 2)
    major = _parse_component(parts[0], "major")
    minor = _parse_component(parts[1], "minor") if len(parts) > 1 else 0
    return major & _UINT32_MASK, minor & _UINT32_MASK


def get_windows_version() -> tuple[int, int, str]:
    """Return ``(major, minor, build)`` for Windows guests.

    The build is a placeholder kept for future use in attestation requests.
    """
    return 10, 0, "NotApplicable"