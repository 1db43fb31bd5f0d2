"""Evidence gathered from the guest and sent to the attestation service."""

from __future__ import annotations

import base64
import enum
import json
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    JSON_AIK_CERT_KEY,
    JSON_AIK_PUB_KEY,
    JSON_CLIENT_PAYLOAD_KEY,
    JSON_ENC_KEY_CERTIFY_INFO,
    JSON_ENC_KEY_CERTIFY_INFO_SIGNATURE,
    JSON_ENC_PUB_KEY,
    JSON_ISOLATION_EVIDENCE_KEY,
    JSON_ISOLATION_EVIDENCE_SNPREPORT,
    JSON_ISOLATION_EVIDENCE_VCEKCERT,
    JSON_ISOLATION_INFO_KEY,
    JSON_ISOLATION_PROOF_KEY,
    JSON_ISOLATION_RUNTIME_DATA_KEY,
    JSON_ISOLATION_TYPE_KEY,
    JSON_ISOLATION_TYPE_SEVSNP,
    JSON_ISOLATION_TYPE_TVM,
    JSON_OS_BUILD_KEY,
    JSON_OS_DISTRO_KEY,
    JSON_OS_TYPE_KEY,
    JSON_OS_VERSION_MAJOR_KEY,
    JSON_OS_VERSION_MINOR_KEY,
    JSON_PCR_DIGEST_KEY,
    JSON_PCR_INDEX_KEY,
    JSON_PCR_QUOTE_KEY,
    JSON_PCR_SET_KEY,
    JSON_PCR_SIGNATURE_KEY,
    JSON_PCRS_KEY,
    JSON_PROTOCOL_VERSION_KEY,
    JSON_TCG_LOGS_KEY,
    JSON_TPM_INFO_KEY,
)
from .libtypes import OsInfo, OsType

PROTOCOL_VERSION = "2.0"
"""Version of the attestation protocol between client and service."""


def _b64(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(bytes(data)).decode("ascii").rstrip("=")


def _write_json(value: Any) -> str:
    """Serialise in the styled form: tab indentation, sorted keys, ``" : "`` separators."""
    return json.dumps(value, indent="\t", sort_keys=True, separators=(",", " : "))


@dataclass
class PcrValue:
    """One PCR index with its digest."""

    index: int
    digest: bytes = b""


@dataclass
class PcrSet:
    """The PCR values read from the TPM."""

    pcrs: list[PcrValue] = field(default_factory=list)


@dataclass
class PcrQuote:
    """A TPM quote over PCRs and its signature."""

    quote: bytes = b""
    signature: bytes = b""


@dataclass
class EphemeralKey:
    """Encryption key components the service uses to wrap the token key."""

    encryption_key: bytes = b""
    certify_info: bytes = b""
    certify_info_signature: bytes = b""


@dataclass
class TpmInfo:
    """TPM evidence: attestation identity key, PCRs, quote and encryption key."""

    aik_cert: bytes = b""
    aik_pub: bytes = b""
    pcr_values: PcrSet = field(default_factory=PcrSet)
    pcr_quote: PcrQuote = field(default_factory=PcrQuote)
    encryption_key: EphemeralKey = field(default_factory=EphemeralKey)

    def validate(self) -> bool:
        """True when every required TPM value is present."""
        return bool(
            self.aik_cert
            and self.aik_pub
            and self.pcr_values.pcrs
            and self.encryption_key.certify_info
            and self.encryption_key.encryption_key
            and self.encryption_key.certify_info_signature
        )

    def to_json(self) -> dict[str, Any]:
        """Return the JSON object sent to the service."""
        return {
            JSON_AIK_CERT_KEY: _b64(self.aik_cert),
            JSON_AIK_PUB_KEY: _b64(self.aik_pub),
            JSON_PCR_QUOTE_KEY: _b64(self.pcr_quote.quote),
            JSON_PCR_SIGNATURE_KEY: _b64(self.pcr_quote.signature),
            JSON_ENC_PUB_KEY: _b64(self.encryption_key.encryption_key),
            JSON_ENC_KEY_CERTIFY_INFO: _b64(self.encryption_key.certify_info),
            JSON_ENC_KEY_CERTIFY_INFO_SIGNATURE: _b64(
                self.encryption_key.certify_info_signature
            ),
            JSON_PCR_SET_KEY: [pcr.index for pcr in self.pcr_values.pcrs],
            JSON_PCRS_KEY: [
                {JSON_PCR_INDEX_KEY: pcr.index, JSON_PCR_DIGEST_KEY: _b64(pcr.digest)}
                for pcr in self.pcr_values.pcrs
            ],
        }


class IsolationType(enum.Enum):
    """Kind of isolation the virtual machine runs under."""

    TRUSTED_LAUNCH = "TrustedLaunch"
    SEV_SNP = "SevSnp"


@dataclass
class IsolationInfo:
    """Isolation type and, for SEV-SNP, its hardware evidence."""

    isolation_type: IsolationType = IsolationType.TRUSTED_LAUNCH
    snp_report: bytes = b""
    runtime_data: bytes = b""
    vcek_cert: str = ""

    def validate(self) -> bool:
        """False for SEV-SNP when report, certificate or runtime data is missing."""
        if self.isolation_type is IsolationType.SEV_SNP:
            return bool(self.snp_report and self.vcek_cert and self.runtime_data)
        return True

    def to_json(self) -> dict[str, Any]:
        """Return the JSON object sent to the service."""
        if self.isolation_type is IsolationType.TRUSTED_LAUNCH:
            return {JSON_ISOLATION_TYPE_KEY: JSON_ISOLATION_TYPE_TVM}

        proof = {
            JSON_ISOLATION_EVIDENCE_SNPREPORT: _b64url(self.snp_report),
            JSON_ISOLATION_EVIDENCE_VCEKCERT: self.vcek_cert,
        }
        proof_text = _write_json(proof)
        return {
            JSON_ISOLATION_TYPE_KEY: JSON_ISOLATION_TYPE_SEVSNP,
            JSON_ISOLATION_EVIDENCE_KEY: {
                JSON_ISOLATION_PROOF_KEY: _b64(proof_text.encode("utf-8")),
                JSON_ISOLATION_RUNTIME_DATA_KEY: _b64(self.runtime_data),
            },
        }


_OS_TYPE_NAMES = {OsType.LINUX: "Linux", OsType.WINDOWS: "Windows"}


@dataclass
class AttestationParameters:
    """Everything sent to the attestation service in one request."""

    os_info: OsInfo = field(default_factory=OsInfo)
    tcg_logs: bytes = b""
    client_payload: dict[str, str] = field(default_factory=dict)
    tpm_info: TpmInfo = field(default_factory=TpmInfo)
    isolation_info: IsolationInfo = field(default_factory=IsolationInfo)
    attestation_protocol_ver: str = PROTOCOL_VERSION

    def validate(self) -> bool:
        """True when TPM, isolation and OS information are all complete."""
        if not self.tpm_info.validate():
            return False
        if not self.isolation_info.validate():
            return False
        os_info = self.os_info
        return not (
            os_info.type is OsType.INVALID
            or not os_info.build
            or not os_info.distro_name
            or os_info.distro_version_major == 0
            or not self.attestation_protocol_ver
        )

    def to_json(self) -> dict[str, Any]:
        """Return the attestation information object sent to the service."""
        os_info = self.os_info
        os_type = _OS_TYPE_NAMES.get(os_info.type, "Unknown")
        client_payload = (
            {key: _b64(value.encode("utf-8")) for key, value in self.client_payload.items()}
            or None
        )
        return {
            JSON_PROTOCOL_VERSION_KEY: self.attestation_protocol_ver,
            JSON_OS_TYPE_KEY: _b64(os_type.encode("utf-8")),
            JSON_OS_DISTRO_KEY: _b64(os_info.distro_name.encode("utf-8")),
            JSON_OS_VERSION_MAJOR_KEY: os_info.distro_version_major,
            JSON_OS_VERSION_MINOR_KEY: os_info.distro_version_minor,
            JSON_OS_BUILD_KEY: _b64(os_info.build.encode("utf-8")),
            JSON_TCG_LOGS_KEY: _b64(self.tcg_logs),
            JSON_CLIENT_PAYLOAD_KEY: client_payload,
            JSON_TPM_INFO_KEY: self.tpm_info.to_json(),
            JSON_ISOLATION_INFO_KEY: self.isolation_info.to_json(),
        }