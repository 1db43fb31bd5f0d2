"""Guest attestation helpers: evidence payloads, service and metadata requests, JWK handling and token decryption."""

__version__ = "0.1.0"