"""Failure taxonomy for certificate issuance.

Every failure the core can produce derives from TeeCertError so the entry
point has one place to turn it into an exit status:

  UnsupportedPlatform  - platform kind not recognized (before any I/O)
  EvidenceUnavailable  - local TEE cannot produce a quote
  ServiceUnreachable   - DNS / TLS / connect failure or timeout
  ServiceError         - CA answered with a non-success status
  ProtocolError        - CA response body does not match the schema
  AttestationRejected  - CA judged the evidence invalid or insufficient
  FileSystemError      - CA bundle read or certificate write failed
"""
from __future__ import annotations

from typing import Optional


class TeeCertError(Exception):
    """Base class for all issuance failures."""


class UnsupportedPlatform(TeeCertError):
    pass


class EvidenceUnavailable(TeeCertError):
    pass


class ServiceUnreachable(TeeCertError):
    pass


class ServiceError(TeeCertError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(TeeCertError):
    pass


class AttestationRejected(TeeCertError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FileSystemError(TeeCertError):
    pass


__all__ = [
    "TeeCertError",
    "UnsupportedPlatform",
    "EvidenceUnavailable",
    "ServiceUnreachable",
    "ServiceError",
    "ProtocolError",
    "AttestationRejected",
    "FileSystemError",
]
