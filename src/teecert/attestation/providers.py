from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from ..config import UNTRUSTED_EVIDENCE_HEX
from ..errors import EvidenceUnavailable, UnsupportedPlatform
from .models import Challenge, Evidence, PlatformKind
from .quote import QuotePrimitive, gramine_sgx_quote, sev_snp_quote, tdx_quote


@runtime_checkable
class EvidenceProvider(Protocol):
    platform: PlatformKind

    def produce_evidence(self, challenge: Challenge, user_data: bytes = b"") -> Evidence: ...


def report_data_for(challenge: Challenge, user_data: bytes = b"") -> bytes:
    """64-byte report data binding the server nonce and caller data (CSR public key)."""
    return hashlib.sha512(challenge.nonce + user_data).digest()


@dataclass
class UntrustedEvidenceProvider:
    """No TEE: always returns the pre-shared placeholder bytes."""

    placeholder: bytes = bytes.fromhex(UNTRUSTED_EVIDENCE_HEX)
    platform: PlatformKind = PlatformKind.UNTRUSTED

    def produce_evidence(self, challenge: Challenge, user_data: bytes = b"") -> Evidence:
        return Evidence(platform=self.platform, quote=self.placeholder)


@dataclass
class HardwareEvidenceProvider:
    """Quote-backed provider; the primitive is injected so tests can fake the hardware."""

    platform: PlatformKind
    primitive: QuotePrimitive

    def produce_evidence(self, challenge: Challenge, user_data: bytes = b"") -> Evidence:
        if not challenge.nonce:
            raise ValueError("challenge nonce is empty")
        quote = self.primitive(report_data_for(challenge, user_data))
        if not isinstance(quote, (bytes, bytearray)) or not quote:
            raise EvidenceUnavailable(f"{self.platform.value} quote primitive returned no data")
        return Evidence(platform=self.platform, quote=bytes(quote))


class TdxEvidenceProvider(HardwareEvidenceProvider):
    def __init__(self, primitive: Optional[QuotePrimitive] = None):
        super().__init__(PlatformKind.TDX, primitive or tdx_quote)


class SevSnpEvidenceProvider(HardwareEvidenceProvider):
    def __init__(self, primitive: Optional[QuotePrimitive] = None):
        super().__init__(PlatformKind.SEVSNP, primitive or sev_snp_quote)


class SgxEvidenceProvider(HardwareEvidenceProvider):
    def __init__(self, primitive: Optional[QuotePrimitive] = None):
        super().__init__(PlatformKind.SGX, primitive or gramine_sgx_quote)


def select_evidence_provider(kind, primitive: Optional[QuotePrimitive] = None) -> EvidenceProvider:
    """Map a platform kind (enum or CLI string) to its provider.

    Pure: constructing a provider touches no hardware and no network, so an
    unsupported kind fails here before any round trip.
    """
    if not isinstance(kind, PlatformKind):
        if not isinstance(kind, str):
            raise UnsupportedPlatform(f"Unsupported CPU type: {kind!r}")
        kind = PlatformKind.parse(kind)
    if kind is PlatformKind.UNTRUSTED:
        return UntrustedEvidenceProvider()
    if kind is PlatformKind.TDX:
        return TdxEvidenceProvider(primitive)
    if kind is PlatformKind.SEVSNP:
        return SevSnpEvidenceProvider(primitive)
    if kind is PlatformKind.SGX:
        return SgxEvidenceProvider(primitive)
    raise UnsupportedPlatform(f"Unsupported CPU type: {kind}")


__all__ = [
    "EvidenceProvider",
    "UntrustedEvidenceProvider",
    "HardwareEvidenceProvider",
    "TdxEvidenceProvider",
    "SevSnpEvidenceProvider",
    "SgxEvidenceProvider",
    "select_evidence_provider",
    "report_data_for",
]
