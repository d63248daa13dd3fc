from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from ..errors import UnsupportedPlatform


class PlatformKind(enum.Enum):
    UNTRUSTED = "Untrusted"
    TDX = "TDX"
    SEVSNP = "SEVSNP"
    SGX = "SGX"

    @classmethod
    def parse(cls, value: str) -> "PlatformKind":
        """Accept the CLI spellings (Untrusted, TDX, SEVSNP, SGX), case-insensitive."""
        norm = value.strip().upper().replace("-", "").replace("_", "")
        for kind in cls:
            if kind.value.upper() == norm:
                return kind
        raise UnsupportedPlatform(f"Unsupported CPU type: {value}")


@dataclass(frozen=True)
class Challenge:
    nonce: bytes
    challenge_id: Optional[str] = None


@dataclass(frozen=True)
class Evidence:
    platform: PlatformKind
    quote: bytes


@dataclass(frozen=True)
class CertificateBundle:
    leaf_certificate_pem: str
    private_key_pem: str = field(repr=False)
    ca_chain_pem: Optional[str] = None