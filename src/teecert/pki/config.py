from __future__ import annotations

import os
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, field_validator

from ..attestation.models import PlatformKind
from ..config import API_PATH, TIMEOUT_SEC
from ..output import OutputLayout, default_layout_for


class IssuerConfig(BaseModel):
    """Everything one issuance run needs; built once at the entry point."""

    model_config = ConfigDict(frozen=True)

    platform: PlatformKind
    ca_url: str
    ca_bundle_path: str
    domain: str
    output_dir: str
    api_path: str = API_PATH
    timeout_sec: float = TIMEOUT_SEC
    layout: Optional[OutputLayout] = None

    @field_validator("platform", mode="before")
    @classmethod
    def _parse_platform(cls, v):
        if isinstance(v, str):
            return PlatformKind.parse(v)
        return v

    @field_validator("domain")
    @classmethod
    def _check_domain(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or os.sep in v or v in (".", ".."):
            raise ValueError(f"invalid certificate domain: {v!r}")
        return v

    @field_validator("ca_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"invalid CA URL {v!r}: {e}") from e
        if url.scheme not in ("https", "http") or not url.host:
            raise ValueError(f"CA URL must be an http(s) URL with a host: {v!r}")
        return v

    @field_validator("timeout_sec")
    @classmethod
    def _check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    def output_layout(self) -> OutputLayout:
        return self.layout or default_layout_for(self.platform)
