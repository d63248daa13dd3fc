"""Wire client for the CA attestation endpoint.

Two-step protocol, one HTTP request per call and no retries:

  POST {endpoint}/challenges    -> {"nonce": "<b64>", "id": "..."}
  POST {endpoint}/certificates  <- {"challenge": {...}, "evidence": {...},
                                    "domains": [...], "csr": "<pem>"}
                                -> {"certificate": "<pem>", "caBundle": "<pem>"}

{endpoint} is the CA base URL plus an API path (default /api/v1/pki); an
empty path uses the base URL as-is. The TLS connection is validated against
the caller-supplied CA bundle only.
"""
from __future__ import annotations

import base64
import ssl
from typing import Iterable, Optional

import httpx
from pydantic import ValidationError

from ..attestation.models import CertificateBundle, Challenge, Evidence
from ..config import API_PATH, TIMEOUT_SEC
from ..errors import (
    AttestationRejected,
    FileSystemError,
    ProtocolError,
    ServiceError,
    ServiceUnreachable,
)
from ..utils.logging import get_logger
from .keys import KeyMaterial, check_certificate_pem
from .models import (
    CertificateRequest,
    CertificateResponse,
    ChallengeRef,
    ChallengeResponse,
    ErrorResponse,
    EvidenceBody,
)

# Statuses on submission that mean "evidence not accepted" rather than a transport/service fault
REJECTION_STATUSES = frozenset({401, 403, 422})

log = get_logger()


def build_endpoint(base_url: str, api_path: Optional[str] = None) -> str:
    path = API_PATH if api_path is None else api_path
    base = base_url.rstrip("/")
    if not path:
        return base
    return base + "/" + path.strip("/")


def load_ca_bundle(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            pem = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileSystemError(f"cannot read CA bundle {path}: {e}") from e
    if "-----BEGIN CERTIFICATE-----" not in pem:
        raise FileSystemError(f"CA bundle {path} contains no PEM certificates")
    return pem


def trust_context(ca_bundle_pem: str) -> ssl.SSLContext:
    """SSL context that trusts only the given PEM chain."""
    try:
        ctx = ssl.create_default_context(cadata=ca_bundle_pem)
    except (ssl.SSLError, ValueError) as e:
        raise FileSystemError(f"CA bundle is not a usable PEM certificate chain: {e}") from e
    return ctx


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


class AttestationServiceClient:
    def __init__(
        self,
        base_url: str,
        ca_bundle_pem: str,
        *,
        api_path: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.endpoint = build_endpoint(base_url, api_path)
        self._http = httpx.Client(
            verify=trust_context(ca_bundle_pem),
            timeout=httpx.Timeout(TIMEOUT_SEC if timeout is None else timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "AttestationServiceClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _post(self, path: str, payload: dict) -> httpx.Response:
        url = f"{self.endpoint}/{path}"
        log.debug(f"POST {url}")
        try:
            return self._http.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise ServiceUnreachable(f"timed out talking to {url}: {e}") from e
        except httpx.TransportError as e:
            raise ServiceUnreachable(f"cannot reach {url}: {e}") from e
        except httpx.InvalidURL as e:
            raise ServiceError(f"invalid request URL {url}: {e}") from e

    @staticmethod
    def _error_text(resp: httpx.Response) -> str:
        try:
            text = ErrorResponse.model_validate(resp.json()).text()
        except (ValueError, ValidationError):
            text = None
        return text or resp.text[:200] or resp.reason_phrase

    @staticmethod
    def _json(resp: httpx.Response) -> object:
        try:
            return resp.json()
        except ValueError as e:
            raise ProtocolError(f"response from {resp.request.url} is not JSON") from e

    def request_challenge(self) -> Challenge:
        resp = self._post("challenges", {})
        if not resp.is_success:
            raise ServiceError(
                f"challenge request failed with HTTP {resp.status_code}: {self._error_text(resp)}",
                status_code=resp.status_code,
            )
        try:
            body = ChallengeResponse.model_validate(self._json(resp))
            nonce = base64.b64decode(body.nonce, validate=True)
        except ValidationError as e:
            raise ProtocolError(f"malformed challenge response: {e}") from e
        except ValueError as e:
            raise ProtocolError("challenge nonce is not valid base64") from e
        if not nonce:
            raise ProtocolError("challenge nonce is empty")
        log.info(f"Received challenge id={body.id or '(none)'} ({len(nonce)} bytes)")
        return Challenge(nonce=nonce, challenge_id=body.id)

    def submit_evidence(
        self,
        challenge: Challenge,
        evidence: Evidence,
        domains: Iterable[str],
        key_material: KeyMaterial,
    ) -> CertificateBundle:
        req = CertificateRequest(
            challenge=ChallengeRef(id=challenge.challenge_id, nonce=_b64(challenge.nonce)),
            evidence=EvidenceBody(type=evidence.platform.value, quote=_b64(evidence.quote)),
            domains=sorted(set(domains)),
            csr=key_material.csr_pem,
        )
        resp = self._post("certificates", req.model_dump())
        if resp.status_code in REJECTION_STATUSES:
            raise AttestationRejected(
                f"CA rejected {evidence.platform.value} evidence (HTTP {resp.status_code}): {self._error_text(resp)}",
                status_code=resp.status_code,
            )
        if not resp.is_success:
            raise ServiceError(
                f"certificate request failed with HTTP {resp.status_code}: {self._error_text(resp)}",
                status_code=resp.status_code,
            )
        try:
            body = CertificateResponse.model_validate(self._json(resp))
        except ValidationError as e:
            raise ProtocolError(f"malformed certificate response: {e}") from e
        check_certificate_pem(body.certificate, "certificate")
        if body.ca_bundle:
            check_certificate_pem(body.ca_bundle, "caBundle")
        return CertificateBundle(
            leaf_certificate_pem=body.certificate,
            ca_chain_pem=body.ca_bundle or None,
            private_key_pem=key_material.private_key_pem,
        )


__all__ = ["AttestationServiceClient", "build_endpoint", "load_ca_bundle", "trust_context", "REJECTION_STATUSES"]
