from __future__ import annotations

from typing import Callable, Iterable, Protocol

from ..attestation.models import CertificateBundle, Challenge, Evidence
from ..attestation.providers import EvidenceProvider
from ..utils.logging import get_logger
from .keys import KeyMaterial, generate_key_material

log = get_logger()


class AttestationService(Protocol):
    def request_challenge(self) -> Challenge: ...

    def submit_evidence(
        self,
        challenge: Challenge,
        evidence: Evidence,
        domains: Iterable[str],
        key_material: KeyMaterial,
    ) -> CertificateBundle: ...


class CertificateIssuer:
    """challenge -> evidence -> submit -> bundle, once per call.

    Any failure propagates unchanged. There is no retry here: calling again
    fetches a new challenge and generates a new key, so nothing from a failed
    attempt is ever reused.
    """

    def __init__(
        self,
        provider: EvidenceProvider,
        client: AttestationService,
        key_factory: Callable[[Iterable[str]], KeyMaterial] = generate_key_material,
    ):
        self.provider = provider
        self.client = client
        self.key_factory = key_factory

    def issue_certificate(self, domain: str) -> CertificateBundle:
        return self.issue_certificates({domain})

    def issue_certificates(self, domains: Iterable[str]) -> CertificateBundle:
        names = frozenset(domains)
        if not names or any(not d for d in names):
            raise ValueError("at least one non-empty domain is required")
        challenge = self.client.request_challenge()
        keys = self.key_factory(names)
        evidence = self.provider.produce_evidence(challenge, user_data=keys.public_key_der)
        log.info(f"Produced {evidence.platform.value} evidence ({len(evidence.quote)} bytes)")
        bundle = self.client.submit_evidence(challenge, evidence, names, keys)
        log.info(f"Certificate issued for {', '.join(sorted(names))}")
        return bundle


__all__ = ["CertificateIssuer", "AttestationService"]
