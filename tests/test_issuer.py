import pytest

from teecert.attestation.models import CertificateBundle, Challenge, Evidence, PlatformKind
from teecert.attestation.providers import UntrustedEvidenceProvider
from teecert.errors import EvidenceUnavailable, ServiceUnreachable
from teecert.pki.issuer import CertificateIssuer


class Recorder:
    def __init__(self):
        self.events = []


class FakeClient:
    def __init__(self, rec, leaf_pem, ca_pem, challenge_exc=None, nonces=None):
        self.rec = rec
        self.leaf_pem = leaf_pem
        self.ca_pem = ca_pem
        self.challenge_exc = challenge_exc
        self.nonces = list(nonces or [b"nonce-1", b"nonce-2", b"nonce-3"])
        self.submitted = []

    def request_challenge(self):
        self.rec.events.append("request_challenge")
        if self.challenge_exc:
            raise self.challenge_exc
        return Challenge(nonce=self.nonces.pop(0))

    def submit_evidence(self, challenge, evidence, domains, key_material):
        self.rec.events.append("submit_evidence")
        self.submitted.append((challenge, evidence, set(domains), key_material))
        return CertificateBundle(
            leaf_certificate_pem=self.leaf_pem,
            ca_chain_pem=self.ca_pem,
            private_key_pem=key_material.private_key_pem,
        )


class FakeProvider:
    platform = PlatformKind.TDX

    def __init__(self, rec, exc=None):
        self.rec = rec
        self.exc = exc
        self.seen = []

    def produce_evidence(self, challenge, user_data=b""):
        self.rec.events.append("produce_evidence")
        self.seen.append((challenge, user_data))
        if self.exc:
            raise self.exc
        return Evidence(platform=self.platform, quote=b"quote:" + challenge.nonce)


def test_ordering_and_call_counts(leaf_pem, ca_pem):
    rec = Recorder()
    client = FakeClient(rec, leaf_pem, ca_pem)
    provider = FakeProvider(rec)
    bundle = CertificateIssuer(provider, client).issue_certificate("svc.example.com")

    assert rec.events == ["request_challenge", "produce_evidence", "submit_evidence"]
    challenge, evidence, domains, keys = client.submitted[0]
    assert provider.seen[0][0] is challenge
    assert provider.seen[0][1] == keys.public_key_der
    assert evidence.quote == b"quote:nonce-1"
    assert domains == {"svc.example.com"}
    assert bundle.leaf_certificate_pem == leaf_pem
    assert bundle.private_key_pem == keys.private_key_pem


def test_challenge_failure_short_circuits(leaf_pem, ca_pem):
    rec = Recorder()
    client = FakeClient(rec, leaf_pem, ca_pem, challenge_exc=ServiceUnreachable("down"))
    with pytest.raises(ServiceUnreachable):
        CertificateIssuer(FakeProvider(rec), client).issue_certificate("svc.example.com")
    assert rec.events == ["request_challenge"]


def test_evidence_failure_skips_submission(leaf_pem, ca_pem):
    rec = Recorder()
    client = FakeClient(rec, leaf_pem, ca_pem)
    with pytest.raises(EvidenceUnavailable):
        CertificateIssuer(FakeProvider(rec, exc=EvidenceUnavailable("no tdx")), client).issue_certificate("svc.example.com")
    assert rec.events == ["request_challenge", "produce_evidence"]
    assert client.submitted == []


def test_each_run_uses_fresh_challenge_and_key(leaf_pem, ca_pem):
    rec = Recorder()
    client = FakeClient(rec, leaf_pem, ca_pem)
    issuer = CertificateIssuer(UntrustedEvidenceProvider(), client)
    b1 = issuer.issue_certificate("svc.example.com")
    b2 = issuer.issue_certificate("svc.example.com")

    assert b1.private_key_pem != b2.private_key_pem
    assert client.submitted[0][0].nonce != client.submitted[1][0].nonce
    assert rec.events.count("request_challenge") == 2


def test_multiple_domains_in_one_request(leaf_pem, ca_pem):
    rec = Recorder()
    client = FakeClient(rec, leaf_pem, ca_pem)
    CertificateIssuer(FakeProvider(rec), client).issue_certificates(["a.example", "b.example", "a.example"])
    assert client.submitted[0][2] == {"a.example", "b.example"}


@pytest.mark.parametrize("domains", [[], [""]])
def test_no_domains_rejected_before_io(leaf_pem, ca_pem, domains):
    rec = Recorder()
    with pytest.raises(ValueError):
        CertificateIssuer(FakeProvider(rec), FakeClient(rec, leaf_pem, ca_pem)).issue_certificates(domains)
    assert rec.events == []


def test_private_key_hidden_from_repr(leaf_pem, ca_pem):
    rec = Recorder()
    bundle = CertificateIssuer(FakeProvider(rec), FakeClient(rec, leaf_pem, ca_pem)).issue_certificate("x.example")
    assert "PRIVATE KEY" not in repr(bundle)
