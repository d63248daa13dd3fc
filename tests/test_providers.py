import hashlib

import pytest

from teecert.attestation.models import Challenge, PlatformKind
from teecert.attestation.providers import (
    EvidenceProvider,
    HardwareEvidenceProvider,
    SgxEvidenceProvider,
    UntrustedEvidenceProvider,
    report_data_for,
    select_evidence_provider,
)
from teecert.errors import EvidenceUnavailable, UnsupportedPlatform


class FakeQuote:
    def __init__(self, quote=b"Q" * 256, exc=None):
        self.quote = quote
        self.exc = exc
        self.calls = []

    def __call__(self, report_data: bytes) -> bytes:
        self.calls.append(report_data)
        if self.exc:
            raise self.exc
        return self.quote


@pytest.mark.parametrize("kind", list(PlatformKind))
def test_every_platform_has_a_provider(kind):
    provider = select_evidence_provider(kind, primitive=FakeQuote())
    assert isinstance(provider, EvidenceProvider)
    assert provider.platform is kind


@pytest.mark.parametrize("name,kind", [
    ("Untrusted", PlatformKind.UNTRUSTED),
    ("TDX", PlatformKind.TDX),
    ("tdx", PlatformKind.TDX),
    ("SEVSNP", PlatformKind.SEVSNP),
    ("sev-snp", PlatformKind.SEVSNP),
    ("SGX", PlatformKind.SGX),
])
def test_select_by_cli_name(name, kind):
    assert select_evidence_provider(name).platform is kind


@pytest.mark.parametrize("bad", ["ARM-CCA", "", None, 3])
def test_unsupported_platform_fails_fast(bad):
    with pytest.raises(UnsupportedPlatform):
        select_evidence_provider(bad)


def test_untrusted_evidence_is_fixed_placeholder():
    provider = select_evidence_provider(PlatformKind.UNTRUSTED)
    e1 = provider.produce_evidence(Challenge(nonce=b"one"))
    e2 = provider.produce_evidence(Challenge(nonce=b"two"), user_data=b"pk")
    assert e1.quote == bytes.fromhex("cccccc")
    assert e1 == e2


def test_untrusted_placeholder_overridable():
    provider = UntrustedEvidenceProvider(placeholder=b"\x01\x02")
    assert provider.produce_evidence(Challenge(nonce=b"n")).quote == b"\x01\x02"


@pytest.mark.parametrize("kind", [PlatformKind.TDX, PlatformKind.SEVSNP, PlatformKind.SGX])
def test_hardware_provider_binds_challenge_and_user_data(kind):
    fake = FakeQuote()
    provider = select_evidence_provider(kind, primitive=fake)
    chal = Challenge(nonce=b"server-nonce", challenge_id="c-1")
    ev = provider.produce_evidence(chal, user_data=b"public-key-der")
    assert ev.platform is kind
    assert ev.quote == fake.quote
    assert fake.calls == [hashlib.sha512(b"server-nonce" + b"public-key-der").digest()]
    assert len(fake.calls[0]) == 64


def test_report_data_changes_with_nonce():
    a = report_data_for(Challenge(nonce=b"a"), b"k")
    b = report_data_for(Challenge(nonce=b"b"), b"k")
    assert a != b


def test_hardware_provider_propagates_unavailable():
    provider = SgxEvidenceProvider(FakeQuote(exc=EvidenceUnavailable("no /dev/attestation")))
    with pytest.raises(EvidenceUnavailable):
        provider.produce_evidence(Challenge(nonce=b"n"))


def test_hardware_provider_rejects_empty_quote():
    provider = HardwareEvidenceProvider(PlatformKind.TDX, FakeQuote(quote=b""))
    with pytest.raises(EvidenceUnavailable):
        provider.produce_evidence(Challenge(nonce=b"n"))
