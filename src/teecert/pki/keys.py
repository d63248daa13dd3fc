from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from ..errors import ProtocolError


@dataclass(frozen=True)
class KeyMaterial:
    """Fresh per-attempt key pair plus the CSR the CA is asked to sign."""

    private_key_pem: str = field(repr=False)
    csr_pem: str
    public_key_der: bytes


def generate_key_material(domains: Iterable[str]) -> KeyMaterial:
    names = sorted(set(domains))
    if not names:
        raise ValueError("at least one domain is required")
    key = ec.generate_private_key(ec.SECP256R1())
    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, names[0])]))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(n) for n in names]), critical=False)
        .sign(key, hashes.SHA256())
    )
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_der = key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return KeyMaterial(
        private_key_pem=private_pem,
        csr_pem=csr.public_bytes(serialization.Encoding.PEM).decode(),
        public_key_der=public_der,
    )


def check_certificate_pem(pem: str, what: str) -> str:
    """Parse-check PEM certificate text returned by the CA; the text itself is kept verbatim."""
    try:
        certs = x509.load_pem_x509_certificates(pem.encode())
    except ValueError as e:
        raise ProtocolError(f"{what} is not a valid PEM certificate: {e}") from e
    if not certs:
        raise ProtocolError(f"{what} contains no certificates")
    return pem


__all__ = ["KeyMaterial", "generate_key_material", "check_certificate_pem"]
