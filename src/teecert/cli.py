from __future__ import annotations

import argparse
from typing import Optional

from pydantic import ValidationError

from .attestation.providers import EvidenceProvider, select_evidence_provider
from .config import API_PATH, TIMEOUT_SEC
from .errors import TeeCertError
from .output import CertificateWriter, OutputLayout
from .pki.client import AttestationServiceClient, load_ca_bundle
from .pki.config import IssuerConfig
from .pki.issuer import AttestationService, CertificateIssuer
from .utils.logging import get_logger

log = get_logger()


def run(
    cfg: IssuerConfig,
    *,
    provider: Optional[EvidenceProvider] = None,
    client: Optional[AttestationService] = None,
) -> list[str]:
    """Issue one certificate and write it out; returns the written paths.

    Local checks (platform, CA bundle, output directory) all happen before
    the first network request.
    """
    provider = provider or select_evidence_provider(cfg.platform)
    ca_bundle = load_ca_bundle(cfg.ca_bundle_path)
    writer = CertificateWriter(cfg.output_dir, cfg.output_layout())
    writer.ensure_ready()

    own_client = client is None
    svc = client or AttestationServiceClient(
        cfg.ca_url,
        ca_bundle,
        api_path=cfg.api_path,
        timeout=cfg.timeout_sec,
    )
    try:
        bundle = CertificateIssuer(provider, svc).issue_certificate(cfg.domain)
    finally:
        if own_client:
            svc.close()
    return writer.write(cfg.domain, bundle)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        "teecert",
        description="Obtain a TLS certificate from an attestation-gated CA",
    )
    p.add_argument("platform", metavar="CPU_TYPE", help="Untrusted | TDX | SEVSNP | SGX")
    p.add_argument("ca_url", metavar="CA_URL")
    p.add_argument("ca_bundle_path", metavar="CA_BUNDLE_PATH")
    p.add_argument("domain", metavar="CERT_GENERATED_DOMAIN")
    p.add_argument("output_dir", metavar="OUTPUT_CERTS_FOLDER")
    p.add_argument("--api-path", dest="api_path", default=API_PATH, help="API path appended to CA_URL ('' for none)")
    p.add_argument("--timeout", type=float, default=TIMEOUT_SEC, help="Per-request timeout in seconds")
    p.add_argument("--layout", choices=[layout.value for layout in OutputLayout], default=None, help="Output file layout (default depends on CPU_TYPE)")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    get_logger(verbose=args.verbose)
    try:
        cfg = IssuerConfig(
            platform=args.platform,
            ca_url=args.ca_url,
            ca_bundle_path=args.ca_bundle_path,
            domain=args.domain,
            output_dir=args.output_dir,
            api_path=args.api_path,
            timeout_sec=args.timeout,
            layout=OutputLayout(args.layout) if args.layout else None,
        )
    except TeeCertError as e:
        log.error(f"Certificate generation error: {e}")
        return 2
    except ValidationError as e:
        log.error(f"Invalid arguments: {e}")
        return 2
    try:
        run(cfg)
    except TeeCertError as e:
        log.error(f"Certificate generation error: {e}")
        return 1
    log.info(f"Certificate for {cfg.domain} stored successfully to {cfg.output_dir}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
