"""Host primitives that turn 64 bytes of report data into a hardware quote.

  - TDX / SEV-SNP guests: Linux configfs-tsm
      mkdir <report_dir>/<entry>; check provider; write inblob; read outblob
  - SGX enclaves under Gramine: /dev/attestation pseudo-files
      write user_report_data; read quote

Each primitive raises EvidenceUnavailable when the interface is absent or
returns nothing usable. They block on the driver and may take a while.
"""
from __future__ import annotations

import os
import shutil
import tempfile
from typing import Callable

from ..config import MIN_QUOTE_BYTES, SGX_ATTESTATION_DIR, TSM_REPORT_DIR
from ..errors import EvidenceUnavailable
from ..utils.logging import get_logger

REPORT_DATA_LEN = 64

# report_data -> quote bytes
QuotePrimitive = Callable[[bytes], bytes]

log = get_logger()


def _check_quote(quote: bytes, source: str) -> bytes:
    if not quote:
        raise EvidenceUnavailable(f"empty quote from {source}")
    if len(quote) < MIN_QUOTE_BYTES:
        raise EvidenceUnavailable(f"quote too small ({len(quote)} bytes) from {source}")
    return quote


def _check_report_data(report_data: bytes) -> None:
    if len(report_data) != REPORT_DATA_LEN:
        raise ValueError(f"report data must be {REPORT_DATA_LEN} bytes, got {len(report_data)}")


def tsm_quote(report_data: bytes, expected_provider: str, report_dir: str | None = None) -> bytes:
    """Generate a quote through configfs-tsm.

    expected_provider is the kernel provider name ("tdx_guest" or "sev_guest");
    a mismatch means we are on a different TEE than the one requested.
    """
    _check_report_data(report_data)
    base = report_dir or TSM_REPORT_DIR
    if not os.path.isdir(base):
        raise EvidenceUnavailable(f"configfs-tsm not available at {base}")
    try:
        entry = tempfile.mkdtemp(prefix="teecert-", dir=base)
    except OSError as e:
        raise EvidenceUnavailable(f"cannot create tsm report entry under {base}: {e}") from e
    try:
        provider_path = os.path.join(entry, "provider")
        if os.path.exists(provider_path):
            with open(provider_path, "r", encoding="utf-8") as f:
                provider = f.read().strip()
            if provider != expected_provider:
                raise EvidenceUnavailable(
                    f"tsm provider is {provider!r}, expected {expected_provider!r}"
                )
        with open(os.path.join(entry, "inblob"), "wb") as f:
            f.write(report_data)
        with open(os.path.join(entry, "outblob"), "rb") as f:
            quote = f.read()
    except OSError as e:
        raise EvidenceUnavailable(f"configfs-tsm quote generation failed: {e}") from e
    finally:
        _remove_entry(entry)
    log.debug(f"tsm quote generated provider={expected_provider} size={len(quote)}")
    return _check_quote(quote, "configfs-tsm")


def _remove_entry(entry: str) -> None:
    # configfs entries are removed with rmdir; plain directories (tests) need rmtree
    try:
        os.rmdir(entry)
    except OSError:
        shutil.rmtree(entry, ignore_errors=True)


def tdx_quote(report_data: bytes) -> bytes:
    return tsm_quote(report_data, "tdx_guest")


def sev_snp_quote(report_data: bytes) -> bytes:
    return tsm_quote(report_data, "sev_guest")


def gramine_sgx_quote(report_data: bytes, attestation_dir: str | None = None) -> bytes:
    _check_report_data(report_data)
    base = attestation_dir or SGX_ATTESTATION_DIR
    quote_path = os.path.join(base, "quote")
    if not os.path.exists(quote_path):
        raise EvidenceUnavailable(
            f"cannot find {quote_path}; not running under SGX with remote attestation enabled?"
        )
    try:
        with open(os.path.join(base, "user_report_data"), "wb") as f:
            f.write(report_data)
        with open(quote_path, "rb") as f:
            quote = f.read()
    except OSError as e:
        raise EvidenceUnavailable(f"SGX quote generation failed: {e}") from e
    log.debug(f"sgx quote generated size={len(quote)}")
    return _check_quote(quote, quote_path)


__all__ = [
    "QuotePrimitive",
    "REPORT_DATA_LEN",
    "tsm_quote",
    "tdx_quote",
    "sev_snp_quote",
    "gramine_sgx_quote",
]
