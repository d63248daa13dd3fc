"""Persist an issued bundle as PEM files named after the domain.

Layouts (which bundle field lands in which file) are per-platform policy:

  standard       {domain}.crt = leaf, {domain}.ca.crt = CA chain, {domain}.key
  chain-as-cert  {domain}.crt = CA chain, no .ca.crt,              {domain}.key

Nothing is written unless every field the layout needs is present. Files are
staged under temporary names and renamed into place, private key last.
After a successful write, files that only the other layout produces (a
stale {domain}.ca.crt) are removed so the directory holds one consistent set.
"""
from __future__ import annotations

import enum
import os
import tempfile
from dataclasses import dataclass
from typing import List, Tuple

from .attestation.models import CertificateBundle, PlatformKind
from .errors import FileSystemError, ProtocolError
from .utils.logging import get_logger

log = get_logger()


class OutputLayout(enum.Enum):
    STANDARD = "standard"
    CHAIN_AS_CERT = "chain-as-cert"


# (file suffix, bundle attribute); key file is always last
_LAYOUT_FILES = {
    OutputLayout.STANDARD: [
        (".crt", "leaf_certificate_pem"),
        (".ca.crt", "ca_chain_pem"),
        (".key", "private_key_pem"),
    ],
    OutputLayout.CHAIN_AS_CERT: [
        (".crt", "ca_chain_pem"),
        (".key", "private_key_pem"),
    ],
}

_PLATFORM_LAYOUT = {
    PlatformKind.UNTRUSTED: OutputLayout.STANDARD,
    PlatformKind.TDX: OutputLayout.STANDARD,
    PlatformKind.SEVSNP: OutputLayout.STANDARD,
    PlatformKind.SGX: OutputLayout.CHAIN_AS_CERT,
}


def default_layout_for(platform: PlatformKind) -> OutputLayout:
    return _PLATFORM_LAYOUT[platform]


@dataclass
class CertificateWriter:
    output_dir: str
    layout: OutputLayout = OutputLayout.STANDARD

    def plan(self, domain: str, bundle: CertificateBundle) -> List[Tuple[str, str]]:
        """Return [(path, pem_text)] or raise if the bundle is incomplete for this layout."""
        if not domain or os.sep in domain or domain in (".", ".."):
            raise ValueError(f"invalid domain for file naming: {domain!r}")
        out = []
        for suffix, attr in _LAYOUT_FILES[self.layout]:
            value = getattr(bundle, attr)
            if not value:
                raise ProtocolError(f"certificate bundle is missing {attr}; nothing written")
            out.append((os.path.join(self.output_dir, domain + suffix), value))
        return out

    def ensure_ready(self) -> None:
        if not os.path.isdir(self.output_dir):
            raise FileSystemError(f"output directory does not exist: {self.output_dir}")
        if not os.access(self.output_dir, os.W_OK):
            raise FileSystemError(f"output directory is not writable: {self.output_dir}")

    def write(self, domain: str, bundle: CertificateBundle) -> List[str]:
        files = self.plan(domain, bundle)
        self.ensure_ready()
        staged: List[Tuple[str, str]] = []
        try:
            for path, text in files:
                staged.append((self._stage(path, text), path))
            for tmp, path in staged:
                os.replace(tmp, path)
        except OSError as e:
            for tmp, _ in staged:
                if os.path.exists(tmp):
                    os.unlink(tmp)
            raise FileSystemError(f"failed writing certificate files to {self.output_dir}: {e}") from e
        self._remove_stale(domain)
        written = [path for path, _ in files]
        log.debug(f"wrote {', '.join(os.path.basename(p) for p in written)}")
        return written

    def _remove_stale(self, domain: str) -> None:
        current = {suffix for suffix, _ in _LAYOUT_FILES[self.layout]}
        for layout_files in _LAYOUT_FILES.values():
            for suffix, _ in layout_files:
                path = os.path.join(self.output_dir, domain + suffix)
                if suffix not in current and os.path.exists(path):
                    try:
                        os.unlink(path)
                    except OSError as e:
                        raise FileSystemError(f"cannot remove stale {path}: {e}") from e
                    log.info(f"Removed stale {os.path.basename(path)} left by another output layout")

    def _stage(self, path: str, text: str) -> str:
        # mkstemp creates 0600; certificates are public, the key stays private
        fd, tmp = tempfile.mkstemp(prefix=".teecert-", dir=self.output_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                if not path.endswith(".key"):
                    os.fchmod(f.fileno(), 0o644)
                f.write(text)
        except OSError:
            os.unlink(tmp)
            raise
        return tmp


__all__ = ["OutputLayout", "CertificateWriter", "default_layout_for"]
