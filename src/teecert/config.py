import os
from dotenv import load_dotenv

load_dotenv()

# CA attestation endpoint; empty TEECERT_API_PATH means the CA URL is used as-is
API_PATH = os.getenv("TEECERT_API_PATH", "/api/v1/pki")
TIMEOUT_SEC = float(os.getenv("TEECERT_TIMEOUT_SEC", "30"))

# Placeholder evidence understood by the CA as "no hardware guarantee"
UNTRUSTED_EVIDENCE_HEX = os.getenv("TEECERT_UNTRUSTED_EVIDENCE_HEX", "cccccc")

# Quote primitives
TSM_REPORT_DIR = os.getenv("TEECERT_TSM_REPORT_DIR", "/sys/kernel/config/tsm/report")
SGX_ATTESTATION_DIR = os.getenv("TEECERT_SGX_ATTESTATION_DIR", "/dev/attestation")
MIN_QUOTE_BYTES = int(os.getenv("TEECERT_MIN_QUOTE_BYTES", "100"))
