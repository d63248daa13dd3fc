from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


class ChallengeResponse(BaseModel):
    nonce: str
    id: Optional[str] = None


class ChallengeRef(BaseModel):
    id: Optional[str] = None
    nonce: str


class EvidenceBody(BaseModel):
    type: str
    quote: str


class CertificateRequest(BaseModel):
    challenge: ChallengeRef
    evidence: EvidenceBody
    domains: List[str]
    csr: str


class CertificateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    certificate: str = Field(min_length=1)
    ca_bundle: Optional[str] = Field(default=None, alias="caBundle")


class ErrorResponse(BaseModel):
    error: Optional[str] = None
    message: Optional[str] = None
    detail: Optional[str] = None

    def text(self) -> Optional[str]:
        return self.error or self.message or self.detail
