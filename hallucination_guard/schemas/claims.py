"""
Schemas - Claim Models

Typed claims extracted from answers and their semantic verification results.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from hallucination_guard.schemas.base import WireModel


class ClaimType(str, Enum):
    """Families of verifiable technical assertions."""
    ENDPOINT = "ENDPOINT"
    PRICE = "PRICE"
    METHOD = "METHOD"
    PARAMETER = "PARAMETER"
    COUNTRY = "COUNTRY"
    FEATURE = "FEATURE"
    RESPONSE = "RESPONSE"


class RiskLevel(str, Enum):
    """How damaging a wrong claim of this kind would be."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class VerificationMethod(str, Enum):
    LITERAL_MATCH = "literal_match"
    SEMANTIC_SIMILARITY = "semantic_similarity"
    ERROR = "error"


class Claim(WireModel):
    """A factual assertion pulled out of generated text."""
    type: ClaimType
    value: str
    context: str = ""
    risk_level: RiskLevel = RiskLevel.MEDIUM


class ClaimVerification(WireModel):
    """Outcome of verifying one claim against the sources."""
    claim: Claim
    is_verified: bool
    confidence_score: float = Field(ge=0.0, le=1.0)
    matched_source: Optional[str] = None
    verification_method: VerificationMethod
    error: Optional[str] = None


class SemanticReport(WireModel):
    """Aggregate semantic verification report for one answer."""
    verified_claims: List[ClaimVerification] = []
    unverified_claims: List[ClaimVerification] = []
    overall_confidence: float = Field(1.0, ge=0.0, le=1.0)
    passes_threshold: bool = True
    total_claims: int = 0
    verification_rate: int = 100
    summary: str = ""
