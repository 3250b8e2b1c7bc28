"""
Schemas - Validation Models

Groundedness levels, detected hallucinations and validation results.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from hallucination_guard.schemas.base import WireModel


class GroundednessLevel(str, Enum):
    """How well the retrieved sources support an answer."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNGROUNDED = "ungrounded"


class ValidationStatus(str, Enum):
    """Overall outcome of a validation pass."""
    VALID = "valid"
    WARNING = "warning"
    INVALID = "invalid"
    UNVERIFIABLE = "unverifiable"


class HallucinationType(str, Enum):
    """Kinds of fabrication the guard can flag."""
    FABRICATED_ENDPOINT = "fabricated_endpoint"
    FABRICATED_PRICE = "fabricated_price"
    FABRICATED_PARAMETER = "fabricated_parameter"
    UNSUPPORTED_COUNTRY = "unsupported_country"
    INCORRECT_METHOD = "incorrect_method"
    FABRICATED_FEATURE = "fabricated_feature"
    CONFLICTING_INFO = "conflicting_info"


class DetectionSource(str, Enum):
    """Layer that produced a hallucination record."""
    PATTERN_DETECTOR = "pattern_detector"
    SEMANTIC_VERIFIER = "semantic_verifier"


class Hallucination(WireModel):
    """A fabricated fragment found in a generated answer."""
    type: HallucinationType
    detected: str
    context: str = ""
    severity: float = Field(0.0, ge=0.0, le=1.0)
    source: Optional[DetectionSource] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _missing_severity_is_zero(cls, value):
        # A record without a severity must never escalate the sanitizer
        return 0.0 if value is None else value


class ValidationResult(WireModel):
    """Result of checking an answer against its sources."""
    is_grounded: bool = False
    warnings: List[str] = []
    detected_hallucinations: List[Hallucination] = []
    status: ValidationStatus = ValidationStatus.UNVERIFIABLE

    @property
    def max_severity(self) -> float:
        return max((h.severity for h in self.detected_hallucinations), default=0.0)
