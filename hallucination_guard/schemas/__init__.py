"""
Schemas Module - Pydantic Models

Data models for sources, validation, claims, sanitization and audit.
"""

from hallucination_guard.schemas.validation import (
    GroundednessLevel,
    ValidationStatus,
    HallucinationType,
    DetectionSource,
    Hallucination,
    ValidationResult,
)
from hallucination_guard.schemas.source import Source, RetrievalResult, RAGMetadata
from hallucination_guard.schemas.claims import (
    ClaimType,
    RiskLevel,
    VerificationMethod,
    Claim,
    ClaimVerification,
    SemanticReport,
)
from hallucination_guard.schemas.sanitization import SanitizationAction, SanitizationResult
from hallucination_guard.schemas.audit import (
    AuditEntry,
    AuditHallucination,
    AuditSource,
    Alert,
    Incident,
    IncidentSummary,
    RecurringPattern,
    MetricsSnapshot,
)

__all__ = [
    "GroundednessLevel",
    "ValidationStatus",
    "HallucinationType",
    "DetectionSource",
    "Hallucination",
    "ValidationResult",
    "Source",
    "RetrievalResult",
    "RAGMetadata",
    "ClaimType",
    "RiskLevel",
    "VerificationMethod",
    "Claim",
    "ClaimVerification",
    "SemanticReport",
    "SanitizationAction",
    "SanitizationResult",
    "AuditEntry",
    "AuditHallucination",
    "AuditSource",
    "Alert",
    "Incident",
    "IncidentSummary",
    "RecurringPattern",
    "MetricsSnapshot",
]
