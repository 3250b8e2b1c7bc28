"""
Audit Module - Compliance Trail

Audit log persistence, metrics, incident tracking and alerting.
"""

from hallucination_guard.audit.audit_logger import AuditLogger
from hallucination_guard.audit.audit_system import HallucinationAudit
from hallucination_guard.audit.incidents import IncidentTracker
from hallucination_guard.audit.metrics import MetricsCollector
from hallucination_guard.audit.privacy import hash_text, redact_pii

__all__ = [
    "AuditLogger",
    "HallucinationAudit",
    "IncidentTracker",
    "MetricsCollector",
    "hash_text",
    "redact_pii",
]
