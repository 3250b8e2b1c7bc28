"""
Tools Module - MCP Tool Implementations

Retrieval, answer validation and audit reporting tools.
"""

from hallucination_guard.tools import retrieve_context
from hallucination_guard.tools import validate_answer
from hallucination_guard.tools import audit_report

__all__ = [
    "retrieve_context",
    "validate_answer",
    "audit_report",
]
