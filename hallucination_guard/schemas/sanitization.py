"""
Schemas - Sanitization Models

Policy actions and the sanitized answer returned to the caller.
"""

from enum import Enum
from typing import Any, Dict, List

from hallucination_guard.schemas.base import WireModel


class SanitizationAction(str, Enum):
    """Terminal actions of the sanitizer, in escalating order."""
    PASSED = "passed"
    WARNED = "warned"
    REDACTED = "redacted"
    BLOCKED = "blocked"


class SanitizationResult(WireModel):
    """Final answer text plus what was done to it."""
    content: str
    action: SanitizationAction
    modifications: List[str] = []
    was_modified: bool = False
    metadata: Dict[str, Any] = {}
