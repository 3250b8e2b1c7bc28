"""
Audit - Privacy Filters

PII redaction and hashing applied before anything reaches the audit log.
"""

import hashlib
import re
from typing import Optional

# Applied in order; later patterns see earlier placeholders
PII_PATTERNS = (
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "[EMAIL]"),
    (re.compile(r"(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}"), "[PHONE]"),
    (re.compile(r"\b\d{3}[-.\s]?\d{2}[-.\s]?\d{4}\b"), "[SSN]"),
    (re.compile(r"\b\d{4}[-.\s]?\d{4}[-.\s]?\d{4}[-.\s]?\d{4}\b"), "[CARD]"),
    (re.compile(r"\b\d{6,10}\b"), "[DOC_ID]"),
)


def redact_pii(text: Optional[str]) -> Optional[str]:
    """Replace emails, phones, SSNs, card and document numbers with placeholders."""
    if not text:
        return text

    for pattern, placeholder in PII_PATTERNS:
        text = pattern.sub(placeholder, text)
    return text


def hash_text(text: Optional[str]) -> str:
    """Short stable digest used in place of stored text."""
    if not text:
        return "empty"
    return f"hash_{hashlib.sha256(text.encode('utf-8')).hexdigest()[:16]}"
