"""
Services - Claim Extractor

Pulls typed, risk-categorized technical claims out of generated text.
"""

import re
from typing import Dict, List, Pattern

from hallucination_guard.schemas import Claim, ClaimType, RiskLevel
from hallucination_guard.services.constants import CURRENCY_UNIT_AHEAD


CLAIM_PATTERNS: Dict[ClaimType, Pattern] = {
    ClaimType.ENDPOINT: re.compile(
        r"\b(?:endpoint|url|api|path|route)[\s:]+[`\"']?"
        r"((?:https?://)?[\w\-.{}]*/[/\w\-.{}]*)",
        re.IGNORECASE,
    ),
    ClaimType.PRICE: re.compile(
        r"\b(?:price|cost|fee|rate|pricing)(?:\s+(?:is|of))?[\s:]+[`\"']?"
        r"(?:\$\s*|" + CURRENCY_UNIT_AHEAD + r")"
        r"(\d[\d,]*(?:\.\d+)?)",
        re.IGNORECASE,
    ),
    # HTTP verbs are only meaningful in upper case ("GET /users", not "get started")
    ClaimType.METHOD: re.compile(
        r"\b(GET|POST|PUT|DELETE|PATCH)\s+[`\"']?(/[/\w\-.{}]*)"
    ),
    ClaimType.PARAMETER: re.compile(
        r"\b(?:parameter|param|field|property)[\s:]+[`\"']?(\w+)[`\"']?\s*"
        r"(?:is|should be|must be|type)\b",
        re.IGNORECASE,
    ),
    ClaimType.COUNTRY: re.compile(
        r"(?i:available|supported|works|operates)\s+(?i:in|for)\s+"
        r"([A-Z][a-z]+(?:\s*,\s*[A-Z][a-z]+)*)"
    ),
    ClaimType.FEATURE: re.compile(
        r"\b(?:supports?|provides?|includes?|offers?)\s+"
        r"([^.,\n]+?(?:validation|verification|authentication|detection))",
        re.IGNORECASE,
    ),
    ClaimType.RESPONSE: re.compile(
        r"\b(?:returns?|response|output)[\s:]+(?:a\s+)?[`\"']?"
        r"(\{[^}]+\}|\[[^\]]+\]|JSON|XML)",
        re.IGNORECASE,
    ),
}

RISK_BY_TYPE = {
    ClaimType.ENDPOINT: RiskLevel.CRITICAL,
    ClaimType.PRICE: RiskLevel.CRITICAL,
    ClaimType.METHOD: RiskLevel.HIGH,
    ClaimType.PARAMETER: RiskLevel.HIGH,
    ClaimType.COUNTRY: RiskLevel.MEDIUM,
    ClaimType.FEATURE: RiskLevel.MEDIUM,
    ClaimType.RESPONSE: RiskLevel.LOW,
}

CONTEXT_RADIUS = 100


class ClaimExtractor:
    """Regex-driven extraction of verifiable claims."""

    def __init__(self, max_claims: int = 10):
        self.max_claims = max_claims

    def extract_claims(self, text: str) -> List[Claim]:
        """
        Extract verifiable claims from an answer.

        Claims are deduplicated by type and lowercased value, and capped
        at max_claims in pattern order.
        """
        if not text:
            return []

        claims = []
        seen = set()

        for claim_type, pattern in CLAIM_PATTERNS.items():
            for match in pattern.finditer(text):
                value = self._claim_value(claim_type, match).strip()
                if not value:
                    continue

                key = f"{claim_type.value}:{value.lower()}"
                if key in seen:
                    continue
                seen.add(key)

                claims.append(Claim(
                    type=claim_type,
                    value=value,
                    context=self._extract_context(text, match.start()),
                    risk_level=self.categorize_risk(claim_type),
                ))

        return claims[:self.max_claims]

    @staticmethod
    def categorize_risk(claim) -> RiskLevel:
        """Risk level for a claim or claim type."""
        claim_type = claim.type if isinstance(claim, Claim) else ClaimType(claim)
        return RISK_BY_TYPE.get(claim_type, RiskLevel.MEDIUM)

    @staticmethod
    def _claim_value(claim_type: ClaimType, match: re.Match) -> str:
        if claim_type == ClaimType.METHOD:
            return f"{match.group(1)} {match.group(2)}"
        return (match.group(1) or match.group(0)).rstrip(".")

    @staticmethod
    def _extract_context(text: str, position: int) -> str:
        start = max(0, position - CONTEXT_RADIUS)
        end = min(len(text), position + CONTEXT_RADIUS)
        return re.sub(r"\n+", " ", text[start:end]).strip()
