"""
Services - Hallucination Detector

Pattern-based detection of fabricated endpoints, prices and countries.

The knowledge base is rebuilt from each request's sources; nothing is
shared between requests.
"""

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from hallucination_guard.schemas import (
    DetectionSource,
    Hallucination,
    HallucinationType,
    RetrievalResult,
)
from hallucination_guard.services.constants import (
    BARE_ENDPOINT_PATTERN,
    COUNTRY_PATTERNS,
    COUNTRY_SEVERITY,
    ENDPOINT_SEVERITY,
    KEYWORD_ENDPOINT_PATTERN,
    MIN_ENDPOINT_LENGTH,
    PRICE_PATTERN,
    PRICE_SEVERITY,
    PRICE_TOLERANCE,
)


@dataclass(frozen=True)
class KnowledgeBase:
    """Facts the sources actually state."""
    endpoints: FrozenSet[str]
    prices: Tuple[float, ...]
    parameters: FrozenSet[str]
    methods: Tuple[Tuple[str, str], ...]  # (endpoint or title, METHOD)
    countries: FrozenSet[str]

    def has_price(self, value: float) -> bool:
        return any(abs(known - value) < PRICE_TOLERANCE for known in self.prices)


def normalize_endpoint(endpoint: Optional[str]) -> str:
    """
    Normalize an endpoint for comparison.

    Lowercases, drops scheme/host and query string, collapses path
    parameters to {param} and removes trailing slashes or dots.
    """
    if not endpoint:
        return ""

    path = endpoint.strip().strip("`\"'").lower()
    path = re.sub(r"^(?:https?://)?[^/\s]*(?=/)", "", path)
    path = path.split("?", 1)[0].split("#", 1)[0]
    path = re.sub(r"\{[^}]+\}", "{param}", path)
    path = re.sub(r"/:[\w-]+", "/{param}", path)
    return path.rstrip("./")


def iter_endpoints(text: str):
    """Yield (raw endpoint, match position) for every path-like token."""
    for pattern in (KEYWORD_ENDPOINT_PATTERN, BARE_ENDPOINT_PATTERN):
        for match in pattern.finditer(text):
            yield match.group(1).rstrip("."), match.start(1)


def iter_prices(text: str):
    """Yield (text fragment, numeric value, position) for every currency amount."""
    for match in PRICE_PATTERN.finditer(text):
        amount = match.group("amount").rstrip(",")
        try:
            value = float(amount.replace(",", ""))
        except ValueError:
            continue

        if match.group("symbol"):
            start = match.start("symbol")
        elif match.group("bare_symbol"):
            start = match.start("bare_symbol")
        else:
            start = match.start("amount")
        yield text[start:match.start("amount") + len(amount)], value, start


def find_countries(text: str) -> List[str]:
    return [
        country for country, pattern in COUNTRY_PATTERNS.items()
        if pattern.search(text)
    ]


def build_knowledge_base(raw_results: Sequence[RetrievalResult]) -> KnowledgeBase:
    """Collect known endpoints, prices, parameters, methods and countries."""
    endpoints = set()
    prices = []
    parameters = set()
    methods: Dict[str, str] = {}
    countries = set()

    for result in raw_results:
        chunk = result.chunk
        if chunk is None:
            continue

        if chunk.endpoint:
            endpoints.add(normalize_endpoint(chunk.endpoint))
        if chunk.price is not None:
            prices.append(float(chunk.price))
        for name in chunk.parameter_names():
            parameters.add(name.lower())
        if chunk.method:
            methods[chunk.endpoint or chunk.title] = chunk.method.upper()
        if chunk.country:
            countries.add(chunk.country.lower())

        content = chunk.content or ""
        for raw, _ in iter_endpoints(content):
            endpoints.add(normalize_endpoint(raw))
        for _, value, _ in iter_prices(content):
            prices.append(value)
        countries.update(find_countries(content))

    return KnowledgeBase(
        endpoints=frozenset(endpoints),
        prices=tuple(prices),
        parameters=frozenset(parameters),
        methods=tuple(methods.items()),
        countries=frozenset(countries),
    )


class HallucinationDetector:
    """Flags answer fragments that the request's sources do not support."""

    def __init__(self, raw_results: Optional[Sequence[RetrievalResult]] = None):
        self.knowledge = build_knowledge_base(raw_results or [])

    def detect(self, response: str) -> List[Hallucination]:
        """
        Detect hallucinations in a generated answer.

        Args:
            response: Generated answer text

        Returns:
            Detected hallucinations (empty when nothing technical is claimed)
        """
        if not response:
            return []

        hallucinations = []
        hallucinations.extend(self._detect_endpoints(response))
        hallucinations.extend(self._detect_prices(response))
        hallucinations.extend(self._detect_countries(response))
        return hallucinations

    def _detect_endpoints(self, response: str) -> List[Hallucination]:
        found = []
        seen = set()

        for raw, position in iter_endpoints(response):
            normalized = normalize_endpoint(raw)
            if normalized in seen:
                continue
            seen.add(normalized)

            if len(normalized) > MIN_ENDPOINT_LENGTH and normalized not in self.knowledge.endpoints:
                found.append(Hallucination(
                    type=HallucinationType.FABRICATED_ENDPOINT,
                    detected=raw,
                    context=_extract_context(response, position, 30),
                    severity=ENDPOINT_SEVERITY,
                    source=DetectionSource.PATTERN_DETECTOR,
                ))

        return found

    def _detect_prices(self, response: str) -> List[Hallucination]:
        found = []

        for fragment, value, position in iter_prices(response):
            if self.knowledge.has_price(value):
                continue

            found.append(Hallucination(
                type=HallucinationType.FABRICATED_PRICE,
                detected=fragment,
                context=_extract_context(response, position, 20),
                severity=PRICE_SEVERITY,
                source=DetectionSource.PATTERN_DETECTOR,
            ))

        return found

    def _detect_countries(self, response: str) -> List[Hallucination]:
        # Without any country stated in the sources there is nothing to contradict
        if not self.knowledge.countries:
            return []

        return [
            Hallucination(
                type=HallucinationType.UNSUPPORTED_COUNTRY,
                detected=country,
                context=f"Reference to {country} found in response but not in source chunks",
                severity=COUNTRY_SEVERITY,
                source=DetectionSource.PATTERN_DETECTOR,
            )
            for country in find_countries(response)
            if country not in self.knowledge.countries
        ]


def _extract_context(text: str, position: int, radius: int) -> str:
    start = max(0, position - radius)
    end = min(len(text), position + radius)
    return text[start:end].replace("\n", " ").strip()
