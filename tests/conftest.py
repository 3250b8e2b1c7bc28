"""
Shared fixtures
"""

import pytest

from hallucination_guard.config import Settings
from hallucination_guard.schemas import RetrievalResult, Source


@pytest.fixture
def settings(tmp_path):
    """Default settings with the audit log redirected to a temp dir."""
    s = Settings()
    s.rag.docs_base_url = "https://docs.example.com"
    s.rag.strict_mode = True
    s.audit.log_file = tmp_path / "audit.json"
    s.audit.enable_persistence = True
    s.cache.enabled = True
    return s


def make_result(
    score: float,
    title: str = "Doc",
    content: str = "",
    source_path: str = "unknown",
    **fields,
) -> RetrievalResult:
    """Retriever hit whose chunk carries the same score."""
    chunk = Source(
        id=f"{title}-{score}",
        title=title,
        content=content,
        source_path=source_path,
        score=score,
        **fields,
    )
    return RetrievalResult(id=chunk.id, score=score, chunk=chunk)


@pytest.fixture
def citizen_results():
    """Two sources documenting a single Colombian citizen lookup endpoint."""
    return [
        make_result(
            0.90,
            title="Colombian Citizens",
            content="Validates Colombian citizens by document number. Price: $0.25 per query.",
            source_path="docs/api/colombian-citizens.md",
            endpoint="/v2/colombian-citizens",
            method="GET",
            price=0.25,
        ),
        make_result(
            0.85,
            title="Colombian Citizens - Eligibility",
            content="Eligibility rules for the citizen lookup service.",
            source_path="docs/api/colombian-citizens-eligibility.md",
        ),
    ]
