"""
Services - Source Tracker

Deduplicates and ranks retrieved passages, and builds citation URLs.
"""

import re
from typing import Dict, List, Optional, Sequence

from hallucination_guard.config import get_settings
from hallucination_guard.schemas import RetrievalResult, Source


# Section names too generic to carry their own anchor
GENERIC_SECTIONS = {
    "intro", "response", "endpoint", "parameters",
    "examples", "notes", "authentication",
}

BOILERPLATE_TITLE_PREFIXES = ("undefined - ", "None - ")


class SourceTracker:
    """Turns raw retriever hits into the canonical source list."""

    def __init__(self, raw_results: Optional[Sequence[RetrievalResult]] = None, settings=None):
        self.settings = settings or get_settings()
        raw_results = list(raw_results or [])
        self.total_considered = len(raw_results)
        self.sources = self._process_sources(raw_results)

    def _process_sources(self, raw_results: List[RetrievalResult]) -> List[Source]:
        """Filter by score, dedupe by URL/title keeping the best hit, sort."""
        threshold = self.settings.rag.min_score_threshold
        unique: Dict[str, Source] = {}

        for result in raw_results:
            if result.score < threshold:
                continue

            chunk = result.chunk or Source()
            url = self._build_url(chunk)
            key = url or chunk.title or "unknown"

            existing = unique.get(key)
            if existing is not None and result.score <= existing.score:
                continue

            title = self._clean_title(chunk)
            anchor = self._build_anchor(title)

            unique[key] = chunk.model_copy(update={
                "id": result.id or chunk.id or "unknown",
                "title": title,
                "url": f"{url}#{anchor}" if url and anchor else url,
                "score": round(result.score, 2),
            })

        return sorted(unique.values(), key=lambda s: s.score, reverse=True)

    def _build_url(self, chunk: Source) -> Optional[str]:
        base_url = self.settings.rag.docs_base_url.rstrip("/")

        if chunk.slug:
            slug = chunk.slug if chunk.slug.startswith("/") else f"/{chunk.slug}"
            return f"{base_url}{slug}"

        if chunk.source_path and chunk.source_path != "unknown":
            # docs/folder/file.md -> folder/file
            clean_path = re.sub(r"^docs/", "", chunk.source_path)
            clean_path = re.sub(r"\.mdx?$", "", clean_path)
            return f"{base_url}/{clean_path}"

        return None

    def _clean_title(self, chunk: Source) -> str:
        title = chunk.title or "Untitled"
        for prefix in BOILERPLATE_TITLE_PREFIXES:
            if title.startswith(prefix):
                title = title[len(prefix):]

        if not title or title == "Intro":
            filename = (chunk.source_path or "").split("/")[-1]
            filename = re.sub(r"\.mdx?$", "", filename) or "Document"
            title = filename.replace("-", " ").title()

        return title

    def _build_anchor(self, title: str) -> str:
        """Anchor from the trailing section of "Document - Section" titles."""
        section = title.split(" - ")[-1] if " - " in title else title

        if not section or section.lower() in GENERIC_SECTIONS:
            return ""

        # "**II. Eligibility**" -> "ii-eligibility"
        anchor = section.lower().replace("**", "")
        anchor = re.sub(r"[^\w\s-]", "", anchor)
        anchor = re.sub(r"\s+", "-", anchor)
        anchor = re.sub(r"--+", "-", anchor)
        return anchor.strip("-")

    def get_sources(self) -> List[Source]:
        return self.sources

    def get_total_considered(self) -> int:
        """Number of raw hits before filtering and deduplication."""
        return self.total_considered

    def has_sufficient_sources(self) -> bool:
        return len(self.sources) >= 1
