"""
MCP Tool - validate_answer

Hallucination checks and sanitization for a generated answer.
"""

from typing import List, Optional

from fastmcp import FastMCP

from hallucination_guard.pipeline import ValidationPipeline
from hallucination_guard.schemas import RetrievalResult


def register(mcp: FastMCP, pipeline: ValidationPipeline) -> None:

    @mcp.tool()
    async def validate_answer(
        answer: str,
        query: str = "",
        raw_results: Optional[List[dict]] = None,
        session_id: str = "unknown",
    ) -> dict:
        """
        Validate an answer against documentation and sanitize it.

        When raw_results is omitted the documentation is retrieved again
        for the query. Fabricated endpoints, prices and countries are
        detected, and the answer is passed, warned, redacted or blocked
        depending on severity.

        Args:
            answer: Generated answer text
            query: The question the answer responds to
            raw_results: Hits returned by retrieve_context
            session_id: Caller session identifier for the audit trail

        Returns:
            Final content, action taken, detected hallucinations and metadata
        """
        if raw_results is None:
            result = await pipeline.full_validation(query, answer, session_id=session_id)
        else:
            hits = [RetrievalResult.model_validate(r) for r in raw_results]
            result = await pipeline.validate(
                answer, hits, query=query, session_id=session_id,
            )

        return result.to_dict()
