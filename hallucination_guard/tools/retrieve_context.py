"""
MCP Tool - retrieve_context

Documentation retrieval with groundedness metadata.
"""

from typing import Optional

from fastmcp import FastMCP

from hallucination_guard.pipeline import ValidationPipeline


def register(mcp: FastMCP, pipeline: ValidationPipeline) -> None:

    @mcp.tool()
    async def retrieve_context(query: str, top_k: Optional[int] = None) -> dict:
        """
        Retrieve documentation for a question before answering it.

        Returns the formatted context to ground the answer on, plus
        metadata describing how well the sources cover the question.

        Args:
            query: Natural language question
            top_k: Maximum number of documentation chunks (default from env)

        Returns:
            Context text, retrieval metadata and the raw hits to pass
            back to validate_answer
        """
        retrieval = await pipeline.retrieve(query, top_k)

        return {
            "context": retrieval.context,
            "metadata": retrieval.metadata.to_wire(),
            "rawResults": [r.to_wire() for r in retrieval.raw_results],
        }
