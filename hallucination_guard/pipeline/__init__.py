"""
Pipeline Module - Hallucination Prevention

Retrieval plus layered validation of generated answers.
"""

from hallucination_guard.pipeline.validation_pipeline import (
    PipelineResult,
    RetrievalContext,
    ValidationPipeline,
)

__all__ = [
    "PipelineResult",
    "RetrievalContext",
    "ValidationPipeline",
]
