"""
Schemas - Source Models

Retrieved documentation passages and the retrieval metadata built from them.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, Field, field_validator

from hallucination_guard.schemas.base import WireModel
from hallucination_guard.schemas.validation import (
    GroundednessLevel,
    ValidationResult,
)


class Source(WireModel):
    """One retrieved documentation passage."""
    id: str = "unknown"
    title: str = ""
    content: str = ""
    source_path: str = Field(
        "unknown",
        validation_alias=AliasChoices("source_path", "sourcePath", "source"),
        serialization_alias="sourcePath",
    )
    score: float = Field(0.0, ge=0.0, le=1.0)
    endpoint: Optional[str] = None
    method: Optional[str] = None
    price: Optional[float] = None
    parameters: List[Union[str, Dict[str, Any]]] = []
    country: Optional[str] = None
    url: Optional[str] = None
    slug: Optional[str] = None

    @field_validator("source_path", mode="before")
    @classmethod
    def _default_path(cls, value):
        return value or "unknown"

    @field_validator("parameters", mode="before")
    @classmethod
    def _default_parameters(cls, value):
        return value or []

    def parameter_names(self) -> List[str]:
        """Parameter names, whether listed as strings or as {"name": ...} objects."""
        names = []
        for param in self.parameters:
            name = param if isinstance(param, str) else param.get("name")
            if name:
                names.append(str(name))
        return names


class RetrievalResult(WireModel):
    """Single scored hit as returned by the external retriever."""
    id: str = "unknown"
    score: float = Field(ge=0.0, le=1.0)
    chunk: Optional[Source] = None


class RAGMetadata(WireModel):
    """Retrieval metadata attached to every answer."""
    sources: List[Source] = []
    groundedness: GroundednessLevel = GroundednessLevel.UNGROUNDED
    avg_score: float = Field(0.0, ge=0.0, le=100.0)
    confidence: int = Field(0, ge=0, le=100)
    validation_result: ValidationResult = Field(default_factory=ValidationResult)
    retrieved_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    total_sources_considered: int = 0
