"""
Hallucination Guard - Configuration

Pydantic Settings for all configuration via environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional, Literal
from pathlib import Path


class RAGSettings(BaseSettings):
    """Retrieval metadata and validation configuration."""
    min_score_threshold: float = Field(0.25, alias="RAG_MIN_SCORE_THRESHOLD")
    top_k: int = Field(5, alias="RAG_TOP_K")
    strict_mode: bool = Field(True, alias="RAG_STRICT_MODE")
    enable_post_generation_validation: bool = Field(
        True, alias="RAG_ENABLE_POST_GENERATION_VALIDATION"
    )
    enable_semantic_verification: bool = Field(
        True, alias="RAG_ENABLE_SEMANTIC_VERIFICATION"
    )
    enable_response_sanitization: bool = Field(
        True, alias="RAG_ENABLE_RESPONSE_SANITIZATION"
    )
    fallback_on_no_sources: bool = Field(True, alias="RAG_FALLBACK_ON_NO_SOURCES")

    # Groundedness level cut-offs (adjusted weighted score)
    high_threshold: float = Field(0.45, alias="RAG_HIGH_THRESHOLD")
    medium_threshold: float = Field(0.30, alias="RAG_MEDIUM_THRESHOLD")
    low_threshold: float = Field(0.15, alias="RAG_LOW_THRESHOLD")
    low_source_penalty: float = Field(-0.10, alias="RAG_LOW_SOURCE_PENALTY")
    min_sources_for_high: int = Field(2, alias="RAG_MIN_SOURCES_FOR_HIGH")

    retrieval_timeout_ms: int = Field(10000, alias="RAG_RETRIEVAL_TIMEOUT_MS")
    docs_base_url: str = Field("https://docs.example.com", alias="DOCS_BASE_URL")

    model_config = {"env_prefix": "", "extra": "ignore"}


class SanitizerSettings(BaseSettings):
    """Response sanitization policy configuration."""
    block_threshold: float = Field(0.80, alias="SANITIZER_BLOCK_THRESHOLD")
    redact_threshold: float = Field(0.50, alias="SANITIZER_REDACT_THRESHOLD")
    warn_threshold: float = Field(0.30, alias="SANITIZER_WARN_THRESHOLD")
    enable_inline_warnings: bool = Field(True, alias="SANITIZER_INLINE_WARNINGS")
    enable_footer_warning: bool = Field(True, alias="SANITIZER_FOOTER_WARNING")
    enable_source_citation: bool = Field(True, alias="SANITIZER_SOURCE_CITATION")
    min_citation_score: float = Field(0.5, alias="SANITIZER_MIN_CITATION_SCORE")
    max_citations: int = Field(5, alias="SANITIZER_MAX_CITATIONS")
    max_fallback_sources: int = Field(3, alias="SANITIZER_MAX_FALLBACK_SOURCES")

    model_config = {"env_prefix": "", "extra": "ignore"}


class SemanticSettings(BaseSettings):
    """Embedding-based claim verification configuration."""
    verification_threshold: float = Field(0.70, alias="SEMANTIC_VERIFICATION_THRESHOLD")
    minimum_overall_confidence: float = Field(
        0.60, alias="SEMANTIC_MINIMUM_OVERALL_CONFIDENCE"
    )
    max_claims: int = Field(10, alias="SEMANTIC_MAX_CLAIMS")
    source_prefix_chars: int = Field(500, alias="SEMANTIC_SOURCE_PREFIX_CHARS")
    embedding_timeout_ms: int = Field(10000, alias="EMBEDDING_TIMEOUT_MS")

    model_config = {"env_prefix": "", "extra": "ignore"}


class CacheSettings(BaseSettings):
    """Embedding cache configuration."""
    enabled: bool = Field(True, alias="CACHE_ENABLED")
    max_size: int = Field(100, alias="EMBEDDING_CACHE_SIZE")
    ttl_seconds: int = Field(300, alias="EMBEDDING_CACHE_TTL_SECONDS")

    model_config = {"env_prefix": "", "extra": "ignore"}


class EmbeddingSettings(BaseSettings):
    """Embedding provider configuration."""
    provider: Literal["fastembed", "openai"] = Field(
        "fastembed", alias="EMBEDDING_PROVIDER"
    )
    model: str = Field("BAAI/bge-base-en-v1.5", alias="EMBEDDING_MODEL")
    base_url: str = Field("https://api.openai.com/v1", alias="EMBEDDING_BASE_URL")
    api_key: Optional[str] = Field(None, alias="EMBEDDING_API_KEY")
    cache_dir: Path = Field(
        Path("./models_cache"), alias="MODELS_CACHE_DIR"
    )

    model_config = {"env_prefix": "", "extra": "ignore"}


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration (retriever)."""
    host: str = Field("localhost", alias="QDRANT_HOST")
    port: int = Field(6333, alias="QDRANT_PORT")
    collection: str = Field("documentation_chunks", alias="QDRANT_COLLECTION")
    api_key: Optional[str] = Field(None, alias="QDRANT_API_KEY")
    vector_name: Optional[str] = Field("dense", alias="QDRANT_VECTOR_NAME")

    model_config = {"env_prefix": "", "extra": "ignore"}


class AuditSettings(BaseSettings):
    """Audit log, metrics, incidents and alerting configuration."""
    log_file: Path = Field(
        Path("./data/hallucination-audit.json"), alias="AUDIT_LOG_FILE"
    )
    max_memory_entries: int = Field(1000, alias="AUDIT_MAX_MEMORY_ENTRIES")
    flush_interval_seconds: float = Field(60.0, alias="AUDIT_FLUSH_INTERVAL_SECONDS")
    enable_persistence: bool = Field(True, alias="AUDIT_ENABLE_PERSISTENCE")
    max_incidents: int = Field(500, alias="AUDIT_MAX_INCIDENTS")
    recurring_min_occurrences: int = Field(3, alias="AUDIT_RECURRING_MIN_OCCURRENCES")

    alert_hallucination_rate: float = Field(0.20, alias="AUDIT_ALERT_HALLUCINATION_RATE")
    alert_block_rate: float = Field(0.10, alias="AUDIT_ALERT_BLOCK_RATE")
    alert_avg_severity: float = Field(0.60, alias="AUDIT_ALERT_AVG_SEVERITY")

    hash_queries: bool = Field(False, alias="AUDIT_HASH_QUERIES")
    hash_responses: bool = Field(True, alias="AUDIT_HASH_RESPONSES")
    redact_pii: bool = Field(True, alias="AUDIT_REDACT_PII")

    model_config = {"env_prefix": "", "extra": "ignore"}


class MCPSettings(BaseSettings):
    """MCP server configuration."""
    transport: Literal["sse", "stdio"] = Field("sse", alias="MCP_TRANSPORT")
    port: int = Field(8080, alias="MCP_PORT")
    host: str = Field("0.0.0.0", alias="MCP_HOST")

    model_config = {"env_prefix": "", "extra": "ignore"}


class LogSettings(BaseSettings):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", alias="LOG_LEVEL"
    )
    format: Literal["json", "text"] = Field("json", alias="LOG_FORMAT")

    model_config = {"env_prefix": "", "extra": "ignore"}


class Settings(BaseSettings):
    """Main settings aggregating all configuration."""
    rag: RAGSettings = Field(default_factory=RAGSettings)
    sanitizer: SanitizerSettings = Field(default_factory=SanitizerSettings)
    semantic: SemanticSettings = Field(default_factory=SemanticSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    mcp: MCPSettings = Field(default_factory=MCPSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = {"env_prefix": "", "extra": "ignore"}


def get_settings() -> Settings:
    """Load settings from environment variables."""
    from dotenv import load_dotenv
    load_dotenv()
    return Settings()
