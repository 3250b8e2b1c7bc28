"""
Hallucination Guard MCP Server - Main Entry Point

FastMCP server with STDIO and SSE transport support.
"""

import argparse
import logging
import sys

import structlog
from fastmcp import FastMCP

from hallucination_guard.audit import HallucinationAudit
from hallucination_guard.config import get_settings
from hallucination_guard.pipeline import ValidationPipeline
from hallucination_guard.providers import get_embedding_provider, get_retriever
from hallucination_guard.tools import audit_report, retrieve_context, validate_answer

logger = logging.getLogger(__name__)


def configure_logging(log_settings) -> None:
    """Route stdlib logging through a JSON or plain-text renderer on stderr."""
    if log_settings.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stdout carries the stdio transport
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_settings.level)


def create_app(settings=None, audit: HallucinationAudit = None) -> FastMCP:
    """Create and configure the MCP application."""
    settings = settings or get_settings()
    audit = audit or HallucinationAudit(settings)

    embedding_provider = get_embedding_provider(settings)
    retriever = get_retriever(embedding_provider, settings)

    pipeline = ValidationPipeline(
        settings,
        embedding_provider=embedding_provider,
        retriever=retriever,
        audit=audit,
    )

    mcp = FastMCP(
        name="hallucination-guard",
        instructions=(
            "Retrieve documentation with retrieve_context, answer from it, then "
            "pass the answer through validate_answer before showing it to the user."
        ),
    )

    retrieve_context.register(mcp, pipeline)
    validate_answer.register(mcp, pipeline)
    audit_report.register(mcp, audit)

    return mcp


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Hallucination Guard MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default=None,
        help="Transport protocol (default: from env)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for SSE transport (default: from env)"
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log)

    transport = args.transport or settings.mcp.transport
    port = args.port or settings.mcp.port

    audit = HallucinationAudit(settings)
    mcp = create_app(settings, audit)
    audit.start()

    try:
        if transport == "stdio":
            mcp.run(transport="stdio")
        else:
            mcp.run(transport="sse", host=settings.mcp.host, port=port)
    finally:
        audit.close()
        logger.info("Audit log flushed on shutdown")


if __name__ == "__main__":
    main()
