"""
Hallucination Guard - Module Entry Point

Allows running the MCP server with ``python -m hallucination_guard``.
"""

from hallucination_guard.server import main

if __name__ == "__main__":
    main()
