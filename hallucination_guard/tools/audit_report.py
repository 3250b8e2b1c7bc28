"""
MCP Tool - get_audit_report

Hallucination metrics, incidents and alerts.
"""

from fastmcp import FastMCP

from hallucination_guard.audit import HallucinationAudit


def register(mcp: FastMCP, audit: HallucinationAudit) -> None:

    @mcp.tool()
    async def get_audit_report(include_entries: bool = False) -> dict:
        """
        Report on hallucinations seen by this server.

        Args:
            include_entries: Also return every audit log entry

        Returns:
            Metrics, incident summary, active alerts and recent incidents
        """
        if include_entries:
            return audit.export()
        return audit.get_report()
