"""MCP front end for documentation search."""

from .handlers import SearchDocumentationHandler, ToolResponse
from .mcp_server import run_server

__all__ = [
    "SearchDocumentationHandler",
    "ToolResponse",
    "run_server",
]
