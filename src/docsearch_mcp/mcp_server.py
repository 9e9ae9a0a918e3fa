"""MCP server entry point exposing documentation search as tools."""

from __future__ import annotations

import asyncio
import inspect
import sys
from collections.abc import Callable, Coroutine
from importlib import metadata
from typing import Any, cast

from loguru import logger

from vector_gateway.config import GatewayConfig, load_config
from vector_gateway.embedding import create_embedding_client
from vector_gateway.errors import InvalidInputError, SearchGatewayError
from vector_gateway.gateway import SearchGateway

from .handlers import (
    COLLECTION_NAME,
    DEFAULT_LIMIT,
    DEFAULT_SCORE_THRESHOLD,
    SearchDocumentationHandler,
)

FastMCP: type[Any] | None = None

__all__ = [
    "run_server",
    "run",
    "__version__",
    "FastMCP",
    "SearchGateway",
]


def _resolve_version() -> str:
    """Return the installed distribution version or fall back to the project default."""

    try:
        return metadata.version("docsearch-mcp")
    except metadata.PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()


def configure_logging(level: str = "INFO") -> None:
    """Send loguru output to stderr; stdout carries the stdio transport."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _import_fastmcp() -> type[Any]:
    """Import FastMCP lazily so tests can stub the implementation."""

    global FastMCP
    if FastMCP is not None:
        return FastMCP

    try:
        import fastmcp
        from fastmcp import FastMCP as FastMCPClass

        # Disable banner for stdio transport compatibility
        fastmcp.settings.show_cli_banner = False
    except ModuleNotFoundError as exc:  # pragma: no cover - exercised in tests
        raise ImportError(
            "FastMCP is required to run the docsearch MCP server. Install `fastmcp` to proceed."
        ) from exc

    FastMCP = cast(type[Any], FastMCPClass)
    return FastMCP


def _tool_error(message: str) -> Exception:
    """Build the exception FastMCP reports to clients as an ``isError`` result."""
    from fastmcp.exceptions import ToolError

    return ToolError(message)


async def run_server(config: GatewayConfig | None = None) -> None:
    """Run the MCP server event loop."""

    config = config or load_config()
    configure_logging(config.log_level)
    fastmcp_class = _import_fastmcp()

    if config.default_collection_name != COLLECTION_NAME:
        # The search tool always reads COLLECTION_NAME; the startup bootstrap
        # initializes the configured default instead.
        logger.warning(
            f"DEFAULT_COLLECTION_NAME={config.default_collection_name!r} differs from the "
            f"search tool collection {COLLECTION_NAME!r}; search will not use the "
            f"bootstrapped collection."
        )

    embedding_client = create_embedding_client(config.embedding)

    async with SearchGateway(config) as gateway:
        handler = SearchDocumentationHandler(embedding_client, gateway)

        server = _instantiate_fastmcp(
            fastmcp_class,
            name="docsearch-mcp",
            version=__version__,
            instructions="Semantic search over indexed documentation chunks.",
        )

        @server.tool()  # type: ignore[misc]
        async def search_documentation(
            query: str,
            limit: int = DEFAULT_LIMIT,
            score_threshold: float = DEFAULT_SCORE_THRESHOLD,
        ) -> str:
            """Search the indexed documentation semantically.

            Args:
                query: Natural language search query
                limit: Maximum number of results to return (default 5)
                score_threshold: Minimum similarity score, 0-1 (default 0.7)

            Returns:
                Matching chunks as "[title](url)", score and content,
                separated by "---".
            """
            logger.info(f"search_documentation called: query='{query}', limit={limit}")
            try:
                response = await handler.handle(
                    {"query": query, "limit": limit, "score_threshold": score_threshold}
                )
            except InvalidInputError as exc:
                raise _tool_error(str(exc)) from exc

            if response.is_error:
                raise _tool_error(response.text)

            logger.success("search_documentation completed")
            return response.text

        @server.tool()  # type: ignore[misc]
        async def init_collection(collection_name: str) -> str:
            """Create a documentation collection if it does not exist yet.

            Args:
                collection_name: Collection (Qdrant) or index (OpenSearch) name
            """
            try:
                await gateway.init_collection(collection_name)
            except SearchGatewayError as exc:
                raise _tool_error(
                    f"Failed to initialize collection {collection_name!r}: {exc}"
                ) from exc
            return f"Collection {collection_name!r} is ready on {gateway.backend_name}."

        await server.run_async()


def run(main: Callable[[], Coroutine[Any, Any, None]] | None = None) -> None:
    """Synchronous helper for CLI entry points."""
    entry = main or run_server
    try:
        asyncio.run(entry())
    except KeyboardInterrupt:
        logger.warning("MCP server interrupted by user.")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled MCP server failure: {}", exc)
        raise


def _instantiate_fastmcp(class_: type[Any], **metadata: Any) -> Any:
    signature = inspect.signature(class_.__init__)
    parameters = signature.parameters

    filtered: dict[str, Any] = {key: value for key, value in metadata.items() if key in parameters}

    if not filtered and any(
        param.kind == inspect.Parameter.VAR_KEYWORD for param in parameters.values()
    ):
        filtered = metadata

    return class_(**filtered)
