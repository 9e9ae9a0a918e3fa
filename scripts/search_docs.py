#!/usr/bin/env python
"""Search indexed documentation from the command line.

Uses the same configuration, gateway and handler as the MCP server, so the
output matches what the search_documentation tool returns.

Usage:
    python scripts/search_docs.py "How do I configure retries?"
    python scripts/search_docs.py "pagination" --limit 3 --threshold 0.5
    python scripts/search_docs.py --init-only
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import click
from loguru import logger

from docsearch_mcp.handlers import (
    COLLECTION_NAME,
    DEFAULT_LIMIT,
    DEFAULT_SCORE_THRESHOLD,
    SearchDocumentationHandler,
)
from vector_gateway.config import load_config
from vector_gateway.embedding import create_embedding_client
from vector_gateway.errors import SearchGatewayError
from vector_gateway.gateway import SearchGateway

# Configure logging
logger.remove()
logger.add(sys.stderr, level="INFO", format="<level>{message}</level>")


async def run_search(query: str | None, limit: int, threshold: float, init_only: bool) -> int:
    config = load_config("default")

    async with SearchGateway(config) as gateway:
        # Wait for the collection instead of racing the background bootstrap
        await gateway.init_collection(COLLECTION_NAME)
        if init_only:
            print(f"✅ Collection '{COLLECTION_NAME}' is ready on {gateway.backend_name}.")
            return 0

        handler = SearchDocumentationHandler(create_embedding_client(config.embedding), gateway)
        response = await handler.handle(
            {"query": query, "limit": limit, "score_threshold": threshold}
        )

    print(response.text)
    return 1 if response.is_error else 0


@click.command()
@click.argument("query", required=False)
@click.option("--limit", default=DEFAULT_LIMIT, show_default=True, help="Number of results")
@click.option(
    "--threshold", default=DEFAULT_SCORE_THRESHOLD, show_default=True, help="Minimum score"
)
@click.option("--init-only", is_flag=True, help="Only create the collection if missing")
def main(query: str | None, limit: int, threshold: float, init_only: bool) -> None:
    """Search the documentation collection."""
    if not query and not init_only:
        raise click.UsageError("QUERY is required unless --init-only is given")

    try:
        code = asyncio.run(run_search(query, limit, threshold, init_only))
    except SearchGatewayError as exc:
        print(f"❌ Error [{exc.code.value}]: {exc}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
