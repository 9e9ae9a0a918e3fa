"""Query handler for the documentation search tool.

Answers one query: embed, search, drop unusable hits, format. Failures after
argument validation never raise past `SearchDocumentationHandler.handle`;
they come back as a `ToolResponse` with ``is_error=True``.
"""

from __future__ import annotations

from typing import Any, Literal, Protocol

from loguru import logger
from pydantic import BaseModel, Field

from vector_gateway.errors import InvalidInputError, SearchGatewayError
from vector_gateway.models import DocumentPayload, SearchOptions, SearchResult, is_document_payload

# Fixed for the search tool, independent of DEFAULT_COLLECTION_NAME
COLLECTION_NAME = "documentation"

DEFAULT_LIMIT = 5
DEFAULT_SCORE_THRESHOLD = 0.7
NO_RESULTS_MESSAGE = "No results found matching the query."
RESULT_SEPARATOR = "\n---\n"


class QueryEmbedder(Protocol):
    async def embed_single(self, text: str) -> list[float]: ...


class SearchService(Protocol):
    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        limit: int,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]: ...


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResponse(BaseModel):
    """Response envelope returned to the tool front end.

    Attributes:
        content: Text blocks shown to the user
        is_error: True for failed searches; unset on success
    """

    content: list[TextContent] = Field(default_factory=list)
    is_error: bool | None = None

    @property
    def text(self) -> str:
        return "\n".join(block.text for block in self.content)

    @classmethod
    def from_text(cls, text: str, *, is_error: bool | None = None) -> ToolResponse:
        return cls(content=[TextContent(text=text)], is_error=is_error)


def parse_search_args(args: dict[str, Any]) -> tuple[str, int, float]:
    """Validate tool arguments.

    Returns:
        (query, limit, score_threshold)

    Raises:
        InvalidInputError: Missing query or malformed limit/threshold
    """
    query = args.get("query")
    if not query or not isinstance(query, str) or not query.strip():
        raise InvalidInputError("Query is required")

    limit = args.get("limit")
    if limit is None:
        limit = DEFAULT_LIMIT
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidInputError(f"limit must be a positive integer, got {limit!r}")

    threshold = args.get("score_threshold")
    if threshold is None:
        threshold = DEFAULT_SCORE_THRESHOLD
    if isinstance(threshold, bool) or not isinstance(threshold, int | float):
        raise InvalidInputError(f"score_threshold must be a number, got {threshold!r}")

    return query, limit, float(threshold)


def format_result(payload: DocumentPayload, score: float) -> str:
    return f"[{payload.title}]({payload.url})\nScore: {score:.3f}\nContent: {payload.text}\n"


def format_results(results: list[SearchResult], score_threshold: float) -> str:
    """Render usable hits in order; returns "" when none are left."""
    entries = [
        format_result(r.payload, r.score)
        for r in results
        if r.payload is not None and is_document_payload(r.payload) and r.score >= score_threshold
    ]
    return RESULT_SEPARATOR.join(entries)


class SearchDocumentationHandler:
    """Handles ``search_documentation`` tool calls."""

    def __init__(
        self,
        embedder: QueryEmbedder,
        gateway: SearchService,
        collection_name: str = COLLECTION_NAME,
    ):
        self.embedder = embedder
        self.gateway = gateway
        self.collection_name = collection_name

    async def handle(self, args: dict[str, Any]) -> ToolResponse:
        """Answer one query.

        Raises:
            InvalidInputError: Only for malformed arguments
        """
        query, limit, score_threshold = parse_search_args(args)

        try:
            query_vector = await self.embedder.embed_single(query)
            results = await self.gateway.search(
                self.collection_name,
                query_vector,
                limit,
                SearchOptions(
                    include_payload=True,
                    include_vector=False,  # saves bandwidth
                    score_threshold=score_threshold,
                ),
            )
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or exc.__class__.__name__
            if isinstance(exc, SearchGatewayError):
                logger.error(f"SearchDocumentationHandler error: {exc.to_dict()}")
            else:
                logger.error(f"SearchDocumentationHandler error: {message}")
            return ToolResponse.from_text(f"Search failed: {message}", is_error=True)

        formatted = format_results(results, score_threshold)
        logger.debug(f"Search returned {len(results)} hits for limit={limit}")
        return ToolResponse.from_text(formatted or NO_RESULTS_MESSAGE)
