"""Qdrant search backend.

Cosine similarity is native to Qdrant: scores are already on a 0..1 "higher
is better" scale and the score threshold is applied server-side.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from vector_gateway.config import QdrantSettings
from vector_gateway.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    ConnectivityError,
    SearchGatewayError,
)
from vector_gateway.index import BackendKind, SearchBackend, validate_search_args
from vector_gateway.models import (
    EMBEDDING_DIMENSIONS,
    SearchOptions,
    SearchResult,
    parse_document_payload,
)

# Write-light, read-heavy tuning
DEFAULT_SEGMENT_NUMBER = 2
MEMMAP_THRESHOLD = 20000
REPLICATION_FACTOR = 2


def _is_auth_failure(exc: Exception) -> bool:
    return isinstance(exc, UnexpectedResponse) and exc.status_code in (401, 403)


def _is_connection_failure(exc: Exception) -> bool:
    if isinstance(exc, ResponseHandlingException):
        return isinstance(exc.source, (httpx.TransportError, OSError, TimeoutError))
    return isinstance(exc, (httpx.TransportError, OSError, TimeoutError))


def _is_already_exists(exc: Exception) -> bool:
    if not isinstance(exc, UnexpectedResponse):
        return False
    return exc.status_code == 409 or b"already exists" in (exc.content or b"")


class QdrantIndex(SearchBackend):
    """Qdrant vector index implementation."""

    kind = BackendKind.QDRANT

    def __init__(
        self,
        settings: QdrantSettings,
        timeout_seconds: float = 30.0,
        client: AsyncQdrantClient | None = None,
    ):
        """Initialize Qdrant client.

        Args:
            settings: Qdrant URL and API key
            timeout_seconds: Request timeout
            client: Pre-built client (tests)

        Raises:
            ConfigurationError: If URL or API key is missing
        """
        if not settings.url:
            raise ConfigurationError(
                "QDRANT_URL environment variable is required for QdrantIndex",
                context={"backend": self.kind.value},
            )
        if not settings.api_key:
            raise ConfigurationError(
                "QDRANT_API_KEY environment variable is required for QdrantIndex",
                context={"backend": self.kind.value},
            )

        self.url = settings.url
        self.client = client or AsyncQdrantClient(
            url=settings.url,
            api_key=settings.api_key,
            timeout=max(1, int(timeout_seconds)),
            # no server round trip at construction
            check_compatibility=False,
        )

    async def init_collection(self, collection_name: str) -> None:
        """Create a cosine collection of 1536-dim vectors if absent."""
        context = {"backend": self.name, "collection": collection_name}
        try:
            response = await self.client.get_collections()
            if any(c.name == collection_name for c in response.collections):
                logger.info(f"Collection {collection_name} already exists.")
                return

            await self.client.create_collection(
                collection_name=collection_name,
                vectors_config=models.VectorParams(
                    size=EMBEDDING_DIMENSIONS,
                    distance=models.Distance.COSINE,
                ),
                optimizers_config=models.OptimizersConfigDiff(
                    default_segment_number=DEFAULT_SEGMENT_NUMBER,
                    memmap_threshold=MEMMAP_THRESHOLD,
                ),
                replication_factor=REPLICATION_FACTOR,
            )
            logger.info(f"Collection {collection_name} created.")

        except Exception as exc:
            if _is_already_exists(exc):
                # Lost a concurrent create for the same name
                logger.info(f"Collection {collection_name} was created concurrently.")
                return
            raise self._translate(
                exc,
                auth_message="Failed to authenticate with Qdrant. Please check your API key.",
                connect_message="Failed to connect to Qdrant. Please check your QDRANT_URL.",
                fallback=f"Failed to initialize Qdrant collection {collection_name}",
                context=context,
            ) from exc

    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        limit: int,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Run one native similarity query with server-side score threshold."""
        options = options or SearchOptions()
        validate_search_args(query_vector, limit)

        try:
            response = await self.client.query_points(
                collection_name=collection_name,
                query=query_vector,
                limit=limit,
                with_payload=options.include_payload,
                with_vectors=options.include_vector,
                score_threshold=options.score_threshold,
            )
        except Exception as exc:
            raise self._translate(
                exc,
                auth_message="Failed to authenticate with Qdrant while searching.",
                connect_message="Connection to Qdrant failed while searching.",
                fallback=f"Search failed in Qdrant collection {collection_name}",
                context={"backend": self.name, "collection": collection_name},
            ) from exc

        results = [self._to_result(point, options) for point in response.points]
        results.sort(key=lambda r: r.score, reverse=True)
        return results[:limit]

    async def close(self) -> None:
        await self.client.close()

    @staticmethod
    def _to_result(point: models.ScoredPoint, options: SearchOptions) -> SearchResult:
        payload = None
        if options.include_payload:
            payload = parse_document_payload(point.payload)
            if payload is None:
                logger.warning(f"Invalid payload type for result ID {point.id}: {point.payload}")
        return SearchResult(id=point.id, score=point.score, payload=payload)

    @staticmethod
    def _translate(
        exc: Exception,
        *,
        auth_message: str,
        connect_message: str,
        fallback: str,
        context: dict[str, Any],
    ) -> SearchGatewayError:
        if isinstance(exc, SearchGatewayError):
            return exc
        if _is_auth_failure(exc):
            return AuthenticationError(auth_message, context=context)
        if _is_connection_failure(exc):
            return ConnectivityError(connect_message, context=context)
        return BackendError(f"{fallback}: {exc}", context=context)
