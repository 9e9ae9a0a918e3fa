"""OpenSearch search backend.

OpenSearch exposes vector search through a ``knn_vector`` field. k-NN queries
have no native score threshold, so thresholding happens client-side after
``limit`` hits have been fetched.

Score semantics: with the ``cosinesimil`` space on the lucene engine the
returned ``_score`` is ``(1 + cosine) / 2``, already "higher is better" on a
0..1 scale, and is passed through unchanged. It is NOT numerically equal to
Qdrant's raw cosine score for the same query/document pair.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from opensearchpy import AsyncOpenSearch
from opensearchpy.exceptions import (
    AuthenticationException,
    AuthorizationException,
    TransportError,
)
from opensearchpy.exceptions import ConnectionError as OpenSearchConnectionError

from vector_gateway.config import OpenSearchSettings
from vector_gateway.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    ConnectivityError,
    SearchGatewayError,
)
from vector_gateway.index import BackendKind, SearchBackend, validate_search_args
from vector_gateway.models import (
    DOCUMENT_CHUNK_TYPE,
    EMBEDDING_DIMENSIONS,
    SearchOptions,
    SearchResult,
    parse_document_payload,
)

VECTOR_FIELD = "embedding"


def index_body() -> dict[str, Any]:
    """Index settings and mappings for a k-NN document index."""
    return {
        "settings": {"index.knn": True},
        "mappings": {
            "properties": {
                VECTOR_FIELD: {
                    "type": "knn_vector",
                    "dimension": EMBEDDING_DIMENSIONS,
                    "method": {
                        "name": "hnsw",
                        "space_type": "cosinesimil",
                        "engine": "lucene",
                    },
                },
                "title": {"type": "text"},
                "text": {"type": "text"},
                "url": {"type": "keyword"},  # not tokenized
                "timestamp": {"type": "date"},
                "_type": {"type": "keyword"},  # always DOCUMENT_CHUNK_TYPE
            }
        },
    }


def _transport_parts(exc: Exception) -> tuple[Any, Any]:
    """Return the (error, info) pair of an opensearch-py TransportError."""
    if not isinstance(exc, TransportError):
        return None, None
    args = exc.args
    return (args[1] if len(args) > 1 else None), (args[2] if len(args) > 2 else None)


def _error_reason(exc: Exception) -> str:
    """Pull the most specific reason out of an opensearch-py error."""
    error, info = _transport_parts(exc)
    if isinstance(info, dict):
        detail = info.get("error")
        if isinstance(detail, dict) and detail.get("reason"):
            return str(detail["reason"])
    if isinstance(error, str) and error:
        return error
    return str(exc) or exc.__class__.__name__


def _is_already_exists(exc: Exception) -> bool:
    error, info = _transport_parts(exc)
    detail = info.get("error") if isinstance(info, dict) else None
    error_type = detail.get("type") if isinstance(detail, dict) else error
    return error_type == "resource_already_exists_exception"


class OpenSearchIndex(SearchBackend):
    """OpenSearch k-NN index implementation."""

    kind = BackendKind.OPENSEARCH

    def __init__(
        self,
        settings: OpenSearchSettings,
        timeout_seconds: float = 30.0,
        client: AsyncOpenSearch | None = None,
    ):
        """Initialize OpenSearch client.

        Args:
            settings: Node URL, credentials and transport options
            timeout_seconds: Request timeout
            client: Pre-built client (tests)

        Raises:
            ConfigurationError: If node, username or password is missing
        """
        for value, variable in (
            (settings.node, "OPENSEARCH_NODE"),
            (settings.username, "OPENSEARCH_USERNAME"),
            (settings.password, "OPENSEARCH_PASSWORD"),
        ):
            if not value:
                raise ConfigurationError(
                    f"{variable} environment variable is required.",
                    context={"backend": self.kind.value},
                )

        self.node = settings.node
        self.client = client or AsyncOpenSearch(
            hosts=[settings.node],
            http_auth=(settings.username, settings.password),
            verify_certs=settings.verify_certs,
            timeout=timeout_seconds,
            max_retries=settings.max_retries,
            retry_on_timeout=True,
        )

    async def init_collection(self, collection_name: str) -> None:
        """Create a k-NN index with document mappings if absent."""
        try:
            if await self.client.indices.exists(index=collection_name):
                logger.info(f"OpenSearch index {collection_name} already exists.")
                return

            await self.client.indices.create(index=collection_name, body=index_body())
            logger.info(
                f"OpenSearch index {collection_name} created successfully with k-NN mapping."
            )

        except Exception as exc:
            if _is_already_exists(exc):
                logger.info(f"OpenSearch index {collection_name} was created concurrently.")
                return
            raise self._translate(exc, "OpenSearch Init Error", collection_name) from exc

    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        limit: int,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Fetch ``limit`` neighbours, then apply the score threshold locally."""
        options = options or SearchOptions()
        validate_search_args(query_vector, limit)

        body: dict[str, Any] = {
            "size": limit,
            "query": {"knn": {VECTOR_FIELD: {"vector": query_vector, "k": limit}}},
        }
        if not options.include_payload:
            body["_source"] = False
        elif not options.include_vector:
            body["_source"] = {"excludes": [VECTOR_FIELD]}

        try:
            response = await self.client.search(index=collection_name, body=body)
        except Exception as exc:
            raise self._translate(exc, "OpenSearch Search Error", collection_name) from exc

        hits = (response.get("hits") or {}).get("hits") if isinstance(response, dict) else None
        if not isinstance(hits, list):
            raise BackendError(
                f"OpenSearch Search Error: unexpected response shape from {collection_name}",
                context={"backend": self.name, "collection": collection_name},
            )

        results = [self._to_result(hit, options) for hit in hits]

        threshold = options.score_threshold
        if threshold is not None:
            results = [r for r in results if r.score >= threshold]

        results.sort(key=lambda r: r.score, reverse=True)
        return results

    async def close(self) -> None:
        await self.client.close()

    @staticmethod
    def _to_result(hit: Any, options: SearchOptions) -> SearchResult:
        if not isinstance(hit, dict):
            logger.warning(f"Malformed OpenSearch hit of type {type(hit).__name__}")
            return SearchResult(id="", score=0.0, payload=None)

        raw_score = hit.get("_score")
        score = 0.0
        if raw_score is not None:
            try:
                score = float(raw_score)
            except (TypeError, ValueError):
                logger.warning(
                    f"Non-numeric score {raw_score!r} for OpenSearch hit {hit.get('_id')}"
                )

        payload = None
        if options.include_payload:
            source = hit.get("_source")
            payload = parse_document_payload(source)
            if payload is None:
                kind = source.get("_type") if isinstance(source, dict) else None
                logger.warning(
                    f"Invalid payload for OpenSearch hit {hit.get('_id')} "
                    f"(_type={kind!r}, expected {DOCUMENT_CHUNK_TYPE!r})"
                )
        return SearchResult(id=hit.get("_id", ""), score=score, payload=payload)

    def _translate(self, exc: Exception, prefix: str, collection_name: str) -> SearchGatewayError:
        if isinstance(exc, SearchGatewayError):
            return exc
        context = {"backend": self.name, "collection": collection_name}
        if isinstance(exc, (AuthenticationException, AuthorizationException)):
            return AuthenticationError(
                "Failed to authenticate with OpenSearch. "
                "Please check OPENSEARCH_USERNAME and OPENSEARCH_PASSWORD.",
                context=context,
            )
        if isinstance(exc, (OpenSearchConnectionError, OSError, TimeoutError)):
            return ConnectivityError(
                f"Failed to connect to OpenSearch at {self.node}: {_error_reason(exc)}",
                context=context,
            )
        return BackendError(f"{prefix}: {_error_reason(exc)}", context=context)
