"""Backend selection and the single search entry point.

The gateway resolves ``search_client_type`` to one `BackendKind` at
construction, owns the backend client for the process lifetime and starts a
best-effort background initialization of the default collection.
"""

from __future__ import annotations

import asyncio
import contextlib
from types import TracebackType

from loguru import logger

from vector_gateway.config import GatewayConfig
from vector_gateway.errors import BackendError, SearchGatewayError
from vector_gateway.index import DEFAULT_BACKEND, BackendKind, SearchBackend
from vector_gateway.models import SearchOptions, SearchResult


def resolve_backend_kind(value: str | None) -> BackendKind:
    """Map a raw SEARCH_CLIENT_TYPE value to a backend, defaulting to Qdrant."""
    if value is None:
        logger.info("SEARCH_CLIENT_TYPE not set. Defaulting to Qdrant.")
        return DEFAULT_BACKEND

    try:
        return BackendKind(value)
    except ValueError:
        logger.warning(f'Unsupported SEARCH_CLIENT_TYPE: "{value}". Defaulting to Qdrant.')
        return DEFAULT_BACKEND


def create_search_backend(kind: BackendKind, config: GatewayConfig) -> SearchBackend:
    """Factory function to build the backend for ``kind``.

    Raises:
        ConfigurationError: If the backend's endpoint or credentials are missing
    """
    if kind is BackendKind.OPENSEARCH:
        from vector_gateway.opensearch_index import OpenSearchIndex

        logger.info("Initializing OpenSearchIndex...")
        return OpenSearchIndex(config.opensearch, timeout_seconds=config.timeout_seconds)

    from vector_gateway.qdrant_index import QdrantIndex

    logger.info("Initializing QdrantIndex...")
    return QdrantIndex(config.qdrant, timeout_seconds=config.timeout_seconds)


class SearchGateway:
    """Single entry point for collection initialization and search.

    The gateway keeps no per-query state, so concurrent searches need no
    locking. Only the backend client is shared.
    """

    def __init__(self, config: GatewayConfig, backend: SearchBackend | None = None):
        """Select and build the backend, then start the default-collection bootstrap.

        The bootstrap is scheduled only if an event loop is running; otherwise
        call `start_bootstrap()` from async code.

        Args:
            config: Gateway configuration
            backend: Pre-built backend (tests)

        Raises:
            ConfigurationError: Missing endpoint/credentials for the selected backend
            BackendError: Any other failure while building the client
        """
        self.config = config
        self.default_collection_name = config.default_collection_name
        self._bootstrap_task: asyncio.Task[None] | None = None

        if backend is not None:
            self.backend = backend
        else:
            kind = resolve_backend_kind(config.search_client_type)
            try:
                self.backend = create_search_backend(kind, config)
            except SearchGatewayError as exc:
                logger.error(f"Failed to initialize search client: {exc}")
                raise
            except Exception as exc:
                logger.error(f"Failed to initialize search client: {exc}")
                raise BackendError(
                    f"Failed to initialize search client: {exc}", context={"backend": kind.value}
                ) from exc

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; default collection bootstrap deferred.")
        else:
            self.start_bootstrap()

    @property
    def backend_name(self) -> str:
        return self.backend.name

    @property
    def bootstrap_task(self) -> asyncio.Task[None] | None:
        return self._bootstrap_task

    def start_bootstrap(self) -> asyncio.Task[None]:
        """Schedule background initialization of the default collection.

        Idempotent: returns the already scheduled task on repeated calls.
        """
        if self._bootstrap_task is None:
            self._bootstrap_task = asyncio.create_task(
                self._bootstrap(), name=f"bootstrap-{self.default_collection_name}"
            )
        return self._bootstrap_task

    async def _bootstrap(self) -> None:
        name = self.default_collection_name
        try:
            await self.backend.init_collection(name)
        except Exception as exc:  # noqa: BLE001
            logger.opt(exception=exc).critical(
                f"CRITICAL: Auto-initialization of default collection {name!r} "
                f"failed for {self.backend_name}: {exc}"
            )
            return
        logger.info(f"Default collection {name!r} initialized for {self.backend_name}.")

    async def init_collection(self, collection_name: str) -> None:
        """Create ``collection_name`` if absent; awaitable synchronization point.

        Raises:
            SearchGatewayError: Backend failure, with backend/collection context
        """
        try:
            await self.backend.init_collection(collection_name)
        except SearchGatewayError as exc:
            logger.error(
                f"Failed to initialize collection {collection_name!r} "
                f"via {self.backend_name}: {exc}"
            )
            raise
        except Exception as exc:
            logger.error(
                f"Failed to initialize collection {collection_name!r} "
                f"via {self.backend_name}: {exc}"
            )
            raise BackendError(
                f"Failed to initialize collection {collection_name!r}: {exc}",
                context={"backend": self.backend_name, "collection": collection_name},
            ) from exc
        logger.info(
            f"Collection {collection_name!r} initialized successfully for {self.backend_name}."
        )

    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        limit: int,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Search ``collection_name`` on the selected backend.

        Raises:
            SearchGatewayError: Backend failure, with backend/collection context
        """
        try:
            return await self.backend.search(collection_name, query_vector, limit, options)
        except SearchGatewayError as exc:
            logger.error(
                f"Search failed in collection {collection_name!r} on {self.backend_name}: {exc}"
            )
            raise
        except Exception as exc:
            logger.error(
                f"Search failed in collection {collection_name!r} on {self.backend_name}: {exc}"
            )
            raise BackendError(
                f"Search failed in collection {collection_name!r}: {exc}",
                context={"backend": self.backend_name, "collection": collection_name},
            ) from exc

    async def close(self) -> None:
        """Cancel a pending bootstrap and release the backend client."""
        task = self._bootstrap_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.backend.close()

    async def __aenter__(self) -> SearchGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
