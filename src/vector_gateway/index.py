"""Search backend contract.

Both backends implement the same two operations:

- ``init_collection(name)``: idempotent creation of a 1536-dim cosine index
- ``search(name, vector, limit, options)``: ranked `SearchResult` list,
  highest similarity first

Backends keep their own score semantics behind the shared "higher is better,
roughly 0..1" contract. Raw scores are NOT comparable across backends.
"""

from abc import ABC, abstractmethod
from enum import Enum

from vector_gateway.errors import InvalidInputError
from vector_gateway.models import EMBEDDING_DIMENSIONS, SearchOptions, SearchResult


class BackendKind(str, Enum):
    """Closed set of supported search backends."""

    QDRANT = "qdrant"
    OPENSEARCH = "opensearch"


DEFAULT_BACKEND = BackendKind.QDRANT


class SearchBackend(ABC):
    """Abstract base class for vector search backends."""

    kind: BackendKind

    @abstractmethod
    async def init_collection(self, collection_name: str) -> None:
        """Create the collection if it does not exist.

        Args:
            collection_name: Collection/index name

        Raises:
            AuthenticationError: Credentials rejected
            ConnectivityError: Backend unreachable or timed out
            BackendError: Any other backend failure
        """
        ...

    @abstractmethod
    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        limit: int,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Return up to ``limit`` nearest neighbours by cosine similarity.

        Malformed hits are returned with ``payload=None``; only transport,
        auth or index-level failures raise.

        Args:
            collection_name: Collection/index name
            query_vector: Query embedding (1536 floats)
            limit: Number of neighbours to request
            options: Payload/vector inclusion and score threshold

        Returns:
            Results ordered by descending score
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release client connections."""
        ...

    @property
    def name(self) -> str:
        return self.kind.value


def validate_search_args(query_vector: list[float], limit: int) -> None:
    """Reject requests that could never be served by either backend.

    Raises:
        InvalidInputError: If the vector has the wrong size or limit is not positive
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidInputError(f"limit must be a positive integer, got {limit!r}")
    if len(query_vector) != EMBEDDING_DIMENSIONS:
        raise InvalidInputError(
            f"Expected {EMBEDDING_DIMENSIONS}-dimensional query vector, got {len(query_vector)}"
        )
