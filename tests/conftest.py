"""Pytest configuration, shared fakes and fixtures.

This file ensures that:
- `src/` is importable
- no real backend credentials leak into unit tests from the environment
- loguru output can be asserted on
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from loguru import logger  # noqa: E402

from vector_gateway.index import BackendKind, SearchBackend  # noqa: E402
from vector_gateway.models import SearchOptions, SearchResult  # noqa: E402

GATEWAY_ENV_VARS = (
    "SEARCH_CLIENT_TYPE",
    "QDRANT_URL",
    "QDRANT_API_KEY",
    "OPENSEARCH_NODE",
    "OPENSEARCH_USERNAME",
    "OPENSEARCH_PASSWORD",
    "OPENSEARCH_VERIFY_CERTS",
    "DEFAULT_COLLECTION_NAME",
    "SEARCH_TIMEOUT_SECONDS",
    "OPENAI_API_KEY",
    "LOG_LEVEL",
)


def make_payload(index: int = 1, **overrides: Any) -> dict[str, Any]:
    """Build a raw, well-formed document payload as a backend would store it."""
    payload: dict[str, Any] = {
        "_type": "DocumentChunk",
        "text": f"Chunk text {index}",
        "url": f"https://docs.example.com/page-{index}",
        "title": f"Page {index}",
        "timestamp": "2025-01-15T10:00:00Z",
    }
    payload.update(overrides)
    return payload


class RecordingBackend(SearchBackend):
    """In-memory backend that records calls."""

    def __init__(
        self,
        results: list[SearchResult] | None = None,
        *,
        kind: BackendKind = BackendKind.QDRANT,
        search_error: Exception | None = None,
        init_error: Exception | None = None,
    ) -> None:
        self.kind = kind
        self.results = results or []
        self.search_error = search_error
        self.init_error = init_error
        self.init_calls: list[str] = []
        self.search_calls: list[dict[str, Any]] = []
        self.closed = False

    async def init_collection(self, collection_name: str) -> None:
        self.init_calls.append(collection_name)
        if self.init_error is not None:
            raise self.init_error

    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        limit: int,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        self.search_calls.append(
            {
                "collection_name": collection_name,
                "query_vector": query_vector,
                "limit": limit,
                "options": options,
            }
        )
        if self.search_error is not None:
            raise self.search_error
        return list(self.results)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def clean_gateway_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset every variable the gateway reads."""
    for name in GATEWAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect loguru records as "LEVEL|message" strings."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(
            f"{message.record['level'].name}|{message.record['message']}"
        ),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def query_vector() -> list[float]:
    return [0.1] * 1536
