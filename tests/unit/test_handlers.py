"""Unit tests for the search_documentation query handler."""

from __future__ import annotations

from typing import Any

import pytest
from conftest import make_payload

from docsearch_mcp.handlers import (
    COLLECTION_NAME,
    NO_RESULTS_MESSAGE,
    RESULT_SEPARATOR,
    SearchDocumentationHandler,
    ToolResponse,
    format_results,
    parse_search_args,
)
from vector_gateway.errors import ConfigurationError, ConnectivityError, InvalidInputError
from vector_gateway.models import SearchOptions, SearchResult


class FakeEmbedder:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.queries: list[str] = []

    async def embed_single(self, text: str) -> list[float]:
        self.queries.append(text)
        if self.error is not None:
            raise self.error
        return [0.1, 0.2] + [0.0] * 1534


class FakeGateway:
    def __init__(
        self, results: list[SearchResult] | None = None, error: Exception | None = None
    ) -> None:
        self.results = results or []
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def search(
        self,
        collection_name: str,
        query_vector: list[float],
        limit: int,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        self.calls.append(
            {"collection_name": collection_name, "limit": limit, "options": options}
        )
        if self.error is not None:
            raise self.error
        return self.results


def result(index: int, score: float, **payload_overrides: Any) -> SearchResult:
    return SearchResult(id=index, score=score, payload=make_payload(index, **payload_overrides))


class TestParseSearchArgs:
    def test_defaults(self):
        assert parse_search_args({"query": "retries"}) == ("retries", 5, 0.7)

    def test_explicit_values(self):
        assert parse_search_args({"query": "q", "limit": 2, "score_threshold": 0}) == (
            "q",
            2,
            0.0,
        )

    @pytest.mark.parametrize("args", [{}, {"query": ""}, {"query": "   "}, {"query": 42}])
    def test_query_required(self, args):
        with pytest.raises(InvalidInputError, match="Query is required"):
            parse_search_args(args)

    @pytest.mark.parametrize("limit", [0, -3, "5", 2.5, False])
    def test_bad_limit(self, limit):
        with pytest.raises(InvalidInputError, match="limit"):
            parse_search_args({"query": "q", "limit": limit})

    def test_bad_threshold(self):
        with pytest.raises(InvalidInputError, match="score_threshold"):
            parse_search_args({"query": "q", "score_threshold": "high"})


class TestFormatting:
    def test_entry_format(self):
        text = format_results([result(1, 0.95)], 0.7)

        assert text == (
            "[Page 1](https://docs.example.com/page-1)\n"
            "Score: 0.950\n"
            "Content: Chunk text 1\n"
        )

    def test_unusable_hits_are_skipped(self):
        results = [
            SearchResult(id=1, score=0.9, payload=None),
            result(2, 0.8),
            result(3, 0.6),
        ]

        text = format_results(results, 0.7)

        assert "Page 2" in text
        assert "Page 1" not in text
        assert "Page 3" not in text


class TestSearchDocumentationHandler:
    @pytest.mark.asyncio
    async def test_end_to_end_threshold(self):
        """Five hits, threshold 0.7: three entries separated by the delimiter."""
        scores = [0.95, 0.88, 0.71, 0.65, 0.40]
        gateway = FakeGateway([result(i, s) for i, s in enumerate(scores, start=1)])
        handler = SearchDocumentationHandler(FakeEmbedder(), gateway)

        response = await handler.handle({"query": "how to retry", "limit": 5})

        assert response.is_error is None
        entries = response.text.split(RESULT_SEPARATOR)
        assert len(entries) == 3
        assert [e.splitlines()[1] for e in entries] == [
            "Score: 0.950",
            "Score: 0.880",
            "Score: 0.710",
        ]
        assert entries[0].startswith("[Page 1](https://docs.example.com/page-1)")
        assert "Content: Chunk text 3" in entries[2]

    @pytest.mark.asyncio
    async def test_search_request(self):
        gateway = FakeGateway()
        embedder = FakeEmbedder()
        handler = SearchDocumentationHandler(embedder, gateway)

        await handler.handle({"query": "pagination", "limit": 3, "score_threshold": 0.5})

        assert embedder.queries == ["pagination"]
        call = gateway.calls[0]
        assert call["collection_name"] == COLLECTION_NAME == "documentation"
        assert call["limit"] == 3
        assert call["options"] == SearchOptions(
            include_payload=True, include_vector=False, score_threshold=0.5
        )

    @pytest.mark.asyncio
    async def test_no_results(self):
        handler = SearchDocumentationHandler(FakeEmbedder(), FakeGateway([]))

        response = await handler.handle({"query": "nothing matches"})

        assert response == ToolResponse.from_text(NO_RESULTS_MESSAGE)
        assert response.text == "No results found matching the query."
        assert response.is_error is None

    @pytest.mark.asyncio
    async def test_only_invalid_hits_renders_no_results(self):
        gateway = FakeGateway([SearchResult(id=1, score=0.99, payload=None)])
        handler = SearchDocumentationHandler(FakeEmbedder(), gateway)

        response = await handler.handle({"query": "q"})

        assert response.text == NO_RESULTS_MESSAGE

    @pytest.mark.asyncio
    async def test_embedding_failure_is_flagged(self):
        embedder = FakeEmbedder(error=ConfigurationError("OpenAI API key not configured"))
        gateway = FakeGateway()
        handler = SearchDocumentationHandler(embedder, gateway)

        response = await handler.handle({"query": "q"})

        assert response.is_error is True
        assert response.text == "Search failed: OpenAI API key not configured"
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_backend_failure_is_flagged(self, log_messages):
        error = ConnectivityError(
            "Connection to Qdrant failed while searching.",
            context={"backend": "qdrant", "collection": "documentation"},
        )
        gateway = FakeGateway(error=error)
        handler = SearchDocumentationHandler(FakeEmbedder(), gateway)

        response = await handler.handle({"query": "q"})

        assert response.is_error is True
        assert "Search failed" in response.text
        assert "Connection to Qdrant failed" in response.text
        assert error.to_dict() == {
            "code": "connectivity_error",
            "message": "Connection to Qdrant failed while searching.",
            "context": {"backend": "qdrant", "collection": "documentation"},
        }
        assert any(
            m.startswith("ERROR|") and "'code': 'connectivity_error'" in m for m in log_messages
        )

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_flagged(self):
        handler = SearchDocumentationHandler(FakeEmbedder(error=RuntimeError()), FakeGateway())

        response = await handler.handle({"query": "q"})

        assert response.is_error is True
        assert response.text == "Search failed: RuntimeError"

    @pytest.mark.asyncio
    async def test_invalid_input_raises(self):
        handler = SearchDocumentationHandler(FakeEmbedder(), FakeGateway())

        with pytest.raises(InvalidInputError):
            await handler.handle({"limit": 5})
