"""Pydantic models for documents and search results.

Every hit coming back from a backend is checked against `DocumentPayload`
before it is trusted. Validation is structural: the `_type` discriminator
must equal ``"DocumentChunk"`` and the four chunk fields must be strings.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

DOCUMENT_CHUNK_TYPE = "DocumentChunk"
EMBEDDING_DIMENSIONS = 1536


class DocumentChunk(BaseModel):
    """One retrievable unit of indexed content.

    Attributes:
        text: Chunk text
        url: Source URL of the document
        title: Document title
        timestamp: ISO-8601 timestamp recorded by the indexer
    """

    model_config = ConfigDict(frozen=True)

    text: StrictStr
    url: StrictStr
    title: StrictStr
    timestamp: StrictStr


class DocumentPayload(DocumentChunk):
    """A `DocumentChunk` tagged with its discriminator.

    Unknown keys are kept as backend-specific metadata (see ``model_extra``).
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    type_: Literal["DocumentChunk"] = Field(alias="_type")


def parse_document_payload(value: Any) -> DocumentPayload | None:
    """Return a `DocumentPayload` for well-formed values, otherwise None."""
    if not isinstance(value, dict):
        return None
    try:
        return DocumentPayload.model_validate(value)
    except ValidationError:
        return None


def is_document_payload(value: Any) -> bool:
    """Check whether a raw backend payload is a well-formed `DocumentPayload`."""
    if isinstance(value, DocumentPayload):
        return True
    return parse_document_payload(value) is not None


class SearchResult(BaseModel):
    """A single normalized search hit.

    Attributes:
        id: Backend point/document identifier
        score: Similarity score, higher is better (roughly 0.0-1.0). Scores are
            backend-specific and must not be compared across backends.
        payload: Validated payload, or None when the backend returned a missing
            or malformed document. Such hits are kept, not dropped.
    """

    id: str | int
    score: float
    payload: DocumentPayload | None = None


class SearchOptions(BaseModel):
    """Per-request search options.

    Attributes:
        include_payload: Return stored documents with each hit
        include_vector: Return stored vectors (off to save bandwidth)
        score_threshold: Minimum score kept in results; None disables filtering
    """

    include_payload: bool = True
    include_vector: bool = False
    score_threshold: float | None = 0.7
