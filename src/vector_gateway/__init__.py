"""Vector search gateway for documentation retrieval.

This package provides the backend-abstraction and result-normalization layer
independent of the MCP server interface. The MCP server in `docsearch_mcp`
consumes this gateway as a service layer.

Architecture:
    - models: Pydantic schemas for document payloads and search results
    - errors: Tagged error types (configuration, auth, connectivity, backend, input)
    - config: Hydra/OmegaConf configuration read from the environment
    - index: Search backend contract
    - qdrant_index / opensearch_index: Concrete backends
    - gateway: Backend selection, bootstrap and the search entry point
    - embedding: Query embedding collaborator (OpenAI)

Usage:
    >>> from vector_gateway import SearchGateway, load_config
    >>> gateway = SearchGateway(load_config())
    >>> results = await gateway.search("documentation", vector, limit=5)
"""

__version__ = "0.1.0"

from vector_gateway.config import GatewayConfig, load_config
from vector_gateway.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    ConnectivityError,
    ErrorCode,
    InvalidInputError,
    SearchGatewayError,
)
from vector_gateway.gateway import SearchGateway
from vector_gateway.index import BackendKind, SearchBackend
from vector_gateway.models import (
    DocumentChunk,
    DocumentPayload,
    SearchOptions,
    SearchResult,
    is_document_payload,
)

__all__ = [
    "AuthenticationError",
    "BackendError",
    "BackendKind",
    "ConfigurationError",
    "ConnectivityError",
    "DocumentChunk",
    "DocumentPayload",
    "ErrorCode",
    "GatewayConfig",
    "InvalidInputError",
    "SearchBackend",
    "SearchGateway",
    "SearchGatewayError",
    "SearchOptions",
    "SearchResult",
    "is_document_payload",
    "load_config",
]
