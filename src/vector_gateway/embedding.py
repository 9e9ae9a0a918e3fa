"""Embedding client abstraction for query vector generation.

The gateway treats embeddings as an external collaborator: a function from
text to a 1536-dimensional vector that may fail. The OpenAI client is created
lazily so that a missing API key only fails the embedding call itself.
"""

import asyncio
from typing import Protocol

import httpx
from loguru import logger
from openai import APITimeoutError, AsyncOpenAI, RateLimitError
from pydantic import BaseModel, Field

from vector_gateway.errors import ConfigurationError


class EmbeddingConfig(BaseModel):
    """Configuration for embedding generation.

    Attributes:
        model: Model identifier (e.g., "openai/text-embedding-3-small")
        dimensions: Expected embedding dimensionality
        batch_size: Number of texts to embed per API call
        max_retries: Maximum retry attempts for transient failures
        timeout_seconds: API request timeout
        api_key: API key for external services (set via env var)
    """

    model: str = "openai/text-embedding-3-small"
    dimensions: int = Field(default=1536, ge=128, le=4096)
    batch_size: int = Field(default=100, ge=1, le=500)
    max_retries: int = Field(default=3, ge=1, le=10)
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    api_key: str | None = None


class EmbeddingClient(Protocol):
    """Protocol for embedding client implementations."""

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a batch of texts.

        Args:
            texts: List of input texts (max batch_size)

        Returns:
            List of embedding vectors (same order as inputs)
        """
        ...

    async def embed_single(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        ...


class OpenAIEmbedding:
    """OpenAI embedding client with retry logic and batching."""

    def __init__(self, config: EmbeddingConfig):
        """Initialize OpenAI embedding client.

        Args:
            config: Embedding configuration; the API key may be unset
        """
        self.config = config
        self._client: AsyncOpenAI | None = None

        # Extract model name (strip "openai/" prefix if present)
        self.model_name = config.model.removeprefix("openai/")

    @property
    def client(self) -> AsyncOpenAI:
        """Return the OpenAI client, creating it on first use.

        Raises:
            ConfigurationError: If no API key is configured
        """
        if self._client is None:
            if not self.config.api_key:
                raise ConfigurationError("OpenAI API key not configured")
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
                max_retries=0,  # retries are handled in embed_batch
            )
        return self._client

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a batch of texts with retry logic.

        Args:
            texts: List of input texts (max batch_size)

        Returns:
            List of embedding vectors (same order as inputs)

        Raises:
            ConfigurationError: If no API key is configured
            ValueError: If batch size exceeds config limit or dimensions mismatch
            openai.APIError: For API failures after all retries
        """
        if len(texts) > self.config.batch_size:
            raise ValueError(f"Batch size {len(texts)} exceeds limit {self.config.batch_size}")

        if not texts:
            return []

        client = self.client

        for attempt in range(self.config.max_retries):
            try:
                response = await client.embeddings.create(model=self.model_name, input=texts)

                embeddings = [item.embedding for item in response.data]

                for i, emb in enumerate(embeddings):
                    if len(emb) != self.config.dimensions:
                        raise ValueError(
                            f"Expected {self.config.dimensions} dimensions, "
                            f"got {len(emb)} for text {i}"
                        )

                logger.debug(
                    f"Embedded {len(texts)} texts with {self.model_name} "
                    f"(attempt {attempt + 1}/{self.config.max_retries})"
                )
                return embeddings

            except (APITimeoutError, httpx.TimeoutException) as e:
                logger.warning(
                    f"Timeout embedding batch "
                    f"(attempt {attempt + 1}/{self.config.max_retries}): {e}"
                )
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(2**attempt)  # Exponential backoff
                else:
                    raise

            except RateLimitError as e:
                logger.warning(
                    f"Rate limited (attempt {attempt + 1}/{self.config.max_retries}): {e}"
                )
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(2 ** (attempt + 1))
                else:
                    raise

        raise RuntimeError("Exhausted all retry attempts")

    async def embed_single(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Input text

        Returns:
            Embedding vector
        """
        embeddings = await self.embed_batch([text])
        return embeddings[0]


def create_embedding_client(config: EmbeddingConfig) -> EmbeddingClient:
    """Factory function to create embedding client based on model config.

    Args:
        config: Embedding configuration

    Returns:
        Embedding client implementation

    Example:
        >>> config = EmbeddingConfig(model="openai/text-embedding-3-small", api_key="sk-...")
        >>> client = create_embedding_client(config)
    """
    if config.model.startswith("openai/"):
        return OpenAIEmbedding(config)
    raise ValueError(f"Unknown model prefix in {config.model!r}. Expected 'openai/'")
