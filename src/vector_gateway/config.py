"""Configuration management for the search gateway using Hydra.

Configuration is composed from YAML files in conf/gateway/, which pull their
values from the environment. The result is validated into a single
`GatewayConfig` that is built once and passed to every constructor.
"""

from pathlib import Path
from typing import Any

from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, Field, field_validator

from vector_gateway.embedding import EmbeddingConfig

DEFAULT_COLLECTION_NAME = "documentation"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class QdrantSettings(BaseModel):
    """Qdrant connection settings.

    Attributes:
        url: Qdrant server URL (QDRANT_URL)
        api_key: Qdrant API key (QDRANT_API_KEY)
    """

    url: str | None = None
    api_key: str | None = None

    @field_validator("url", "api_key", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class OpenSearchSettings(BaseModel):
    """OpenSearch connection settings.

    Attributes:
        node: Cluster URL (OPENSEARCH_NODE)
        username: Basic-auth user (OPENSEARCH_USERNAME)
        password: Basic-auth password (OPENSEARCH_PASSWORD)
        verify_certs: Verify TLS certificates
        max_retries: Transport retries, including on timeout
    """

    node: str | None = None
    username: str | None = None
    password: str | None = None
    verify_certs: bool = True
    max_retries: int = Field(default=2, ge=0, le=10)

    @field_validator("node", "username", "password", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class GatewayConfig(BaseModel):
    """Top-level configuration for the search gateway.

    Attributes:
        search_client_type: Raw backend identifier ("qdrant" or "opensearch");
            resolved by the gateway, which warns on unrecognized values
        default_collection_name: Collection initialized in the background at startup
        timeout_seconds: Request timeout for backend clients
        log_level: Loguru level for the stderr sink
        qdrant: Qdrant settings
        opensearch: OpenSearch settings
        embedding: Embedding model configuration
    """

    search_client_type: str | None = None
    default_collection_name: str = DEFAULT_COLLECTION_NAME
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    log_level: str = "INFO"
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    opensearch: OpenSearchSettings = Field(default_factory=OpenSearchSettings)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)

    @field_validator("search_client_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("default_collection_name", mode="before")
    @classmethod
    def default_collection_if_blank(cls, v: Any) -> Any:
        """Fall back to the default collection for unset or blank values."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_COLLECTION_NAME
        return v


def load_config(
    config_name: str = "default",
    config_path: str | Path | None = None,
    overrides: list[str] | None = None,
) -> GatewayConfig:
    """Load gateway configuration from Hydra YAML files.

    Args:
        config_name: Name of config file (without .yaml extension)
        config_path: Path to config directory (defaults to conf/gateway/)
        overrides: List of config overrides (e.g., ["timeout_seconds=10"])

    Returns:
        Validated configuration object

    Example:
        >>> config = load_config("default")
        >>> config.default_collection_name
        'documentation'
    """
    if config_path is None:
        # Default to conf/gateway/ relative to repo root
        repo_root = Path(__file__).parent.parent.parent
        config_path = repo_root / "conf" / "gateway"

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config directory not found: {config_path}\n" f"Create it with: mkdir -p {config_path}"
        )

    with initialize_config_dir(config_dir=str(config_path), version_base=None, job_name="gateway"):
        cfg: DictConfig = compose(config_name=config_name, overrides=overrides or [])

    # Environment interpolations are resolved here, once
    config_dict = OmegaConf.to_container(cfg, resolve=True)
    return GatewayConfig(**config_dict)  # type: ignore


def create_default_config() -> dict[str, dict[str, object] | object]:
    """Create a default configuration dictionary for bootstrapping conf/gateway/.

    Returns:
        Dictionary suitable for writing to YAML
    """
    return {
        "search_client_type": "${oc.env:SEARCH_CLIENT_TYPE,null}",
        "default_collection_name": f"${{oc.env:DEFAULT_COLLECTION_NAME,{DEFAULT_COLLECTION_NAME}}}",
        "timeout_seconds": "${oc.env:SEARCH_TIMEOUT_SECONDS,30}",
        "log_level": "${oc.env:LOG_LEVEL,INFO}",
        "qdrant": {
            "url": "${oc.env:QDRANT_URL,null}",
            "api_key": "${oc.env:QDRANT_API_KEY,null}",
        },
        "opensearch": {
            "node": "${oc.env:OPENSEARCH_NODE,null}",
            "username": "${oc.env:OPENSEARCH_USERNAME,null}",
            "password": "${oc.env:OPENSEARCH_PASSWORD,null}",
            "verify_certs": "${oc.env:OPENSEARCH_VERIFY_CERTS,true}",
            "max_retries": 2,
        },
        "embedding": {
            "model": "openai/text-embedding-3-small",
            "dimensions": 1536,
            "batch_size": 100,
            "max_retries": 3,
            "timeout_seconds": 30.0,
            "api_key": "${oc.env:OPENAI_API_KEY,null}",
        },
    }
