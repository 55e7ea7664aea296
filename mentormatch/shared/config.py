# Configuration loader with environment variable support
# YAML holds per-environment tuning, environment variables hold hosts and secrets

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, validator
from pydantic_settings import BaseSettings

from .models import MentorMatchBaseModel

logger = logging.getLogger(__name__)

SUPPORTED_EMBEDDING_PROVIDERS = {"openai-compatible", "hashing"}
SUPPORTED_VECTOR_BACKENDS = {"qdrant", "memory"}


class AppConfig(BaseModel):
    name: str = "mentormatch"
    version: str = "0.1.0"
    log_level: str = "INFO"


class EmbeddingConfig(BaseModel):
    """
    Embedding configuration.
    This is the single source of truth for the query/mentor embedding model.
    """

    provider: str = Field(default="hashing")
    model_name: str = Field(default="openai/text-embedding-ada-002")
    dims: int = Field(default=1536, gt=0)
    base_url: str = Field(default="https://openrouter.ai/api/v1")
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    batch_size: int = Field(default=32, gt=0)

    @validator("provider")
    def validate_provider(cls, v):
        """Validate the embedding provider is supported"""
        normalized = (v or "").strip().lower()
        if normalized not in SUPPORTED_EMBEDDING_PROVIDERS:
            raise ValueError(
                f"embedding provider must be one of {sorted(SUPPORTED_EMBEDDING_PROVIDERS)}, got {v}"
            )
        return normalized

    @validator("dims")
    def validate_dims(cls, v):
        """Validate dimensions are reasonable"""
        if v > 4096:  # Sanity check
            logger.warning(f"dims={v} is unusually large, typical range is 128-1536")
        return v


class NamespaceConfig(BaseModel):
    investor: str = "mentors-investor"
    developer: str = "mentors-developer"
    social_user: str = "mentors-social-user"
    all: str = "mentors-all"

    def for_archetype(self, archetype: str) -> str:
        return getattr(self, archetype)


class VectorIndexConfig(BaseModel):
    backend: str = Field(default="memory")
    collection_name: str = "crypto-mentors"
    namespaces: NamespaceConfig = Field(default_factory=NamespaceConfig)
    upsert_batch_size: int = Field(default=100, gt=0)
    contains_overfetch: int = Field(default=10, gt=0)

    @validator("backend")
    def validate_backend(cls, v):
        normalized = (v or "").strip().lower()
        if normalized not in SUPPORTED_VECTOR_BACKENDS:
            raise ValueError(
                f"vector index backend must be one of {sorted(SUPPORTED_VECTOR_BACKENDS)}, got {v}"
            )
        return normalized


class StrategyConfig(BaseModel):
    top_k: int = Field(gt=0)
    weight: float = Field(ge=0.0, le=1.0)


class StrategiesConfig(BaseModel):
    exact_archetype: StrategyConfig = Field(
        default_factory=lambda: StrategyConfig(top_k=10, weight=0.5)
    )
    cross_archetype: StrategyConfig = Field(
        default_factory=lambda: StrategyConfig(top_k=5, weight=0.3)
    )
    high_reputation: StrategyConfig = Field(
        default_factory=lambda: StrategyConfig(top_k=5, weight=0.2)
    )
    high_reputation_min_reputation: float = Field(default=8.0, ge=0.0, le=10.0)
    high_reputation_min_mentees: int = Field(default=10, ge=0)


class MatchingConfig(BaseModel):
    default_max_results: int = Field(default=5, gt=0)
    default_min_score: float = Field(default=0.3, ge=0.0, le=1.0)
    fallback_min_score: float = Field(default=0.3, ge=0.0, le=1.0)
    strategy_timeout_seconds: float = Field(default=5.0, gt=0)
    max_workers: int = Field(default=3, gt=0)
    strategies: StrategiesConfig = Field(default_factory=StrategiesConfig)


class MentorsConfig(BaseModel):
    seed_path: Optional[str] = None


class ResilienceConfig(BaseModel):
    vector_index_failure_threshold: int = Field(default=5, gt=0)
    vector_index_recovery_timeout: float = Field(default=30.0, gt=0)


class MonitoringConfig(BaseModel):
    metrics_enabled: bool = True
    tracing_enabled: bool = True


class Config(MentorMatchBaseModel):
    """Main configuration model"""

    app: AppConfig = Field(default_factory=AppConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    vector_index: VectorIndexConfig = Field(default_factory=VectorIndexConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    mentors: MentorsConfig = Field(default_factory=MentorsConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)


class Settings(BaseSettings):
    """Environment-based settings"""

    # Environment
    env: str = Field(default="development", alias="ENV")
    config_path: Optional[str] = Field(default=None, alias="CONFIG_PATH")

    # Qdrant
    qdrant_host: str = Field(default="localhost", alias="QDRANT_HOST")
    qdrant_port: int = Field(default=6333, alias="QDRANT_PORT")
    qdrant_api_key: Optional[str] = Field(default=None, alias="QDRANT_API_KEY")

    # Embeddings
    embeddings_api_key: Optional[str] = Field(default=None, alias="EMBEDDINGS_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")
    app_url: str = Field(default="http://localhost:3000", alias="APP_URL")

    # OpenTelemetry
    otel_exporter_otlp_endpoint: Optional[str] = Field(
        default=None, alias="OTEL_EXPORTER_OTLP_ENDPOINT"
    )
    otel_service_name: str = Field(default="mentormatch", alias="OTEL_SERVICE_NAME")

    # Logging
    log_level: Optional[str] = Field(default=None, alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables

    @property
    def resolved_embeddings_api_key(self) -> Optional[str]:
        return self.embeddings_api_key or self.openrouter_api_key


def _default_config_dir() -> Path:
    return Path(__file__).parent.parent.parent / "config"


def load_config() -> Tuple[Config, Settings]:
    """
    Load configuration from YAML file and environment variables.

    Returns:
        tuple: (Config, Settings) - YAML config and environment settings

    Raises:
        FileNotFoundError: If config file not found
        ValueError: If configuration validation fails
    """
    settings = Settings()

    if settings.config_path:
        config_path = Path(settings.config_path)
    else:
        config_path = _default_config_dir() / f"{settings.env}.yaml"

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    with open(config_path, "r") as f:
        config_dict = yaml.safe_load(f) or {}

    config = Config(**config_dict)
    validate_config_at_startup(config, settings)

    return config, settings


def validate_config_at_startup(config: Config, settings: Settings) -> None:
    """Cross-field checks that pydantic cannot express per model."""
    errors: List[str] = []

    if config.embedding.provider == "openai-compatible" and not (
        settings.resolved_embeddings_api_key
    ):
        if settings.env not in ("development", "dev", "test"):
            errors.append(
                "EMBEDDINGS_API_KEY (or OPENROUTER_API_KEY) is required for the "
                "openai-compatible embedding provider"
            )
        else:
            logger.warning(
                "No embeddings API key set; openai-compatible provider will fail "
                "and matching will use the in-memory fallback"
            )

    strategies = config.matching.strategies
    weights: Dict[str, float] = {
        "exact_archetype": strategies.exact_archetype.weight,
        "cross_archetype": strategies.cross_archetype.weight,
        "high_reputation": strategies.high_reputation.weight,
    }
    if abs(sum(weights.values()) - 1.0) > 1e-6:
        logger.warning(f"Strategy weights do not sum to 1.0: {weights}")

    if errors:
        raise ValueError("Configuration validation failed: " + "; ".join(errors))


# Global config instances
_config: Optional[Config] = None
_settings: Optional[Settings] = None


def get_config() -> Config:
    """Get global config instance"""
    global _config
    if _config is None:
        init_config()
    return _config


def get_settings() -> Settings:
    """Get global settings instance"""
    global _settings
    if _settings is None:
        init_config()
    return _settings


def init_config() -> Tuple[Config, Settings]:
    """Initialize global configuration"""
    global _config, _settings
    _config, _settings = load_config()
    return _config, _settings


def reload_config() -> Tuple[Config, Settings]:
    """Drop cached configuration and load it again from disk and environment."""
    global _config, _settings
    _config = None
    _settings = None
    return init_config()
