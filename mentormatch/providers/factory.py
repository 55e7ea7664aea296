"""
Provider factory for config-selectable embedding providers.

Supported providers:
- openai-compatible: HTTP endpoint speaking the OpenAI embeddings API
  (OpenRouter by default)
- hashing: deterministic local embeddings for development and tests
"""

from typing import Callable, Dict, Optional

import httpx

from mentormatch.providers.embeddings.base import EmbeddingProvider
from mentormatch.providers.embeddings.hashing import HashingEmbeddingProvider
from mentormatch.providers.embeddings.openai_compat import (
    OpenAICompatibleEmbeddingProvider,
)
from mentormatch.shared.config import Config, Settings
from mentormatch.shared.observability import get_logger

logger = get_logger(__name__)


class ProviderFactory:
    """Factory for creating embedding providers from configuration."""

    _EMBEDDING_PROVIDER_ALIASES = {
        "openai": "openai-compatible",
        "openai_compatible": "openai-compatible",
        "openrouter": "openai-compatible",
        "mock": "hashing",
    }

    @classmethod
    def create_embedding_provider(
        cls,
        config: Config,
        settings: Settings,
        *,
        client: Optional[httpx.Client] = None,
    ) -> EmbeddingProvider:
        provider_key = cls._normalize_provider(config.embedding.provider)
        creators: Dict[str, Callable[[], EmbeddingProvider]] = {
            "openai-compatible": lambda: OpenAICompatibleEmbeddingProvider(
                config.embedding,
                api_key=settings.resolved_embeddings_api_key,
                client=client,
                app_url=settings.app_url,
                app_title=config.app.name,
            ),
            "hashing": lambda: HashingEmbeddingProvider(dims=config.embedding.dims),
        }
        creator = creators.get(provider_key)
        if creator is None:
            raise ValueError(
                f"Unknown embedding provider: {config.embedding.provider}. "
                f"Supported: {sorted(creators)}"
            )

        logger.info(
            "Creating embedding provider",
            provider=provider_key,
            model=config.embedding.model_name,
            dims=config.embedding.dims,
        )
        return creator()

    @classmethod
    def _normalize_provider(cls, provider: Optional[str]) -> str:
        base = (provider or "").strip().lower()
        return cls._EMBEDDING_PROVIDER_ALIASES.get(base, base)
