from .base import EmbeddingProvider
from .hashing import HashingEmbeddingProvider
from .openai_compat import OpenAICompatibleEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "HashingEmbeddingProvider",
    "OpenAICompatibleEmbeddingProvider",
]
