"""
Base embedding provider protocol.

Matching embeds one query per request; indexing embeds mentor documents in
batches. Both must use the same provider and dimensionality so that query and
mentor vectors live in the same space.

The provider returns List[List[float]] for documents and List[float] for
queries so results stay JSON serializable.
"""

from typing import List, Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding providers."""

    @property
    def dims(self) -> int:
        """Number of dimensions in each embedding vector."""
        ...

    @property
    def model_id(self) -> str:
        """Model identifier (e.g. "openai/text-embedding-ada-002")."""
        ...

    @property
    def provider_name(self) -> str:
        """Provider name (e.g. "openai-compatible", "hashing")."""
        ...

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple documents.

        Raises:
            ValueError: If texts is empty
            RuntimeError: If embedding generation fails
        """
        ...

    def embed_query(self, text: str) -> List[float]:
        """
        Generate embedding for a single query.

        Raises:
            ValueError: If text is empty
            RuntimeError: If embedding generation fails
        """
        ...
