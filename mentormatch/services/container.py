"""
Service graph for the API and the CLI.

Everything with a connection or a thread behind it is created here, once per
process, and released by ``MatchingServices.close()``. Tests pass their own
collaborators through the keyword overrides of ``build_services``.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from mentormatch.ingestion.mentor_indexer import MentorIndexer
from mentormatch.providers.embeddings.base import EmbeddingProvider
from mentormatch.providers.factory import ProviderFactory
from mentormatch.query.fallback import FallbackScorer
from mentormatch.query.hybrid_search import MultiStrategyRetriever
from mentormatch.query.ranking import MatchService
from mentormatch.query.scoring import ScoringEngine
from mentormatch.query.vector_store import (
    GuardedVectorIndex,
    InMemoryVectorIndex,
    QdrantVectorIndex,
    VectorIndex,
)
from mentormatch.services.mentor_store import MentorReferenceStore
from mentormatch.shared.config import Config, Settings
from mentormatch.shared.connections import ConnectionManager
from mentormatch.shared.observability import get_logger
from mentormatch.shared.resilience import CircuitBreaker

logger = get_logger(__name__)


@dataclass
class MatchingServices:
    config: Config
    settings: Settings
    embedding_provider: EmbeddingProvider
    vector_index: VectorIndex
    mentor_store: MentorReferenceStore
    indexer: MentorIndexer
    match_service: MatchService
    connections: Optional[ConnectionManager] = None

    def close(self) -> None:
        close = getattr(self.embedding_provider, "close", None)
        if callable(close):
            close()
        if self.connections is not None:
            self.connections.close_all()
        logger.info("Matching services closed")


def _build_vector_index(
    config: Config, settings: Settings
) -> Tuple[VectorIndex, Optional[ConnectionManager]]:
    if config.vector_index.backend == "qdrant":
        connections = ConnectionManager(settings)
        index = QdrantVectorIndex(
            connections.get_qdrant_client(),
            config.vector_index.collection_name,
            upsert_batch_size=config.vector_index.upsert_batch_size,
            contains_overfetch=config.vector_index.contains_overfetch,
        )
        index.ensure_collection(config.embedding.dims)
        return index, connections
    return InMemoryVectorIndex(), None


def build_services(
    config: Config,
    settings: Settings,
    *,
    embedding_provider: Optional[EmbeddingProvider] = None,
    vector_index: Optional[VectorIndex] = None,
    mentor_store: Optional[MentorReferenceStore] = None,
) -> MatchingServices:
    """
    Wire providers, index, stores and the match service from configuration.

    An in-memory index starts empty, so the mentor store is indexed into it
    before the services are returned.
    """
    connections: Optional[ConnectionManager] = None
    if embedding_provider is None:
        embedding_provider = ProviderFactory.create_embedding_provider(config, settings)
    if vector_index is None:
        vector_index, connections = _build_vector_index(config, settings)
    if mentor_store is None:
        mentor_store = MentorReferenceStore.from_config(config)

    breaker = CircuitBreaker(
        name=f"vector-index-{vector_index.backend_name}",
        failure_threshold=config.resilience.vector_index_failure_threshold,
        recovery_timeout=config.resilience.vector_index_recovery_timeout,
    )
    guarded = GuardedVectorIndex(vector_index, breaker)

    indexer = MentorIndexer(embedding_provider, guarded, config)
    if isinstance(vector_index, InMemoryVectorIndex) and vector_index.is_empty():
        indexer.index_mentors(mentor_store.all())

    retriever = MultiStrategyRetriever(embedding_provider, guarded, config)
    match_service = MatchService(
        retriever=retriever,
        scoring_engine=ScoringEngine(),
        mentor_store=mentor_store,
        fallback_scorer=FallbackScorer(min_score=config.matching.fallback_min_score),
        config=config,
    )

    logger.info(
        "Matching services ready",
        embedding_provider=embedding_provider.provider_name,
        vector_backend=vector_index.backend_name,
        mentors=len(mentor_store),
    )
    return MatchingServices(
        config=config,
        settings=settings,
        embedding_provider=embedding_provider,
        vector_index=guarded,
        mentor_store=mentor_store,
        indexer=indexer,
        match_service=match_service,
        connections=connections,
    )
