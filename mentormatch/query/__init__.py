from .builder import SearchPreferences, build_metadata_filter, build_query_text
from .fallback import FallbackScorer
from .hybrid_search import (
    MatchCandidate,
    MultiStrategyRetriever,
    RetrievalReport,
    deduplicate,
    default_strategies,
)
from .ranking import MatchResponse, MatchResult, MatchService
from .scoring import ScoringEngine
from .vector_store import (
    GuardedVectorIndex,
    InMemoryVectorIndex,
    QdrantVectorIndex,
    VectorHit,
    VectorIndex,
    VectorPoint,
)

__all__ = [
    "SearchPreferences",
    "build_metadata_filter",
    "build_query_text",
    "FallbackScorer",
    "MatchCandidate",
    "MultiStrategyRetriever",
    "RetrievalReport",
    "deduplicate",
    "default_strategies",
    "MatchResponse",
    "MatchResult",
    "MatchService",
    "ScoringEngine",
    "GuardedVectorIndex",
    "InMemoryVectorIndex",
    "QdrantVectorIndex",
    "VectorHit",
    "VectorIndex",
    "VectorPoint",
]
