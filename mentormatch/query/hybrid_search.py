"""
Multi-strategy mentor retrieval.

The newcomer's query is embedded once and sent to the vector index by three
weighted strategies:

  exact-archetype   archetype namespace, same primary archetype
  cross-archetype   all namespace, different primary archetype
  high-reputation   all namespace, reputation and track-record floor

Strategies run concurrently. Each one ends as ``StrategySucceeded`` or
``StrategyFailed``; a failed or timed-out strategy contributes nothing and
never aborts its siblings. The caller decides what an all-failed or empty
report means.
"""

import contextvars
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from mentormatch.profiles.models import MentorProfile, NewcomerProfile
from mentormatch.providers.embeddings.base import EmbeddingProvider
from mentormatch.shared.config import Config
from mentormatch.shared.errors import EmbeddingFailure
from mentormatch.shared.observability import (
    get_logger,
    strategy_log_context,
    trace_strategy_search,
)
from mentormatch.shared.observability.metrics import (
    retrieval_candidates_total,
    strategy_search_total,
)

from .builder import SearchPreferences, build_metadata_filter, build_query_text
from .filters import And, Eq, Gte, Ne, Predicate
from .vector_store import VectorHit, VectorIndex

logger = get_logger(__name__)

ARCHETYPE_NAMESPACE = "archetype"
ALL_NAMESPACE = "all"

EXACT_ARCHETYPE = "exact-archetype"
CROSS_ARCHETYPE = "cross-archetype"
HIGH_REPUTATION = "high-reputation"


@dataclass(frozen=True)
class RetrievalStrategy:
    """
    One retrieval pass.

    ``namespace_key`` is ``"archetype"`` (the newcomer's archetype namespace)
    or ``"all"``. ``predicate_fn`` returns the clauses ANDed onto the base
    filter for this strategy.
    """

    label: str
    namespace_key: str
    top_k: int
    weight: float
    predicate_fn: Callable[[NewcomerProfile], Sequence[Predicate]]


@dataclass(frozen=True)
class MatchCandidate:
    mentor: MentorProfile
    raw_similarity: float
    weight: float
    weighted_score: float
    strategy: str
    vector_id: str = ""


@dataclass(frozen=True)
class StrategySucceeded:
    label: str
    candidates: Tuple[MatchCandidate, ...]


@dataclass(frozen=True)
class StrategyFailed:
    label: str
    reason: str


StrategyOutcome = Union[StrategySucceeded, StrategyFailed]


@dataclass
class RetrievalReport:
    outcomes: List[StrategyOutcome] = field(default_factory=list)
    query_text: str = ""

    @property
    def candidates(self) -> List[MatchCandidate]:
        """All candidates, concatenated in strategy order."""
        return [
            candidate
            for outcome in self.outcomes
            if isinstance(outcome, StrategySucceeded)
            for candidate in outcome.candidates
        ]

    @property
    def failures(self) -> List[StrategyFailed]:
        return [o for o in self.outcomes if isinstance(o, StrategyFailed)]

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and len(self.failures) == len(self.outcomes)

    @property
    def is_empty(self) -> bool:
        return not self.candidates


def default_strategies(config: Config) -> List[RetrievalStrategy]:
    strategies = config.matching.strategies

    def exact(profile: NewcomerProfile) -> Sequence[Predicate]:
        return (Eq("primary_archetype", profile.archetype.value),)

    def cross(profile: NewcomerProfile) -> Sequence[Predicate]:
        return (Ne("primary_archetype", profile.archetype.value),)

    def reputable(profile: NewcomerProfile) -> Sequence[Predicate]:
        return (
            Gte("community_reputation", strategies.high_reputation_min_reputation),
            Gte("successful_mentees", strategies.high_reputation_min_mentees),
        )

    return [
        RetrievalStrategy(
            EXACT_ARCHETYPE,
            ARCHETYPE_NAMESPACE,
            strategies.exact_archetype.top_k,
            strategies.exact_archetype.weight,
            exact,
        ),
        RetrievalStrategy(
            CROSS_ARCHETYPE,
            ALL_NAMESPACE,
            strategies.cross_archetype.top_k,
            strategies.cross_archetype.weight,
            cross,
        ),
        RetrievalStrategy(
            HIGH_REPUTATION,
            ALL_NAMESPACE,
            strategies.high_reputation.top_k,
            strategies.high_reputation.weight,
            reputable,
        ),
    ]


def deduplicate(candidates: Iterable[MatchCandidate]) -> List[MatchCandidate]:
    """
    Collapse repeated mentors, keeping the highest weighted score.

    A later candidate replaces an earlier one only when strictly greater; the
    survivor takes the position of the mentor's first appearance.
    """
    by_mentor: Dict[str, MatchCandidate] = {}
    for candidate in candidates:
        existing = by_mentor.get(candidate.mentor.id)
        if existing is None or candidate.weighted_score > existing.weighted_score:
            by_mentor[candidate.mentor.id] = candidate
    return list(by_mentor.values())


class MultiStrategyRetriever:
    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_index: VectorIndex,
        config: Config,
        strategies: Optional[List[RetrievalStrategy]] = None,
    ):
        self.embedding_provider = embedding_provider
        self.vector_index = vector_index
        self.config = config
        self.strategies = (
            strategies if strategies is not None else default_strategies(config)
        )

    def namespace_for(self, strategy: RetrievalStrategy, profile: NewcomerProfile) -> str:
        namespaces = self.config.vector_index.namespaces
        if strategy.namespace_key == ARCHETYPE_NAMESPACE:
            return namespaces.for_archetype(profile.archetype.value)
        return namespaces.for_archetype(strategy.namespace_key)

    def retrieve(
        self,
        profile: NewcomerProfile,
        preferences: Optional[SearchPreferences] = None,
    ) -> RetrievalReport:
        """
        Embed the profile's query once and run every strategy.

        Raises:
            EmbeddingFailure: the query could not be embedded
        """
        query_text = build_query_text(profile)
        try:
            vector = self.embedding_provider.embed_query(query_text)
        except Exception as exc:
            logger.warning(
                "Query embedding failed",
                profile_id=profile.id,
                provider=self.embedding_provider.provider_name,
                error=str(exc),
            )
            raise EmbeddingFailure(str(exc)) from exc

        base_filter = build_metadata_filter(profile, preferences)
        outcomes = self._run_strategies(profile, vector, base_filter)
        report = RetrievalReport(outcomes=outcomes, query_text=query_text)

        retrieval_candidates_total.labels(stage="retrieved").observe(
            len(report.candidates)
        )
        logger.info(
            "Retrieval completed",
            profile_id=profile.id,
            strategies=len(outcomes),
            failed=len(report.failures),
            candidates=len(report.candidates),
        )
        return report

    def _run_strategies(
        self,
        profile: NewcomerProfile,
        vector: List[float],
        base_filter: And,
    ) -> List[StrategyOutcome]:
        if not self.strategies:
            return []

        timeout = self.config.matching.strategy_timeout_seconds
        workers = max(1, min(self.config.matching.max_workers, len(self.strategies)))
        executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="mentormatch-strategy"
        )
        try:
            futures: List[Future] = []
            for strategy in self.strategies:
                # Each task gets its own context copy so correlation ids and
                # trace context follow it onto the worker thread
                ctx = contextvars.copy_context()
                futures.append(
                    executor.submit(
                        ctx.run,
                        self._search_strategy,
                        strategy,
                        profile,
                        vector,
                        base_filter,
                    )
                )

            deadline = time.monotonic() + timeout
            outcomes: List[StrategyOutcome] = []
            for strategy, future in zip(self.strategies, futures):
                outcomes.append(
                    self._collect(strategy, profile, future, deadline)
                )
            return outcomes
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _collect(
        self,
        strategy: RetrievalStrategy,
        profile: NewcomerProfile,
        future: Future,
        deadline: float,
    ) -> StrategyOutcome:
        namespace = self.namespace_for(strategy, profile)
        try:
            candidates = future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FutureTimeoutError:
            future.cancel()
            strategy_search_total.labels(strategy=strategy.label, status="timeout").inc()
            logger.warning(
                "Search strategy timed out",
                strategy=strategy.label,
                namespace=namespace,
                error="timeout",
            )
            return StrategyFailed(strategy.label, "timeout")
        except Exception as exc:
            strategy_search_total.labels(strategy=strategy.label, status="error").inc()
            logger.warning(
                "Search strategy failed",
                strategy=strategy.label,
                namespace=namespace,
                error=str(exc),
            )
            return StrategyFailed(strategy.label, f"{type(exc).__name__}: {exc}")

        strategy_search_total.labels(strategy=strategy.label, status="success").inc()
        return StrategySucceeded(strategy.label, tuple(candidates))

    def _search_strategy(
        self,
        strategy: RetrievalStrategy,
        profile: NewcomerProfile,
        vector: List[float],
        base_filter: And,
    ) -> List[MatchCandidate]:
        namespace = self.namespace_for(strategy, profile)
        predicate = base_filter.extend(*strategy.predicate_fn(profile))

        with strategy_log_context(strategy.label, namespace), trace_strategy_search(
            strategy.label, namespace, strategy.top_k
        ) as span:
            hits = self.vector_index.query(namespace, vector, strategy.top_k, predicate)
            span.set_attribute("strategy.hits", len(hits))
            return [self._to_candidate(strategy, hit) for hit in hits]

    @staticmethod
    def _to_candidate(strategy: RetrievalStrategy, hit: VectorHit) -> MatchCandidate:
        raw = min(max(float(hit.score), 0.0), 1.0)
        return MatchCandidate(
            mentor=MentorProfile.from_metadata(hit.id, hit.metadata),
            raw_similarity=raw,
            weight=strategy.weight,
            weighted_score=raw * strategy.weight,
            strategy=strategy.label,
            vector_id=hit.id,
        )
