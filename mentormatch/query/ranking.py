"""
Ranking and fallback control for mentor matching.

Primary path: retrieve -> deduplicate -> score -> filter -> sort -> truncate.
If the primary path cannot produce a result (embedding failed, every strategy
failed, nothing retrieved, or nothing cleared the score floor) the request is
answered from the mentor reference store by the fallback scorer instead.
``search_method`` on the response says which regime produced the scores.
"""

import time
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from mentormatch.profiles.models import NewcomerProfile, RiskLevel, parse_newcomer_profile
from mentormatch.services.mentor_store import MentorReferenceStore
from mentormatch.shared.config import Config
from mentormatch.shared.errors import EmbeddingFailure
from mentormatch.shared.observability import get_logger, match_log_context, trace_match
from mentormatch.shared.observability.metrics import (
    fallback_invocations_total,
    match_latency_ms,
    match_requests_total,
    match_results_total,
    retrieval_candidates_total,
)

from .builder import SearchPreferences
from .fallback import FallbackMatch, FallbackScorer
from .hybrid_search import MatchCandidate, MultiStrategyRetriever, deduplicate
from .scoring import MatchScore, ScoringEngine

logger = get_logger(__name__)

SearchMethod = Literal["vector", "fallback"]

__all__ = [
    "MatchResponse",
    "MatchResult",
    "MatchService",
    "SearchPreferences",
]


class MatchResult(BaseModel):
    mentor: Dict[str, Any]
    similarity_score: float = Field(ge=0.0, le=1.0)
    archetype_alignment: float = Field(ge=0.0, le=1.0)
    match_explanation: str
    learning_path_suggestion: str
    search_strategy: Optional[str] = None
    confidence_level: Optional[float] = None
    risk_assessment: Optional[RiskLevel] = None
    component_scores: Optional[Dict[str, float]] = None


class MatchResponse(BaseModel):
    results: List[MatchResult] = Field(default_factory=list)
    total_count: int = 0
    search_method: SearchMethod
    search_time_ms: float = 0.0
    fallback_reason: Optional[str] = None


class MatchService:
    """Request-scoped orchestration over long-lived, thread-safe collaborators."""

    def __init__(
        self,
        retriever: MultiStrategyRetriever,
        scoring_engine: ScoringEngine,
        mentor_store: MentorReferenceStore,
        fallback_scorer: FallbackScorer,
        config: Config,
    ):
        self.retriever = retriever
        self.scoring_engine = scoring_engine
        self.mentor_store = mentor_store
        self.fallback_scorer = fallback_scorer
        self.config = config

    def match(
        self,
        profile: Any,
        preferences: Optional[SearchPreferences] = None,
    ) -> MatchResponse:
        """
        Find mentors for a newcomer.

        Raises:
            InvalidProfile: the profile failed validation; nothing was retrieved
        """
        start = time.time()
        newcomer = parse_newcomer_profile(profile)
        preferences = preferences or SearchPreferences()

        matching = self.config.matching
        max_results = preferences.max_results or matching.default_max_results
        min_score = (
            preferences.min_score
            if preferences.min_score is not None
            else matching.default_min_score
        )

        with match_log_context(newcomer.id, newcomer.archetype.value), trace_match(
            newcomer.id, newcomer.archetype.value
        ) as span:
            ranked, fallback_reason = self._primary(newcomer, preferences, min_score)

            if fallback_reason is None:
                method: SearchMethod = "vector"
                results = [self._primary_result(c, s) for c, s in ranked]
            else:
                method = "fallback"
                fallback_invocations_total.labels(reason=fallback_reason).inc()
                logger.info(
                    "Using fallback matcher",
                    profile_id=newcomer.id,
                    reason=fallback_reason,
                )
                results = [
                    self._fallback_result(m)
                    for m in self.fallback_scorer.rank(
                        newcomer, self.mentor_store.available(), floor=min_score
                    )
                ]

            total = len(results)
            results = results[:max_results]
            span.set_attribute("match.search_method", method)
            span.set_attribute("match.results", len(results))

        elapsed_ms = (time.time() - start) * 1000
        match_requests_total.labels(search_method=method).inc()
        match_latency_ms.labels(search_method=method).observe(elapsed_ms)
        match_results_total.observe(len(results))
        logger.info(
            "Mentor matching completed",
            profile_id=newcomer.id,
            search_method=method,
            total_count=total,
            returned=len(results),
            search_time_ms=round(elapsed_ms, 2),
        )

        return MatchResponse(
            results=results,
            total_count=total,
            search_method=method,
            search_time_ms=round(elapsed_ms, 2),
            fallback_reason=fallback_reason,
        )

    def _primary(
        self,
        newcomer: NewcomerProfile,
        preferences: SearchPreferences,
        min_score: float,
    ) -> Tuple[List[Tuple[MatchCandidate, MatchScore]], Optional[str]]:
        try:
            report = self.retriever.retrieve(newcomer, preferences)
        except EmbeddingFailure:
            return [], "embedding_failure"

        if report.all_failed:
            return [], "all_strategies_failed"
        if report.is_empty:
            return [], "no_candidates"

        candidates = deduplicate(report.candidates)
        retrieval_candidates_total.labels(stage="deduplicated").observe(len(candidates))

        scored: List[Tuple[MatchCandidate, MatchScore]] = []
        for candidate in candidates:
            score = self.scoring_engine.score(
                newcomer, candidate.mentor, candidate.weighted_score
            )
            if score.overall_score >= min_score:
                scored.append((candidate, score))

        retrieval_candidates_total.labels(stage="ranked").observe(len(scored))
        if not scored:
            return [], "no_matches"

        scored.sort(key=lambda pair: (-pair[1].overall_score, pair[0].mentor.id))
        return scored, None

    def _mentor_fields(self, candidate_mentor) -> Dict[str, Any]:
        # Prefer the reference record; index metadata may be partial
        full = self.mentor_store.get(candidate_mentor.id)
        return (full or candidate_mentor).public_fields()

    def _primary_result(self, candidate: MatchCandidate, score: MatchScore) -> MatchResult:
        return MatchResult(
            mentor=self._mentor_fields(candidate.mentor),
            similarity_score=score.overall_score,
            archetype_alignment=score.component_scores.archetype_alignment,
            match_explanation=score.explanation,
            learning_path_suggestion=score.learning_path_suggestion,
            search_strategy=candidate.strategy,
            confidence_level=score.confidence_level,
            risk_assessment=score.risk_assessment,
            component_scores=score.component_scores.as_dict(),
        )

    def _fallback_result(self, match: FallbackMatch) -> MatchResult:
        return MatchResult(
            mentor=match.mentor.public_fields(),
            similarity_score=match.score.similarity_score,
            archetype_alignment=match.score.archetype_alignment,
            match_explanation=match.score.explanation,
            learning_path_suggestion=match.score.learning_path_suggestion,
        )
