"""
In-memory fallback matcher.

Used when the vector path produced nothing. Scores every available mentor
with spare capacity directly against the profile using a four-factor model
with no similarity term. These scores are not comparable with the primary
engine's and are never mixed with them in one response.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from mentormatch.profiles.models import (
    Archetype,
    CommunicationStyle,
    KnowledgeLevel,
    MentorProfile,
    NewcomerProfile,
)
from mentormatch.shared.errors import ScoringAnomaly
from mentormatch.shared.observability import get_logger
from mentormatch.shared.observability.metrics import scoring_anomalies_total

from .filters import terms_overlap

logger = get_logger(__name__)

FALLBACK_WEIGHTS = {
    "archetype_alignment": 0.4,
    "interest_alignment": 0.3,
    "learning_style_alignment": 0.2,
    "availability_alignment": 0.1,
}

FALLBACK_ARCHETYPE_COMPATIBILITY = {
    Archetype.INVESTOR: {Archetype.DEVELOPER: 0.6, Archetype.SOCIAL_USER: 0.4},
    Archetype.DEVELOPER: {Archetype.INVESTOR: 0.6, Archetype.SOCIAL_USER: 0.7},
    Archetype.SOCIAL_USER: {Archetype.INVESTOR: 0.4, Archetype.DEVELOPER: 0.7},
}

_S = CommunicationStyle
FALLBACK_STYLE_COMPATIBILITY = {
    _S.DIRECT: {_S.DIRECT: 1.0, _S.COLLABORATIVE: 0.7, _S.SUPPORTIVE: 0.5, _S.CHALLENGING: 0.8},
    _S.COLLABORATIVE: {_S.DIRECT: 0.7, _S.COLLABORATIVE: 1.0, _S.SUPPORTIVE: 0.9, _S.CHALLENGING: 0.6},
    _S.SUPPORTIVE: {_S.DIRECT: 0.5, _S.COLLABORATIVE: 0.9, _S.SUPPORTIVE: 1.0, _S.CHALLENGING: 0.4},
    _S.CHALLENGING: {_S.DIRECT: 0.8, _S.COLLABORATIVE: 0.6, _S.SUPPORTIVE: 0.4, _S.CHALLENGING: 1.0},
}

COARSE_REGIONS = {
    "America/New_York": "US",
    "America/Los_Angeles": "US",
    "America/Chicago": "US",
    "Europe/London": "EU",
    "Asia/Singapore": "ASIA",
    "Asia/Seoul": "ASIA",
}

FALLBACK_LEARNING_PATHS = {
    Archetype.INVESTOR: {
        KnowledgeLevel.BEGINNER: "Start with crypto fundamentals, basic DeFi concepts, then portfolio management",
        KnowledgeLevel.INTERMEDIATE: "Focus on advanced DeFi strategies, risk management, and market analysis",
        KnowledgeLevel.ADVANCED: "Explore yield optimization, protocol analysis, and institutional strategies",
    },
    Archetype.DEVELOPER: {
        KnowledgeLevel.BEGINNER: "Learn blockchain basics, Solidity fundamentals, then build simple smart contracts",
        KnowledgeLevel.INTERMEDIATE: "Master smart contract security, testing, and DeFi protocol development",
        KnowledgeLevel.ADVANCED: "Focus on protocol architecture, MEV strategies, and advanced optimization",
    },
    Archetype.SOCIAL_USER: {
        KnowledgeLevel.BEGINNER: "Understand crypto culture, DAO basics, and community engagement strategies",
        KnowledgeLevel.INTERMEDIATE: "Learn governance design, tokenomics, and advanced community management",
        KnowledgeLevel.ADVANCED: "Master DAO operations, social token strategies, and ecosystem building",
    },
}
DEFAULT_LEARNING_PATH = "Customized learning path based on your goals and interests"


@dataclass
class FallbackScore:
    similarity_score: float
    archetype_alignment: float
    components: Dict[str, float] = field(default_factory=dict)
    explanation: str = ""
    learning_path_suggestion: str = ""


@dataclass
class FallbackMatch:
    mentor: MentorProfile
    score: FallbackScore


class FallbackScorer:
    def __init__(self, min_score: float = 0.3):
        self.min_score = min_score

    def rank(
        self,
        newcomer: NewcomerProfile,
        mentors: Iterable[MentorProfile],
        floor: Optional[float] = None,
    ) -> List[FallbackMatch]:
        """
        Score mentors with capacity and keep those strictly above ``min_score``.

        ``floor`` is the caller's own minimum; a kept score is also at least that.

        Sorted by score descending, mentor id ascending on ties. Not truncated.
        """
        matches: List[FallbackMatch] = []
        for mentor in mentors:
            if not mentor.availability.is_available or not mentor.availability.has_capacity:
                continue
            score = self.score(newcomer, mentor)
            if score.similarity_score > self.min_score and (
                floor is None or score.similarity_score >= floor
            ):
                matches.append(FallbackMatch(mentor=mentor, score=score))

        matches.sort(key=lambda m: (-m.score.similarity_score, m.mentor.id))
        return matches

    def score(self, newcomer: NewcomerProfile, mentor: MentorProfile) -> FallbackScore:
        components: Dict[str, float] = {}
        for name, calculate in (
            ("archetype_alignment", self.archetype_alignment),
            ("interest_alignment", self.interest_alignment),
            ("learning_style_alignment", self.learning_style_alignment),
            ("availability_alignment", self.availability_alignment),
        ):
            try:
                components[name] = max(0.0, min(1.0, calculate(newcomer, mentor)))
            except ScoringAnomaly as exc:
                scoring_anomalies_total.labels(component=f"fallback_{name}").inc()
                logger.warning(
                    "Fallback scoring anomaly",
                    mentor_id=mentor.id,
                    component=name,
                    field=exc.field,
                )
                components[name] = 0.0

        overall = sum(components[name] * w for name, w in FALLBACK_WEIGHTS.items())
        return FallbackScore(
            similarity_score=min(overall, 1.0),
            archetype_alignment=components["archetype_alignment"],
            components=components,
            explanation=self.explain(components, newcomer, mentor),
            learning_path_suggestion=self.learning_path(newcomer),
        )

    def archetype_alignment(self, newcomer: NewcomerProfile, mentor: MentorProfile) -> float:
        if mentor.primary_archetype is None:
            raise ScoringAnomaly("archetype_alignment", "primary_archetype")
        if newcomer.archetype == mentor.primary_archetype:
            return 1.0
        return FALLBACK_ARCHETYPE_COMPATIBILITY.get(newcomer.archetype, {}).get(
            mentor.primary_archetype, 0.3
        )

    def interest_alignment(self, newcomer: NewcomerProfile, mentor: MentorProfile) -> float:
        if mentor.specializations is None:
            raise ScoringAnomaly("interest_alignment", "specializations")
        interests = _unique(
            newcomer.crypto_interests.primary_goals
            + newcomer.crypto_interests.specific_interests
            + newcomer.mentor_requirements.desired_expertise
        )
        overlapping = [
            interest
            for interest in interests
            if any(terms_overlap(spec, interest) for spec in mentor.specializations)
        ]
        return min(len(overlapping) / max(len(interests), 1), 1.0)

    def learning_style_alignment(
        self, newcomer: NewcomerProfile, mentor: MentorProfile
    ) -> float:
        if mentor.communication_style is None:
            raise ScoringAnomaly("learning_style_alignment", "communication_style")
        return FALLBACK_STYLE_COMPATIBILITY.get(
            newcomer.learning_preferences.communication_style, {}
        ).get(mentor.communication_style, 0.5)

    def availability_alignment(
        self, newcomer: NewcomerProfile, mentor: MentorProfile
    ) -> float:
        mentor_tz = mentor.effective_timezone
        if mentor_tz is None:
            raise ScoringAnomaly("availability_alignment", "timezone")
        newcomer_tz = newcomer.logistics.availability.timezone
        if newcomer_tz == mentor_tz:
            return 1.0
        same_region = COARSE_REGIONS.get(newcomer_tz, "OTHER") == COARSE_REGIONS.get(
            mentor_tz, "OTHER"
        )
        return 0.8 if same_region else 0.4

    def explain(
        self,
        components: Dict[str, float],
        newcomer: NewcomerProfile,
        mentor: MentorProfile,
    ) -> str:
        sentences: List[str] = []
        archetype = components.get("archetype_alignment", 0.0)
        mentor_archetype: Optional[str] = (
            mentor.primary_archetype.value if mentor.primary_archetype else None
        )

        if archetype >= 0.8:
            sentences.append(
                f"Perfect archetype match - both {newcomer.archetype.value}s"
            )
        elif archetype >= 0.6 and mentor_archetype:
            sentences.append(
                "Good cross-archetype compatibility between "
                f"{newcomer.archetype.value} and {mentor_archetype}"
            )

        desired = newcomer.mentor_requirements.desired_expertise[:2]
        if components.get("interest_alignment", 0.0) >= 0.6 and desired:
            sentences.append(f"Strong overlap in areas like {', '.join(desired)}")

        if components.get("learning_style_alignment", 0.0) >= 0.8:
            sentences.append("Excellent communication style match")

        reputation = mentor.metrics.community_reputation
        if reputation is not None and reputation >= 9.0:
            sentences.append(
                f"Highly rated mentor with {mentor.metrics.successful_mentees or 0}+ "
                "successful mentorships"
            )

        if not sentences:
            return "Good overall compatibility based on your preferences."
        return ". ".join(sentences)

    def learning_path(self, newcomer: NewcomerProfile) -> str:
        return FALLBACK_LEARNING_PATHS.get(newcomer.archetype, {}).get(
            newcomer.knowledge_level, DEFAULT_LEARNING_PATH
        )


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result
