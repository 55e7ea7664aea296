"""
Six-factor explainable scoring for retrieved mentor candidates.

overall = min(0.6 * vector_similarity + 0.4 * sum(weight_i * component_i), 1.0)

Components read mentor data that may be "unknown" (None) when the index
record was malformed. A component that needs an unknown value raises
ScoringAnomaly; the engine scores that component 0, counts it, and keeps
scoring the rest. A bad record therefore degrades a candidate, never drops it.
"""

from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Sequence

from mentormatch.profiles.models import (
    Archetype,
    CommunicationStyle,
    CryptoExperience,
    KnowledgeLevel,
    MenteeLevel,
    MentorProfile,
    NewcomerProfile,
    ResponseTime,
    RiskLevel,
    TeachingStyle,
)
from mentormatch.shared.errors import ScoringAnomaly
from mentormatch.shared.observability import get_logger
from mentormatch.shared.observability.metrics import scoring_anomalies_total

from .builder import infer_mentee_level

logger = get_logger(__name__)

COMPONENT_WEIGHTS: Dict[str, float] = {
    "archetype_alignment": 0.25,
    "knowledge_gap_appropriateness": 0.20,
    "learning_style_compatibility": 0.15,
    "crypto_community_overlap": 0.15,
    "availability_match": 0.10,
    "reputation_factor": 0.15,
}

SIMILARITY_WEIGHT = 0.6
COMPONENT_BLEND_WEIGHT = 0.4

ARCHETYPE_SYNERGY = {
    Archetype.INVESTOR: {Archetype.DEVELOPER: 0.8, Archetype.SOCIAL_USER: 0.6},
    Archetype.DEVELOPER: {Archetype.INVESTOR: 0.7, Archetype.SOCIAL_USER: 0.9},
    Archetype.SOCIAL_USER: {Archetype.INVESTOR: 0.5, Archetype.DEVELOPER: 0.8},
}
DEFAULT_SYNERGY = 0.3

CROSS_ARCHETYPE_INDICATORS = {
    Archetype.INVESTOR: ("trading", "defi", "yield", "portfolio", "analysis"),
    Archetype.DEVELOPER: ("smart contracts", "solidity", "dapp", "protocol", "security"),
    Archetype.SOCIAL_USER: ("dao", "community", "governance", "nft", "social"),
}
CROSS_ARCHETYPE_BONUS = 0.1
CROSS_ARCHETYPE_BONUS_CAP = 0.3

# (min, max) years in crypto appropriate for each newcomer knowledge level
EXPERIENCE_BANDS = {
    KnowledgeLevel.BEGINNER: (2.0, 10.0),
    KnowledgeLevel.INTERMEDIATE: (3.0, 15.0),
    KnowledgeLevel.ADVANCED: (5.0, 20.0),
    KnowledgeLevel.EXPERT: (8.0, 25.0),
}

PREVIOUS_EXPERIENCE_LEVEL = {
    CryptoExperience.NONE: MenteeLevel.BEGINNER,
    CryptoExperience.EXPLORING: MenteeLevel.BEGINNER,
    CryptoExperience.ACTIVE: MenteeLevel.INTERMEDIATE,
    CryptoExperience.EXPERIENCED: MenteeLevel.ADVANCED,
}
EXPERIENCE_BONUS = 0.2

_S = CommunicationStyle
STYLE_COMPATIBILITY = {
    _S.DIRECT: {_S.DIRECT: 1.0, _S.CHALLENGING: 0.9, _S.COLLABORATIVE: 0.6, _S.SUPPORTIVE: 0.4},
    _S.COLLABORATIVE: {_S.COLLABORATIVE: 1.0, _S.SUPPORTIVE: 0.9, _S.DIRECT: 0.7, _S.CHALLENGING: 0.5},
    _S.SUPPORTIVE: {_S.SUPPORTIVE: 1.0, _S.COLLABORATIVE: 0.8, _S.DIRECT: 0.4, _S.CHALLENGING: 0.3},
    _S.CHALLENGING: {_S.CHALLENGING: 1.0, _S.DIRECT: 0.8, _S.COLLABORATIVE: 0.6, _S.SUPPORTIVE: 0.3},
}
DEFAULT_STYLE_SCORE = 0.5
LEARNING_BONUS = 0.1
LEARNING_BONUS_CAP = 0.2

TIMEZONE_REGIONS = {
    "America/New_York": "US_East",
    "America/Chicago": "US_Central",
    "America/Los_Angeles": "US_West",
    "Europe/London": "Europe",
    "Asia/Singapore": "Asia",
    "Asia/Seoul": "Asia",
}
CROSS_REGION_COMPATIBILITY = {
    "US_East": {"Europe": 0.6, "US_Central": 0.9, "US_West": 0.7},
    "US_West": {"Asia": 0.6, "US_Central": 0.9, "US_East": 0.7},
    "Europe": {"US_East": 0.6, "Asia": 0.4},
    "Asia": {"US_West": 0.6, "Europe": 0.4},
}
DEFAULT_REGION_SCORE = 0.3

_R = ResponseTime
RESPONSE_TIME_PREFERENCES = {
    "low": (_R.NEXT_DAY, _R.WEEKLY),
    "medium": (_R.SAME_DAY, _R.NEXT_DAY),
    "high": (_R.IMMEDIATE, _R.SAME_DAY),
}

# Placeholders: {name}, {first} (first specialization), {first_two}, {experience}
LEARNING_PATH_TEMPLATES = {
    Archetype.INVESTOR: {
        KnowledgeLevel.BEGINNER: (
            "Start with crypto market fundamentals and basic DeFi concepts, "
            "then explore {first_two} with {name}"
        ),
        KnowledgeLevel.INTERMEDIATE: (
            "Focus on advanced portfolio strategies, risk management, "
            "and dive deep into {first} expertise with {name}"
        ),
        KnowledgeLevel.ADVANCED: (
            "Master institutional-grade strategies, protocol analysis, "
            "and leverage {name}'s {experience}market experience"
        ),
    },
    Archetype.DEVELOPER: {
        KnowledgeLevel.BEGINNER: (
            "Build foundation with blockchain basics and Solidity, "
            "then progress to {first_two} development with {name}"
        ),
        KnowledgeLevel.INTERMEDIATE: (
            "Advanced smart contract patterns, security best practices, "
            "and hands-on {first} implementation with {name}"
        ),
        KnowledgeLevel.ADVANCED: (
            "Protocol architecture, gas optimization, "
            "and cutting-edge development in {first} with {name}"
        ),
    },
    Archetype.SOCIAL_USER: {
        KnowledgeLevel.BEGINNER: (
            "Understand crypto culture and community dynamics, "
            "then explore {first_two} strategies with {name}"
        ),
        KnowledgeLevel.INTERMEDIATE: (
            "Master governance mechanisms, tokenomics design, "
            "and leverage {name}'s community expertise"
        ),
        KnowledgeLevel.ADVANCED: (
            "Lead ecosystem building, design social token economies, "
            "and develop {first} leadership skills with {name}"
        ),
    },
}


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def set_overlap(a: Sequence[str], b: Sequence[str]) -> float:
    """|a ∩ b| / max(|a|, |b|) over lowercased sets; 0 when either is empty."""
    left = {item.lower() for item in a if item}
    right = {item.lower() for item in b if item}
    if not left or not right:
        return 0.0
    return len(left & right) / max(len(left), len(right))


def timezone_region(tz: str) -> str:
    return TIMEZONE_REGIONS.get(tz, "Other")


def timezone_compatibility(tz1: str, tz2: str) -> float:
    if tz1 == tz2:
        return 1.0
    region1 = timezone_region(tz1)
    region2 = timezone_region(tz2)
    if region1 == region2:
        return 0.8
    return CROSS_REGION_COMPATIBILITY.get(region1, {}).get(region2, DEFAULT_REGION_SCORE)


@dataclass
class ComponentScores:
    archetype_alignment: float = 0.0
    knowledge_gap_appropriateness: float = 0.0
    learning_style_compatibility: float = 0.0
    crypto_community_overlap: float = 0.0
    availability_match: float = 0.0
    reputation_factor: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def weighted_sum(self) -> float:
        values = self.as_dict()
        return sum(values[name] * weight for name, weight in COMPONENT_WEIGHTS.items())

    def mean(self) -> float:
        values = list(self.as_dict().values())
        return sum(values) / len(values)


@dataclass
class MatchScore:
    overall_score: float
    component_scores: ComponentScores
    explanation: str
    learning_path_suggestion: str
    risk_assessment: RiskLevel
    confidence_level: float
    anomalies: List[str] = field(default_factory=list)


class ScoringEngine:
    """Pure function of (newcomer, mentor, similarity); safe to share across threads."""

    def score(
        self,
        newcomer: NewcomerProfile,
        mentor: MentorProfile,
        raw_similarity: float,
    ) -> MatchScore:
        similarity = clamp(raw_similarity)
        components = ComponentScores()
        anomalies: List[str] = []

        calculators: Dict[str, Callable[[NewcomerProfile, MentorProfile], float]] = {
            "archetype_alignment": self.archetype_alignment,
            "knowledge_gap_appropriateness": self.knowledge_gap_appropriateness,
            "learning_style_compatibility": self.learning_style_compatibility,
            "crypto_community_overlap": self.crypto_community_overlap,
            "availability_match": self.availability_match,
            "reputation_factor": self.reputation_factor,
        }
        for name, calculate in calculators.items():
            try:
                value = clamp(calculate(newcomer, mentor))
            except ScoringAnomaly as exc:
                scoring_anomalies_total.labels(component=name).inc()
                logger.warning(
                    "Scoring anomaly",
                    mentor_id=mentor.id,
                    component=name,
                    field=exc.field,
                )
                anomalies.append(name)
                value = 0.0
            setattr(components, name, value)

        overall = clamp(
            SIMILARITY_WEIGHT * similarity
            + COMPONENT_BLEND_WEIGHT * components.weighted_sum()
        )

        return MatchScore(
            overall_score=overall,
            component_scores=components,
            explanation=self.explain(components, newcomer, mentor),
            learning_path_suggestion=self.learning_path(newcomer, mentor),
            risk_assessment=self.assess_risk(mentor, overall),
            confidence_level=clamp((components.mean() + similarity) / 2, 0.1, 0.95),
            anomalies=anomalies,
        )

    # ----- components -----

    def archetype_alignment(self, newcomer: NewcomerProfile, mentor: MentorProfile) -> float:
        if mentor.primary_archetype is None:
            raise ScoringAnomaly("archetype_alignment", "primary_archetype")
        if newcomer.archetype == mentor.primary_archetype:
            return 1.0

        synergy = ARCHETYPE_SYNERGY.get(newcomer.archetype, {}).get(
            mentor.primary_archetype, DEFAULT_SYNERGY
        )
        return min(synergy + self._cross_archetype_bonus(newcomer, mentor), 1.0)

    def _cross_archetype_bonus(self, newcomer: NewcomerProfile, mentor: MentorProfile) -> float:
        specializations = [s.lower() for s in (mentor.specializations or [])]
        interests = [s.lower() for s in newcomer.crypto_interests.specific_interests]

        bonus = 0.0
        for archetype, indicators in CROSS_ARCHETYPE_INDICATORS.items():
            if archetype == newcomer.archetype:
                continue
            if any(
                any(indicator in spec for spec in specializations)
                and any(indicator in interest for interest in interests)
                for indicator in indicators
            ):
                bonus += CROSS_ARCHETYPE_BONUS
        return min(bonus, CROSS_ARCHETYPE_BONUS_CAP)

    def knowledge_gap_appropriateness(
        self, newcomer: NewcomerProfile, mentor: MentorProfile
    ) -> float:
        preferred = mentor.preferred_mentee_level or []
        if infer_mentee_level(newcomer) in preferred:
            return 1.0

        if mentor.years_in_crypto is None:
            raise ScoringAnomaly("knowledge_gap_appropriateness", "years_in_crypto")

        years = mentor.years_in_crypto
        band = EXPERIENCE_BANDS.get(newcomer.knowledge_level)
        if band is None:
            gap = 0.5
        else:
            low, high = band
            if low <= years <= high:
                gap = 1.0
            elif years < low:
                gap = max(0.3, years / low)
            else:
                gap = max(0.7, high / years)

        mapped = PREVIOUS_EXPERIENCE_LEVEL.get(
            newcomer.current_background.previous_crypto_experience
        )
        bonus = EXPERIENCE_BONUS if mapped in preferred else 0.0
        return min(gap + bonus, 1.0)

    def learning_style_compatibility(
        self, newcomer: NewcomerProfile, mentor: MentorProfile
    ) -> float:
        if mentor.communication_style is None:
            raise ScoringAnomaly("learning_style_compatibility", "communication_style")

        base = STYLE_COMPATIBILITY.get(
            newcomer.learning_preferences.communication_style, {}
        ).get(mentor.communication_style, DEFAULT_STYLE_SCORE)

        styles = set(newcomer.learning_preferences.learning_style)
        bonus = 0.0
        if "hands_on" in styles and mentor.primary_archetype == Archetype.DEVELOPER:
            bonus += LEARNING_BONUS
        if "structured" in styles and mentor.teaching_style == TeachingStyle.DIRECTIVE:
            bonus += LEARNING_BONUS
        if "collaborative" in styles and mentor.primary_archetype == Archetype.SOCIAL_USER:
            bonus += LEARNING_BONUS
        return min(base + min(bonus, LEARNING_BONUS_CAP), 1.0)

    def crypto_community_overlap(
        self, newcomer: NewcomerProfile, mentor: MentorProfile
    ) -> float:
        if mentor.specializations is None:
            raise ScoringAnomaly("crypto_community_overlap", "specializations")
        if mentor.metrics.community_reputation is None:
            raise ScoringAnomaly("crypto_community_overlap", "community_reputation")

        chain_overlap = set_overlap(
            newcomer.current_background.blockchain_familiarity,
            mentor.blockchain_expertise,
        )
        interest_overlap = set_overlap(
            newcomer.crypto_interests.specific_interests, mentor.specializations
        )
        community = min(mentor.metrics.community_reputation / 10.0, 1.0)
        return 0.3 * chain_overlap + 0.5 * interest_overlap + 0.2 * community

    def availability_match(self, newcomer: NewcomerProfile, mentor: MentorProfile) -> float:
        mentor_tz = mentor.effective_timezone
        if mentor_tz is None:
            raise ScoringAnomaly("availability_match", "timezone")
        has_capacity = mentor.availability.has_capacity
        if has_capacity is None:
            raise ScoringAnomaly("availability_match", "max_mentees")
        if mentor.metrics.response_time is None:
            raise ScoringAnomaly("availability_match", "response_time")

        availability = newcomer.logistics.availability
        tz_score = timezone_compatibility(availability.timezone, mentor_tz)
        day_overlap = set_overlap(availability.days, mentor.availability.days)
        capacity = 1.0 if has_capacity else 0.0

        acceptable = RESPONSE_TIME_PREFERENCES.get(
            newcomer.learning_preferences.time_commitment, (ResponseTime.SAME_DAY,)
        )
        response = 1.0 if mentor.metrics.response_time in acceptable else 0.5

        return 0.3 * tz_score + 0.3 * day_overlap + 0.2 * capacity + 0.2 * response

    def reputation_factor(self, newcomer: NewcomerProfile, mentor: MentorProfile) -> float:
        metrics = mentor.metrics
        if metrics.community_reputation is None:
            raise ScoringAnomaly("reputation_factor", "community_reputation")
        if metrics.successful_mentees is None:
            raise ScoringAnomaly("reputation_factor", "successful_mentees")
        if metrics.completion_rate is None:
            raise ScoringAnomaly("reputation_factor", "completion_rate")

        return (
            0.4 * (metrics.community_reputation / 10.0)
            + 0.3 * min(metrics.successful_mentees / 50.0, 1.0)
            + 0.3 * metrics.completion_rate
        )

    # ----- narrative -----

    def explain(
        self,
        components: ComponentScores,
        newcomer: NewcomerProfile,
        mentor: MentorProfile,
    ) -> str:
        sentences: List[str] = []

        if components.archetype_alignment >= 0.8 and mentor.primary_archetype is not None:
            sentences.append(
                f"Excellent {newcomer.archetype.value}-{mentor.primary_archetype.value} "
                "archetype synergy"
            )
        if components.knowledge_gap_appropriateness >= 0.8:
            sentences.append(
                f"Perfect experience level match for {newcomer.knowledge_level.value} learners"
            )
        if components.crypto_community_overlap >= 0.7:
            sentences.append(
                "Strong alignment in crypto interests and blockchain ecosystems"
            )
        if components.reputation_factor >= 0.8:
            metrics = mentor.metrics
            sentences.append(
                "Highly trusted mentor with proven track record "
                f"({metrics.community_reputation:g}/10 rating, "
                f"{metrics.successful_mentees} successful mentees)"
            )

        if not sentences:
            sentences.append(
                "Good overall compatibility in the crypto mentorship context"
            )
        return ". ".join(sentences)

    def learning_path(self, newcomer: NewcomerProfile, mentor: MentorProfile) -> str:
        specs = mentor.specializations or []
        name = mentor.full_name
        if not specs:
            return f"Collaborate with {name} to create a personalized learning journey"

        first = specs[0]
        template = LEARNING_PATH_TEMPLATES.get(newcomer.archetype, {}).get(
            newcomer.knowledge_level
        )
        if template is None:
            return f"Collaborate with {name} to create a personalized learning journey in {first}"

        years = mentor.years_in_crypto
        return template.format(
            name=name,
            first=first,
            first_two=" and ".join(specs[:2]),
            experience=f"{years:g} years of " if years is not None else "",
        )

    def assess_risk(self, mentor: MentorProfile, overall_score: float) -> RiskLevel:
        points = 0
        metrics = mentor.metrics
        if metrics.community_reputation is not None and metrics.community_reputation < 7:
            points += 2
        if metrics.completion_rate is not None and metrics.completion_rate < 0.7:
            points += 2
        if overall_score < 0.5:
            points += 1
        if mentor.years_in_crypto is not None and mentor.years_in_crypto < 3:
            points += 1
        current = mentor.availability.current_mentees
        maximum = mentor.availability.max_mentees
        if current is not None and maximum is not None and current >= 0.9 * maximum:
            points += 1

        if points >= 3:
            return RiskLevel.HIGH
        if points >= 1:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW
