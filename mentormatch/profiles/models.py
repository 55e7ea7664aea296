"""
Newcomer and mentor profile models.

NewcomerProfile arrives from the onboarding interview and is validated
strictly: a profile that fails validation is rejected before any retrieval
runs. MentorProfile is reference data; when it is rebuilt from vector index
metadata every field is parsed leniently and anything missing or malformed
becomes ``None`` ("unknown"), which the scoring engine treats as a
per-component anomaly instead of a reason to drop the mentor.
"""

import math
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from mentormatch.shared.errors import InvalidProfile
from mentormatch.shared.observability import get_logger

logger = get_logger(__name__)

CONFIDENCE_SUM_TOLERANCE = 1e-6


class Archetype(str, Enum):
    INVESTOR = "investor"
    DEVELOPER = "developer"
    SOCIAL_USER = "social_user"


class KnowledgeLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class CryptoExperience(str, Enum):
    NONE = "none"
    EXPLORING = "exploring"
    ACTIVE = "active"
    EXPERIENCED = "experienced"


class MenteeLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CommunicationStyle(str, Enum):
    DIRECT = "direct"
    COLLABORATIVE = "collaborative"
    SUPPORTIVE = "supportive"
    CHALLENGING = "challenging"


class TeachingStyle(str, Enum):
    DIRECTIVE = "directive"
    SUPPORTIVE = "supportive"
    COACHING = "coaching"
    COLLABORATIVE = "collaborative"


class ResponseTime(str, Enum):
    IMMEDIATE = "immediate"
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"
    WEEKLY = "weekly"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TimeCommitment = Literal["low", "medium", "high"]
RateType = Literal["per_call", "per_minute", "per_hour"]


# ---------------------------------------------------------------------------
# Newcomer
# ---------------------------------------------------------------------------


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class ArchetypeClassification(_FrozenModel):
    primary_archetype: Archetype
    confidence_scores: Dict[Archetype, float] = Field(default_factory=dict)
    signals: List[str] = Field(default_factory=list)

    @field_validator("confidence_scores")
    @classmethod
    def _scores_in_range(cls, value: Dict[Archetype, float]):
        for archetype, score in value.items():
            if score < 0.0 or score > 1.0:
                raise ValueError(
                    f"confidence score for {archetype.value} must be in [0, 1], got {score}"
                )
        total = sum(value.values())
        if total > 1.0 + CONFIDENCE_SUM_TOLERANCE:
            raise ValueError(f"confidence scores must sum to at most 1, got {total}")
        return value

    def normalized(self) -> Dict[Archetype, float]:
        """Confidence scores rescaled to sum to 1 (primary gets 1.0 if all zero)."""
        total = sum(self.confidence_scores.values())
        if total <= 0:
            return {
                archetype: (1.0 if archetype == self.primary_archetype else 0.0)
                for archetype in Archetype
            }
        return {
            archetype: self.confidence_scores.get(archetype, 0.0) / total
            for archetype in Archetype
        }


class CryptoInterests(_FrozenModel):
    primary_goals: List[str] = Field(default_factory=list)
    specific_interests: List[str] = Field(default_factory=list)
    knowledge_level: KnowledgeLevel
    entry_motivation: List[str] = Field(default_factory=list)
    risk_tolerance: Optional[str] = None


class CurrentBackground(_FrozenModel):
    role: str = ""
    industry: str = ""
    technical_proficiency: str = ""
    previous_crypto_experience: CryptoExperience = CryptoExperience.NONE
    blockchain_familiarity: List[str] = Field(default_factory=list)


class LearningPreferences(_FrozenModel):
    learning_style: List[str] = Field(default_factory=list)
    communication_style: CommunicationStyle
    time_commitment: TimeCommitment = "medium"


class MentorRequirements(_FrozenModel):
    desired_expertise: List[str] = Field(default_factory=list)
    archetype_preference: str = "any"
    minimum_experience: str = "no_preference"
    specific_skills: List[str] = Field(default_factory=list)


class NewcomerAvailability(_FrozenModel):
    days: List[str] = Field(default_factory=list)
    times: List[str] = Field(default_factory=list)
    timezone: str = Field(min_length=1)


class Logistics(_FrozenModel):
    availability: NewcomerAvailability
    commitment_level: str = "moderate"


class NewcomerProfile(_FrozenModel):
    """The seeker: produced once per onboarding session, read-only afterwards."""

    id: str = Field(min_length=1)
    archetype_classification: ArchetypeClassification
    crypto_interests: CryptoInterests
    current_background: CurrentBackground = Field(default_factory=CurrentBackground)
    learning_preferences: LearningPreferences
    mentor_requirements: MentorRequirements = Field(
        default_factory=MentorRequirements
    )
    logistics: Logistics

    @property
    def archetype(self) -> Archetype:
        return self.archetype_classification.primary_archetype

    @property
    def knowledge_level(self) -> KnowledgeLevel:
        return self.crypto_interests.knowledge_level

    def normalized_confidence(self) -> Dict[Archetype, float]:
        return self.archetype_classification.normalized()


def parse_newcomer_profile(data: Any) -> NewcomerProfile:
    """Validate untrusted input into a NewcomerProfile or raise InvalidProfile."""
    if isinstance(data, NewcomerProfile):
        return data
    try:
        return NewcomerProfile.model_validate(data)
    except ValidationError as exc:
        errors = [
            {
                "loc": list(err.get("loc", ())),
                "msg": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        raise InvalidProfile(
            f"Invalid newcomer profile: {exc.error_count()} validation error(s)",
            errors=errors,
        ) from exc


# ---------------------------------------------------------------------------
# Mentor
# ---------------------------------------------------------------------------


class MentorAvailability(BaseModel):
    is_available: bool = False
    days: List[str] = Field(default_factory=list)
    times: List[str] = Field(default_factory=list)
    timezone: Optional[str] = None
    max_mentees: Optional[int] = Field(default=None, ge=0)
    current_mentees: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _capacity_invariant(self):
        if (
            self.is_available
            and self.max_mentees is not None
            and self.current_mentees is not None
            and self.current_mentees > self.max_mentees
        ):
            raise ValueError(
                "current_mentees cannot exceed max_mentees for an available mentor"
            )
        return self

    @property
    def has_capacity(self) -> Optional[bool]:
        if self.max_mentees is None or self.current_mentees is None:
            return None
        return self.current_mentees < self.max_mentees


class MentorMetrics(BaseModel):
    successful_mentees: Optional[int] = Field(default=None, ge=0)
    community_reputation: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    completion_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    response_time: Optional[ResponseTime] = None


class MentorPricing(BaseModel):
    is_paid: bool = False
    rate_type: Optional[RateType] = None
    rate_usd: Optional[float] = Field(default=None, ge=0.0)


class MentorProfile(BaseModel):
    """
    A mentor as seen by matching.

    Optional fields are "unknown" rather than "empty": ``specializations=None``
    means the record did not carry the field, ``[]`` means the mentor lists none.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    full_name: str = "Unknown mentor"
    bio: str = ""
    timezone: Optional[str] = None
    primary_archetype: Optional[Archetype] = None
    specializations: Optional[List[str]] = None
    years_in_crypto: Optional[float] = Field(default=None, ge=0.0)
    notable_achievements: List[str] = Field(default_factory=list)
    current_projects: List[str] = Field(default_factory=list)
    blockchain_expertise: List[str] = Field(default_factory=list)
    teaching_style: Optional[TeachingStyle] = None
    teaching_focus: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    communication_style: Optional[CommunicationStyle] = None
    preferred_mentee_level: Optional[List[MenteeLevel]] = None
    availability: MentorAvailability = Field(default_factory=MentorAvailability)
    metrics: MentorMetrics = Field(default_factory=MentorMetrics)
    pricing: Optional[MentorPricing] = None
    search_keywords: List[str] = Field(default_factory=list)

    @property
    def effective_timezone(self) -> Optional[str]:
        return self.availability.timezone or self.timezone

    def public_fields(self) -> Dict[str, Any]:
        """Fields safe to hand to the booking UI."""
        return self.model_dump(mode="json", exclude={"search_keywords"})

    def to_metadata(self) -> Dict[str, Any]:
        """Flat payload stored next to the mentor vector in the index."""
        specializations = self.specializations or []
        payload: Dict[str, Any] = {
            "mentor_id": self.id,
            "full_name": self.full_name,
            "bio": self.bio,
            "timezone": self.effective_timezone,
            "primary_archetype": _enum_value(self.primary_archetype),
            "specializations": list(specializations),
            "years_in_crypto": self.years_in_crypto,
            "notable_achievements": list(self.notable_achievements),
            "current_projects": list(self.current_projects),
            "blockchain_expertise": list(self.blockchain_expertise),
            "teaching_style": _enum_value(self.teaching_style),
            "teaching_focus": list(self.teaching_focus),
            "strengths": list(self.strengths),
            "communication_style": _enum_value(self.communication_style),
            "preferred_mentee_level": [
                level.value for level in (self.preferred_mentee_level or [])
            ],
            "is_available": self.availability.is_available,
            "available_days": list(self.availability.days),
            "available_times": list(self.availability.times),
            "max_mentees": self.availability.max_mentees,
            "current_mentees": self.availability.current_mentees,
            "successful_mentees": self.metrics.successful_mentees,
            "community_reputation": self.metrics.community_reputation,
            "completion_rate": self.metrics.completion_rate,
            "response_time": _enum_value(self.metrics.response_time),
            "search_keywords": list(self.search_keywords),
        }
        if self.pricing is not None:
            payload.update(
                {
                    "is_paid": self.pricing.is_paid,
                    "rate_type": self.pricing.rate_type,
                    "rate_usd": self.pricing.rate_usd,
                }
            )
        return payload

    @classmethod
    def from_metadata(
        cls, mentor_id: str, metadata: Optional[Mapping[str, Any]]
    ) -> "MentorProfile":
        """
        Rebuild a mentor from index metadata without ever failing.

        Missing or malformed values become ``None``; reputation is clamped to
        [0, 10] and completion rate to [0, 1].
        """
        meta: Mapping[str, Any] = metadata or {}
        resolved_id = _as_str(meta.get("mentor_id")) or str(mentor_id)

        is_available = _as_bool(meta.get("is_available"))
        max_mentees = _as_int(meta.get("max_mentees"))
        current_mentees = _as_int(meta.get("current_mentees"))
        if (
            is_available
            and max_mentees is not None
            and current_mentees is not None
            and current_mentees > max_mentees
        ):
            logger.warning(
                "Mentor metadata reports more mentees than capacity",
                mentor_id=resolved_id,
                current_mentees=current_mentees,
                max_mentees=max_mentees,
            )
            current_mentees = max_mentees

        pricing = None
        if "is_paid" in meta:
            rate_type = meta.get("rate_type")
            pricing = MentorPricing(
                is_paid=bool(_as_bool(meta.get("is_paid"))),
                rate_type=(
                    rate_type
                    if rate_type in ("per_call", "per_minute", "per_hour")
                    else None
                ),
                rate_usd=_as_float(meta.get("rate_usd"), low=0.0),
            )

        levels = _as_str_list(meta.get("preferred_mentee_level"))
        return cls(
            id=resolved_id,
            full_name=_as_str(meta.get("full_name")) or "Unknown mentor",
            bio=_as_str(meta.get("bio")) or "",
            timezone=_as_str(meta.get("timezone")),
            primary_archetype=_as_enum(Archetype, meta.get("primary_archetype")),
            specializations=_as_str_list(meta.get("specializations")),
            years_in_crypto=_as_float(meta.get("years_in_crypto"), low=0.0),
            notable_achievements=_as_str_list(meta.get("notable_achievements")) or [],
            current_projects=_as_str_list(meta.get("current_projects")) or [],
            blockchain_expertise=_as_str_list(meta.get("blockchain_expertise")) or [],
            teaching_style=_as_enum(TeachingStyle, meta.get("teaching_style")),
            teaching_focus=_as_str_list(meta.get("teaching_focus")) or [],
            strengths=_as_str_list(meta.get("strengths")) or [],
            communication_style=_as_enum(
                CommunicationStyle, meta.get("communication_style")
            ),
            preferred_mentee_level=(
                None
                if levels is None
                else [
                    level
                    for level in (_as_enum(MenteeLevel, raw) for raw in levels)
                    if level is not None
                ]
            ),
            availability=MentorAvailability(
                is_available=bool(is_available),
                days=_as_str_list(meta.get("available_days")) or [],
                times=_as_str_list(meta.get("available_times")) or [],
                timezone=_as_str(meta.get("timezone")),
                max_mentees=max_mentees,
                current_mentees=current_mentees,
            ),
            metrics=MentorMetrics(
                successful_mentees=_as_int(meta.get("successful_mentees")),
                community_reputation=_as_float(
                    meta.get("community_reputation"), low=0.0, high=10.0
                ),
                completion_rate=_as_float(
                    meta.get("completion_rate"), low=0.0, high=1.0
                ),
                response_time=_as_enum(ResponseTime, meta.get("response_time")),
            ),
            pricing=pricing,
            search_keywords=_as_str_list(meta.get("search_keywords")) or [],
        )


# ---------------------------------------------------------------------------
# Lenient coercion helpers for index metadata
# ---------------------------------------------------------------------------

E = TypeVar("E", bound=Enum)


def _enum_value(value: Optional[Enum]) -> Optional[str]:
    return value.value if value is not None else None


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no"}:
            return False
    return None


def _as_float(
    value: Any, low: Optional[float] = None, high: Optional[float] = None
) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    if low is not None:
        number = max(low, number)
    if high is not None:
        number = min(high, number)
    return number


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value, low=0.0)
    if number is None:
        return None
    return int(number)


def _as_str_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, (list, tuple)):
        return None
    return [item for item in value if isinstance(item, str)]


def _as_enum(enum_cls: Type[E], value: Any) -> Optional[E]:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return None
