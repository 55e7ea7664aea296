"""
Query builder: newcomer profile -> query text + metadata predicate.

The query text feeds the embedding provider; the predicate is the base filter
every retrieval strategy narrows further.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from mentormatch.profiles.models import (
    Archetype,
    CommunicationStyle,
    CryptoExperience,
    KnowledgeLevel,
    MenteeLevel,
    NewcomerProfile,
    ResponseTime,
)

from .filters import And, Contains, Eq, Gte, Lte, Or, Predicate, in_, terms_overlap

__all__ = [
    "COMMUNICATION_COMPATIBILITY",
    "ExperienceRange",
    "SearchPreferences",
    "build_metadata_filter",
    "build_query_text",
    "compatible_communication_styles",
    "infer_mentee_level",
    "terms_overlap",
]

# Mentor communication styles acceptable for a newcomer's preferred style
COMMUNICATION_COMPATIBILITY = {
    CommunicationStyle.DIRECT: (
        CommunicationStyle.DIRECT,
        CommunicationStyle.CHALLENGING,
    ),
    CommunicationStyle.COLLABORATIVE: (
        CommunicationStyle.COLLABORATIVE,
        CommunicationStyle.SUPPORTIVE,
        CommunicationStyle.DIRECT,
    ),
    CommunicationStyle.SUPPORTIVE: (
        CommunicationStyle.SUPPORTIVE,
        CommunicationStyle.COLLABORATIVE,
    ),
    CommunicationStyle.CHALLENGING: (
        CommunicationStyle.CHALLENGING,
        CommunicationStyle.DIRECT,
        CommunicationStyle.COLLABORATIVE,
    ),
}


class ExperienceRange(BaseModel):
    min: Optional[float] = Field(default=None, ge=0.0)
    max: Optional[float] = Field(default=None, ge=0.0)

    @model_validator(mode="after")
    def _ordered(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("experience_range.min must not exceed experience_range.max")
        return self


class SearchPreferences(BaseModel):
    """Caller-supplied knobs; ``None`` means "use the configured default"."""

    max_results: Optional[int] = Field(default=None, gt=0)
    min_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    preferred_archetypes: List[Archetype] = Field(default_factory=list)
    experience_range: Optional[ExperienceRange] = None
    availability_required: bool = True
    response_time_preference: List[ResponseTime] = Field(default_factory=list)


def _join(values: List[str]) -> str:
    return " ".join(v.strip() for v in values if v and v.strip())


def build_query_text(profile: NewcomerProfile) -> str:
    interests = profile.crypto_interests
    background = profile.current_background

    parts = [
        _join(interests.primary_goals),
        _join(interests.specific_interests),
        _join(interests.entry_motivation),
        _join(profile.learning_preferences.learning_style),
        _join(profile.mentor_requirements.desired_expertise),
        _join([background.role, background.industry]),
        f"{profile.archetype.value} crypto mentoring",
        f"{interests.knowledge_level.value} level",
    ]
    if background.technical_proficiency.strip():
        parts.append(f"{background.technical_proficiency.strip()} technical background")

    return " ".join(part for part in parts if part)


def infer_mentee_level(profile: NewcomerProfile) -> MenteeLevel:
    knowledge = profile.crypto_interests.knowledge_level
    experience = profile.current_background.previous_crypto_experience

    if knowledge == KnowledgeLevel.EXPERT or experience == CryptoExperience.EXPERIENCED:
        return MenteeLevel.ADVANCED
    if knowledge == KnowledgeLevel.ADVANCED or experience == CryptoExperience.ACTIVE:
        return MenteeLevel.INTERMEDIATE
    return MenteeLevel.BEGINNER


def compatible_communication_styles(
    style: CommunicationStyle,
) -> List[CommunicationStyle]:
    return list(COMMUNICATION_COMPATIBILITY.get(style, (style,)))


def build_metadata_filter(
    profile: NewcomerProfile, preferences: Optional[SearchPreferences] = None
) -> And:
    preferences = preferences or SearchPreferences()
    clauses: List[Predicate] = []

    if preferences.availability_required:
        clauses.append(Eq("is_available", True))

    if preferences.experience_range is not None:
        if preferences.experience_range.min is not None:
            clauses.append(Gte("years_in_crypto", preferences.experience_range.min))
        if preferences.experience_range.max is not None:
            clauses.append(Lte("years_in_crypto", preferences.experience_range.max))

    if preferences.response_time_preference:
        clauses.append(
            in_(
                "response_time",
                (rt.value for rt in preferences.response_time_preference),
            )
        )

    if preferences.preferred_archetypes:
        clauses.append(
            in_(
                "primary_archetype",
                (a.value for a in preferences.preferred_archetypes),
            )
        )

    desired = [
        term.strip()
        for term in profile.mentor_requirements.desired_expertise
        if term and term.strip()
    ]
    if desired:
        clauses.append(
            Or(tuple(Contains("specializations", term) for term in desired))
        )

    styles = compatible_communication_styles(
        profile.learning_preferences.communication_style
    )
    clauses.append(in_("communication_style", (s.value for s in styles)))

    clauses.append(
        in_("preferred_mentee_level", [infer_mentee_level(profile).value])
    )

    return And(tuple(clauses))
