from .models import (
    Archetype,
    CommunicationStyle,
    CryptoExperience,
    KnowledgeLevel,
    MenteeLevel,
    MentorAvailability,
    MentorMetrics,
    MentorPricing,
    MentorProfile,
    NewcomerProfile,
    ResponseTime,
    RiskLevel,
    TeachingStyle,
    parse_newcomer_profile,
)

__all__ = [
    "Archetype",
    "CommunicationStyle",
    "CryptoExperience",
    "KnowledgeLevel",
    "MenteeLevel",
    "MentorAvailability",
    "MentorMetrics",
    "MentorPricing",
    "MentorProfile",
    "NewcomerProfile",
    "ResponseTime",
    "RiskLevel",
    "TeachingStyle",
    "parse_newcomer_profile",
]
