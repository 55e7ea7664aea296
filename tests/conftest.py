# Shared fixtures: profiles, mentors and a network-free configuration

import copy
import os
from typing import Any, Dict, List, Optional

import pytest

os.environ["ENV"] = "test"

from mentormatch.profiles.models import MentorProfile, parse_newcomer_profile  # noqa: E402
from mentormatch.services.mentor_store import (  # noqa: E402
    DEFAULT_SEED_PATH,
    MentorReferenceStore,
)
from mentormatch.shared.config import Config  # noqa: E402


def newcomer_data(
    *,
    profile_id: str = "newcomer-1",
    archetype: str = "developer",
    knowledge_level: str = "intermediate",
    previous_experience: str = "active",
    communication_style: str = "collaborative",
    learning_style: Optional[List[str]] = None,
    primary_goals: Optional[List[str]] = None,
    specific_interests: Optional[List[str]] = None,
    desired_expertise: Optional[List[str]] = None,
    blockchain_familiarity: Optional[List[str]] = None,
    timezone: str = "America/Los_Angeles",
    days: Optional[List[str]] = None,
    time_commitment: str = "medium",
    technical_proficiency: str = "advanced",
) -> Dict[str, Any]:
    return {
        "id": profile_id,
        "archetype_classification": {
            "primary_archetype": archetype,
            "confidence_scores": {archetype: 0.8},
            "signals": ["writes code daily"],
        },
        "crypto_interests": {
            "primary_goals": (
                primary_goals if primary_goals is not None else ["build dapps"]
            ),
            "specific_interests": (
                specific_interests
                if specific_interests is not None
                else ["solidity", "smart contracts"]
            ),
            "knowledge_level": knowledge_level,
            "entry_motivation": ["career change"],
        },
        "current_background": {
            "role": "backend engineer",
            "industry": "fintech",
            "technical_proficiency": technical_proficiency,
            "previous_crypto_experience": previous_experience,
            "blockchain_familiarity": (
                blockchain_familiarity
                if blockchain_familiarity is not None
                else ["Ethereum"]
            ),
        },
        "learning_preferences": {
            "learning_style": (
                learning_style if learning_style is not None else ["hands_on"]
            ),
            "communication_style": communication_style,
            "time_commitment": time_commitment,
        },
        "mentor_requirements": {
            "desired_expertise": (
                desired_expertise
                if desired_expertise is not None
                else ["solidity", "smart contracts"]
            ),
            "archetype_preference": "any",
        },
        "logistics": {
            "availability": {
                "days": days if days is not None else ["monday", "wednesday"],
                "times": ["evening"],
                "timezone": timezone,
            },
            "commitment_level": "moderate",
        },
    }


def mentor_data(**overrides: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": "mentor-dev",
        "full_name": "Dana Dev",
        "timezone": "America/Los_Angeles",
        "bio": "Smart contract engineer and auditor.",
        "primary_archetype": "developer",
        "specializations": ["Solidity", "smart contracts", "security auditing"],
        "years_in_crypto": 7,
        "blockchain_expertise": ["Ethereum", "Base", "Optimism", "zkSync"],
        "teaching_style": "collaborative",
        "communication_style": "collaborative",
        "preferred_mentee_level": ["intermediate", "advanced"],
        "availability": {
            "is_available": True,
            "days": ["monday", "wednesday", "friday"],
            "times": ["evening"],
            "timezone": "America/Los_Angeles",
            "max_mentees": 4,
            "current_mentees": 3,
        },
        "metrics": {
            "successful_mentees": 18,
            "community_reputation": 9.5,
            "response_time": "same_day",
            "completion_rate": 0.95,
        },
    }
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(data.get(key), dict):
            merged = copy.deepcopy(data[key])
            merged.update(value)
            data[key] = merged
        else:
            data[key] = value
    return data


@pytest.fixture
def make_newcomer():
    def _make(**kwargs):
        return parse_newcomer_profile(newcomer_data(**kwargs))

    return _make


@pytest.fixture
def make_mentor():
    def _make(**overrides):
        return MentorProfile.model_validate(mentor_data(**overrides))

    return _make


@pytest.fixture
def developer_newcomer(make_newcomer):
    return make_newcomer()


@pytest.fixture
def developer_mentor(make_mentor):
    return make_mentor()


@pytest.fixture(scope="session")
def seed_store() -> MentorReferenceStore:
    return MentorReferenceStore.from_yaml(DEFAULT_SEED_PATH)


@pytest.fixture
def test_config() -> Config:
    return Config(
        embedding={"provider": "hashing", "dims": 64},
        vector_index={"backend": "memory"},
        matching={"strategy_timeout_seconds": 2.0},
    )


@pytest.fixture
def newcomer_payload():
    """Raw profile dicts, for callers that validate themselves (API, CLI)."""
    return newcomer_data
