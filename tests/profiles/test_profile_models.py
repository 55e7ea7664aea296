import math

import pytest

from mentormatch.profiles.models import (
    Archetype,
    CommunicationStyle,
    MenteeLevel,
    MentorProfile,
    ResponseTime,
    parse_newcomer_profile,
)
from mentormatch.shared.errors import InvalidProfile


class TestNewcomerValidation:
    def test_valid_profile_parses(self, newcomer_payload):
        profile = parse_newcomer_profile(newcomer_payload())

        assert profile.archetype == Archetype.DEVELOPER
        assert profile.learning_preferences.communication_style == CommunicationStyle.COLLABORATIVE
        assert profile.logistics.availability.timezone == "America/Los_Angeles"

    def test_missing_required_section_is_invalid(self, newcomer_payload):
        data = newcomer_payload()
        del data["crypto_interests"]

        with pytest.raises(InvalidProfile) as excinfo:
            parse_newcomer_profile(data)

        locs = [error["loc"] for error in excinfo.value.errors]
        assert ["crypto_interests"] in locs

    def test_unknown_archetype_is_invalid(self, newcomer_payload):
        data = newcomer_payload()
        data["archetype_classification"]["primary_archetype"] = "whale"

        with pytest.raises(InvalidProfile):
            parse_newcomer_profile(data)

    def test_confidence_scores_must_not_exceed_one_in_total(self, newcomer_payload):
        data = newcomer_payload()
        data["archetype_classification"]["confidence_scores"] = {
            "developer": 0.7,
            "investor": 0.6,
        }

        with pytest.raises(InvalidProfile):
            parse_newcomer_profile(data)

    def test_empty_timezone_is_invalid(self, newcomer_payload):
        with pytest.raises(InvalidProfile):
            parse_newcomer_profile(newcomer_payload(timezone=""))

    def test_optional_sections_default(self, newcomer_payload):
        data = newcomer_payload()
        del data["current_background"]
        del data["mentor_requirements"]

        profile = parse_newcomer_profile(data)

        assert profile.current_background.previous_crypto_experience.value == "none"
        assert profile.mentor_requirements.desired_expertise == []

    def test_normalized_confidence_sums_to_one(self, newcomer_payload):
        profile = parse_newcomer_profile(newcomer_payload())

        normalized = profile.normalized_confidence()

        assert math.isclose(sum(normalized.values()), 1.0)
        assert normalized[Archetype.DEVELOPER] == pytest.approx(1.0)


class TestMentorAvailability:
    def test_over_capacity_available_mentor_rejected(self, make_mentor):
        with pytest.raises(ValueError):
            make_mentor(availability={"max_mentees": 2, "current_mentees": 3})

    def test_has_capacity(self, make_mentor):
        assert make_mentor().availability.has_capacity is True
        full = make_mentor(availability={"max_mentees": 4, "current_mentees": 4})
        assert full.availability.has_capacity is False

    def test_unknown_capacity(self, make_mentor):
        mentor = make_mentor(availability={"max_mentees": None})
        assert mentor.availability.has_capacity is None


class TestMentorMetadataRoundTrip:
    def test_metadata_rebuilds_scoring_fields(self, developer_mentor):
        rebuilt = MentorProfile.from_metadata(
            "mentor_mentor-dev", developer_mentor.to_metadata()
        )

        assert rebuilt.id == "mentor-dev"
        assert rebuilt.primary_archetype == Archetype.DEVELOPER
        assert rebuilt.specializations == developer_mentor.specializations
        assert rebuilt.preferred_mentee_level == [
            MenteeLevel.INTERMEDIATE,
            MenteeLevel.ADVANCED,
        ]
        assert rebuilt.metrics.response_time == ResponseTime.SAME_DAY
        assert rebuilt.availability.has_capacity is True

    def test_public_fields_hide_search_keywords(self, make_mentor):
        mentor = make_mentor(search_keywords=["solidity"])
        assert "search_keywords" not in mentor.public_fields()


class TestLenientMetadata:
    def test_missing_fields_become_unknown(self):
        mentor = MentorProfile.from_metadata("mentor_x", {"full_name": "X"})

        assert mentor.id == "mentor_x"
        assert mentor.specializations is None
        assert mentor.primary_archetype is None
        assert mentor.communication_style is None
        assert mentor.metrics.community_reputation is None
        assert mentor.availability.is_available is False

    def test_none_metadata(self):
        mentor = MentorProfile.from_metadata("mentor_y", None)
        assert mentor.full_name == "Unknown mentor"

    def test_out_of_range_metrics_are_clamped(self):
        mentor = MentorProfile.from_metadata(
            "m",
            {"community_reputation": 14, "completion_rate": -0.5, "years_in_crypto": "7"},
        )

        assert mentor.metrics.community_reputation == 10.0
        assert mentor.metrics.completion_rate == 0.0
        assert mentor.years_in_crypto == 7.0

    def test_malformed_values_become_unknown(self):
        mentor = MentorProfile.from_metadata(
            "m",
            {
                "primary_archetype": "wizard",
                "specializations": "Solidity",
                "community_reputation": "n/a",
                "response_time": 3,
                "preferred_mentee_level": ["beginner", "guru"],
                "successful_mentees": "1e400",
                "max_mentees": float("inf"),
                "years_in_crypto": float("nan"),
            },
        )

        assert mentor.primary_archetype is None
        assert mentor.specializations is None
        assert mentor.metrics.community_reputation is None
        assert mentor.metrics.response_time is None
        assert mentor.preferred_mentee_level == [MenteeLevel.BEGINNER]
        assert mentor.metrics.successful_mentees is None
        assert mentor.availability.max_mentees is None
        assert mentor.years_in_crypto is None

    def test_current_mentees_clamped_to_capacity(self):
        mentor = MentorProfile.from_metadata(
            "m", {"is_available": True, "max_mentees": 3, "current_mentees": 5}
        )

        assert mentor.availability.current_mentees == 3
        assert mentor.availability.has_capacity is False
