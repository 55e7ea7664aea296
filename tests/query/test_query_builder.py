import pytest
from pydantic import ValidationError

from mentormatch.profiles.models import CommunicationStyle, MenteeLevel
from mentormatch.query.builder import (
    ExperienceRange,
    SearchPreferences,
    build_metadata_filter,
    build_query_text,
    compatible_communication_styles,
    infer_mentee_level,
)
from mentormatch.query.filters import And, Contains, Eq, Gte, In, Lte, Or


def _clause(predicate: And, kind, field=None):
    for clause in predicate.clauses:
        if isinstance(clause, kind) and (field is None or getattr(clause, "field", None) == field):
            return clause
    return None


class TestQueryText:
    def test_parts_in_fixed_order(self, make_newcomer):
        profile = make_newcomer()

        text = build_query_text(profile)

        assert text == (
            "build dapps solidity smart contracts career change hands_on "
            "solidity smart contracts backend engineer fintech "
            "developer crypto mentoring intermediate level "
            "advanced technical background"
        )

    def test_empty_parts_are_dropped(self, make_newcomer):
        profile = make_newcomer(
            primary_goals=[],
            specific_interests=[],
            learning_style=[],
            desired_expertise=[],
            technical_proficiency="",
        )

        text = build_query_text(profile)

        assert "  " not in text
        assert "technical background" not in text
        assert text.endswith("developer crypto mentoring intermediate level")

    def test_deterministic(self, make_newcomer):
        assert build_query_text(make_newcomer()) == build_query_text(make_newcomer())


class TestMenteeLevelInference:
    @pytest.mark.parametrize(
        "knowledge,experience,expected",
        [
            ("expert", "none", MenteeLevel.ADVANCED),
            ("beginner", "experienced", MenteeLevel.ADVANCED),
            ("advanced", "none", MenteeLevel.INTERMEDIATE),
            ("beginner", "active", MenteeLevel.INTERMEDIATE),
            ("intermediate", "exploring", MenteeLevel.BEGINNER),
            ("beginner", "none", MenteeLevel.BEGINNER),
        ],
    )
    def test_first_matching_rule_wins(self, make_newcomer, knowledge, experience, expected):
        profile = make_newcomer(knowledge_level=knowledge, previous_experience=experience)
        assert infer_mentee_level(profile) == expected


class TestCommunicationCompatibility:
    def test_table(self):
        assert compatible_communication_styles(CommunicationStyle.DIRECT) == [
            CommunicationStyle.DIRECT,
            CommunicationStyle.CHALLENGING,
        ]
        assert compatible_communication_styles(CommunicationStyle.SUPPORTIVE) == [
            CommunicationStyle.SUPPORTIVE,
            CommunicationStyle.COLLABORATIVE,
        ]
        assert CommunicationStyle.COLLABORATIVE in compatible_communication_styles(
            CommunicationStyle.CHALLENGING
        )


class TestMetadataFilter:
    def test_default_filter(self, make_newcomer):
        predicate = build_metadata_filter(make_newcomer())

        assert _clause(predicate, Eq, "is_available") == Eq("is_available", True)
        assert _clause(predicate, In, "communication_style").values == (
            "collaborative",
            "supportive",
            "direct",
        )
        assert _clause(predicate, In, "preferred_mentee_level").values == ("intermediate",)
        specializations = _clause(predicate, Or)
        assert specializations.clauses == (
            Contains("specializations", "solidity"),
            Contains("specializations", "smart contracts"),
        )
        assert _clause(predicate, Gte) is None
        assert _clause(predicate, In, "response_time") is None

    def test_availability_opt_out(self, make_newcomer):
        predicate = build_metadata_filter(
            make_newcomer(), SearchPreferences(availability_required=False)
        )
        assert _clause(predicate, Eq, "is_available") is None

    def test_caller_preferences(self, make_newcomer):
        preferences = SearchPreferences(
            experience_range={"min": 3, "max": 10},
            response_time_preference=["immediate", "same_day"],
            preferred_archetypes=["developer"],
        )

        predicate = build_metadata_filter(make_newcomer(), preferences)

        assert _clause(predicate, Gte, "years_in_crypto") == Gte("years_in_crypto", 3)
        assert _clause(predicate, Lte, "years_in_crypto") == Lte("years_in_crypto", 10)
        assert _clause(predicate, In, "response_time").values == ("immediate", "same_day")
        assert _clause(predicate, In, "primary_archetype").values == ("developer",)

    def test_no_desired_expertise_no_specialization_clause(self, make_newcomer):
        predicate = build_metadata_filter(make_newcomer(desired_expertise=[" "]))
        assert _clause(predicate, Or) is None

    def test_filter_matches_seed_mentor(self, make_newcomer, seed_store):
        predicate = build_metadata_filter(make_newcomer())
        marcus = seed_store.get("marcus-rodriguez")
        sarah = seed_store.get("sarah-williams")

        assert predicate.matches(marcus.to_metadata())
        # trading specializations, no overlap with solidity or smart contracts
        assert not predicate.matches(sarah.to_metadata())


def test_experience_range_must_be_ordered():
    with pytest.raises(ValidationError):
        ExperienceRange(min=10, max=3)


def test_preferences_validate_bounds():
    with pytest.raises(ValidationError):
        SearchPreferences(min_score=1.5)
    with pytest.raises(ValidationError):
        SearchPreferences(max_results=0)
