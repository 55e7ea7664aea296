import pytest

from mentormatch.profiles.models import MentorProfile
from mentormatch.query.fallback import DEFAULT_LEARNING_PATH, FallbackScorer


@pytest.fixture
def scorer():
    return FallbackScorer(min_score=0.3)


class TestScore:
    def test_developer_pair(self, scorer, developer_newcomer, developer_mentor):
        score = scorer.score(developer_newcomer, developer_mentor)

        assert score.components == pytest.approx(
            {
                "archetype_alignment": 1.0,
                "interest_alignment": 2 / 3,
                "learning_style_alignment": 1.0,
                "availability_alignment": 1.0,
            }
        )
        assert score.similarity_score == pytest.approx(0.9)
        assert score.archetype_alignment == 1.0
        assert score.explanation == (
            "Perfect archetype match - both developers. "
            "Strong overlap in areas like solidity, smart contracts. "
            "Excellent communication style match. "
            "Highly rated mentor with 18+ successful mentorships"
        )
        assert score.learning_path_suggestion == (
            "Master smart contract security, testing, and DeFi protocol development"
        )

    def test_cross_archetype(self, scorer, make_newcomer, developer_mentor):
        investor = make_newcomer(archetype="investor")

        score = scorer.score(investor, developer_mentor)

        assert score.archetype_alignment == pytest.approx(0.6)
        assert score.explanation.startswith(
            "Good cross-archetype compatibility between investor and developer"
        )

    @pytest.mark.parametrize(
        "mentor_tz,expected",
        [
            ("America/Los_Angeles", 1.0),
            ("America/New_York", 0.8),
            ("Europe/London", 0.4),
        ],
    )
    def test_coarse_regions(self, scorer, developer_newcomer, make_mentor, mentor_tz, expected):
        mentor = make_mentor(timezone=mentor_tz, availability={"timezone": mentor_tz})
        assert scorer.availability_alignment(developer_newcomer, mentor) == expected

    def test_unknown_level_gets_default_path(self, scorer, make_newcomer, developer_mentor):
        expert = make_newcomer(knowledge_level="expert")
        score = scorer.score(expert, developer_mentor)
        assert score.learning_path_suggestion == DEFAULT_LEARNING_PATH

    def test_malformed_mentor_degrades(self, scorer, developer_newcomer, developer_mentor):
        metadata = developer_mentor.to_metadata()
        del metadata["specializations"]
        mentor = MentorProfile.from_metadata("mentor_mentor-dev", metadata)

        score = scorer.score(developer_newcomer, mentor)

        assert score.components["interest_alignment"] == 0.0
        assert score.similarity_score == pytest.approx(0.7)


class TestRank:
    def test_excludes_mentors_without_capacity(self, scorer, developer_newcomer, seed_store):
        ranked = scorer.rank(developer_newcomer, seed_store.all())

        ids = [m.mentor.id for m in ranked]
        assert "nina-okafor" not in ids
        assert ids[0] == "marcus-rodriguez"
        scores = [m.score.similarity_score for m in ranked]
        assert scores == sorted(scores, reverse=True)
        assert all(s > 0.3 for s in scores)

    def test_unavailable_and_unknown_capacity_excluded(self, scorer, developer_newcomer, make_mentor):
        away = make_mentor(id="away", availability={"is_available": False})
        unknown = make_mentor(id="unknown", availability={"max_mentees": None})

        assert scorer.rank(developer_newcomer, [away, unknown]) == []

    def test_min_score_is_exclusive_floor(self, developer_newcomer, developer_mentor):
        assert FallbackScorer(min_score=0.95).rank(developer_newcomer, [developer_mentor]) == []
        assert len(FallbackScorer(min_score=0.5).rank(developer_newcomer, [developer_mentor])) == 1

    def test_caller_floor_applies_on_top(self, scorer, developer_newcomer, developer_mentor):
        assert scorer.rank(developer_newcomer, [developer_mentor], floor=0.95) == []
        kept = scorer.rank(developer_newcomer, [developer_mentor], floor=0.85)
        assert [m.mentor.id for m in kept] == [developer_mentor.id]

    def test_ties_broken_by_mentor_id(self, scorer, developer_newcomer, make_mentor):
        mentors = [make_mentor(id="b-mentor"), make_mentor(id="a-mentor")]

        ranked = scorer.rank(developer_newcomer, mentors)

        assert [m.mentor.id for m in ranked] == ["a-mentor", "b-mentor"]
