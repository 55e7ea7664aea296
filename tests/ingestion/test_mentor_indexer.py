from unittest.mock import Mock

import pytest

from mentormatch.ingestion.mentor_indexer import MentorIndexer, vector_id_for
from mentormatch.profiles.models import MentorProfile
from mentormatch.query.vector_store import InMemoryVectorIndex


class CountingEmbedder:
    provider_name = "counting"
    model_id = "counting-v1"
    dims = 2

    def __init__(self):
        self.batches = []

    def embed_query(self, text):
        return [1.0, 0.0]

    def embed_documents(self, texts):
        self.batches.append(list(texts))
        return [[1.0, 0.0] for _ in texts]


@pytest.fixture
def index():
    return InMemoryVectorIndex()


def test_embedding_text(developer_mentor):
    text = MentorIndexer.build_embedding_text(developer_mentor)

    assert text.startswith("Smart contract engineer and auditor. Crypto developer mentor")
    assert "Specializes in: Solidity, smart contracts, security auditing" in text
    assert "7 years of crypto experience" in text
    assert "Community reputation: 9.5/10" in text
    assert "Works with: intermediate, advanced level mentees" in text
    assert "Available 3 days per week" in text
    assert text.endswith("Response time: same_day")


def test_embedding_text_skips_unknown_fields():
    mentor = MentorProfile.from_metadata("m", {"full_name": "X", "bio": "Builder"})

    text = MentorIndexer.build_embedding_text(mentor)

    assert text == "Builder"


def test_writes_archetype_and_all_namespaces(test_config, index, seed_store):
    indexer = MentorIndexer(CountingEmbedder(), index, test_config)

    report = indexer.index_mentors(seed_store.all())

    assert report.mentors == 8
    assert report.vectors == 16
    assert report.vectors_by_namespace == {
        "mentors-investor": 2,
        "mentors-developer": 3,
        "mentors-social-user": 3,
        "mentors-all": 8,
    }
    hit = index.query("mentors-developer", [1.0, 0.0], top_k=10)
    assert {h.id for h in hit} == {
        "mentor_marcus-rodriguez",
        "mentor_emily-zhang",
        "mentor_david-kim",
    }
    assert hit[0].metadata["mentor_id"] == hit[0].id[len("mentor_"):]


def test_batches_by_configured_size(test_config, index, seed_store):
    config = test_config.model_copy(
        update={"embedding": test_config.embedding.model_copy(update={"batch_size": 3})}
    )
    embedder = CountingEmbedder()

    MentorIndexer(embedder, index, config).index_mentors(seed_store.all())

    assert [len(batch) for batch in embedder.batches] == [3, 3, 2]


def test_reindexing_overwrites(test_config, index, seed_store):
    indexer = MentorIndexer(CountingEmbedder(), index, test_config)

    indexer.index_mentors(seed_store.all())
    indexer.index_mentors(seed_store.all())

    assert index.count("mentors-all") == 8


def test_mentor_without_archetype_goes_to_all_only(test_config, index):
    mentor = MentorProfile(id="drifter", full_name="Drifter")

    assert MentorIndexer(CountingEmbedder(), index, test_config).namespaces_for(mentor) == [
        "mentors-all"
    ]


def test_empty_input(test_config, index):
    embedder = CountingEmbedder()

    report = MentorIndexer(embedder, index, test_config).index_mentors([])

    assert report.mentors == 0
    assert embedder.batches == []


def test_delete_mentor_from_every_namespace(test_config):
    index = Mock()

    MentorIndexer(CountingEmbedder(), index, test_config).delete_mentor("marcus-rodriguez")

    namespaces = [c.args[0] for c in index.delete.call_args_list]
    assert namespaces == [
        "mentors-investor",
        "mentors-developer",
        "mentors-social-user",
        "mentors-all",
    ]
    assert all(c.args[1] == [vector_id_for("marcus-rodriguez")] for c in index.delete.call_args_list)


def test_provider_errors_propagate(test_config, index, developer_mentor):
    embedder = Mock()
    embedder.provider_name = "broken"
    embedder.embed_documents.side_effect = RuntimeError("Embedding API error (401): bad key")

    with pytest.raises(RuntimeError):
        MentorIndexer(embedder, index, test_config).index_mentors([developer_mentor])
    assert index.is_empty()
