"""
Mentor indexing job.

Turns mentor reference records into embedding text, embeds them in batches
and writes one vector per mentor into its archetype namespace and into the
shared "all" namespace. Re-running the job overwrites the same vector ids.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from mentormatch.profiles.models import MentorProfile
from mentormatch.providers.embeddings.base import EmbeddingProvider
from mentormatch.query.vector_store import VectorIndex, VectorPoint
from mentormatch.shared.config import Config
from mentormatch.shared.observability import get_logger
from mentormatch.shared.observability.metrics import mentors_indexed_total

logger = get_logger(__name__)


def vector_id_for(mentor_id: str) -> str:
    return f"mentor_{mentor_id}"


@dataclass
class IndexReport:
    mentors: int = 0
    vectors_by_namespace: Dict[str, int] = field(default_factory=dict)
    duration_ms: float = 0.0

    @property
    def vectors(self) -> int:
        return sum(self.vectors_by_namespace.values())


class MentorIndexer:
    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_index: VectorIndex,
        config: Config,
    ):
        self.embedding_provider = embedding_provider
        self.vector_index = vector_index
        self.config = config

    @staticmethod
    def build_embedding_text(mentor: MentorProfile) -> str:
        """Searchable text for a mentor; unknown fields are left out."""
        parts: List[str] = [mentor.bio.strip().rstrip(".")]

        if mentor.primary_archetype is not None:
            parts.append(f"Crypto {mentor.primary_archetype.value} mentor")
        if mentor.specializations:
            parts.append(f"Specializes in: {', '.join(mentor.specializations)}")
        if mentor.years_in_crypto is not None:
            parts.append(f"{mentor.years_in_crypto:g} years of crypto experience")
        if mentor.notable_achievements:
            parts.append(f"Achievements: {', '.join(mentor.notable_achievements)}")
        if mentor.current_projects:
            parts.append(f"Current projects: {', '.join(mentor.current_projects)}")
        if mentor.blockchain_expertise:
            parts.append(
                f"Blockchain expertise: {', '.join(mentor.blockchain_expertise)}"
            )
        if mentor.teaching_style is not None:
            parts.append(f"Teaching style: {mentor.teaching_style.value}")
        if mentor.communication_style is not None:
            parts.append(f"Communication: {mentor.communication_style.value}")
        if mentor.teaching_focus:
            parts.append(f"Teaches: {', '.join(mentor.teaching_focus)}")
        if mentor.strengths:
            parts.append(f"Strengths: {', '.join(mentor.strengths)}")
        if mentor.preferred_mentee_level:
            levels = ", ".join(level.value for level in mentor.preferred_mentee_level)
            parts.append(f"Works with: {levels} level mentees")

        metrics = mentor.metrics
        if metrics.community_reputation is not None:
            parts.append(f"Community reputation: {metrics.community_reputation:g}/10")
        if metrics.successful_mentees is not None:
            parts.append(f"Successfully mentored {metrics.successful_mentees} people")
        if mentor.availability.days:
            parts.append(f"Available {len(mentor.availability.days)} days per week")
        if mentor.effective_timezone:
            parts.append(f"Timezone: {mentor.effective_timezone}")
        if metrics.response_time is not None:
            parts.append(f"Response time: {metrics.response_time.value}")

        return ". ".join(part for part in parts if part)

    def namespaces_for(self, mentor: MentorProfile) -> List[str]:
        namespaces = self.config.vector_index.namespaces
        targets: List[str] = []
        if mentor.primary_archetype is not None:
            targets.append(namespaces.for_archetype(mentor.primary_archetype.value))
        targets.append(namespaces.all)
        return targets

    def index_mentors(self, mentors: Sequence[MentorProfile]) -> IndexReport:
        """
        Embed and upsert mentors.

        Raises whatever the embedding provider or vector index raises; a
        partially written batch is repaired by running the job again.
        """
        start = time.time()
        report = IndexReport()
        if not mentors:
            return report

        batch_size = self.config.embedding.batch_size
        logger.info(
            "Indexing mentors",
            mentors=len(mentors),
            batch_size=batch_size,
            provider=self.embedding_provider.provider_name,
        )

        for offset in range(0, len(mentors), batch_size):
            batch = list(mentors[offset : offset + batch_size])
            texts = [self.build_embedding_text(mentor) for mentor in batch]
            vectors = self.embedding_provider.embed_documents(texts)

            by_namespace: Dict[str, List[VectorPoint]] = {}
            for mentor, vector in zip(batch, vectors):
                point = VectorPoint(
                    id=vector_id_for(mentor.id),
                    vector=vector,
                    metadata=mentor.to_metadata(),
                )
                for namespace in self.namespaces_for(mentor):
                    by_namespace.setdefault(namespace, []).append(point)

            for namespace, points in by_namespace.items():
                written = self.vector_index.upsert(namespace, points)
                mentors_indexed_total.labels(namespace=namespace).inc(written)
                report.vectors_by_namespace[namespace] = (
                    report.vectors_by_namespace.get(namespace, 0) + written
                )

            report.mentors += len(batch)
            logger.debug("Indexed mentor batch", offset=offset, size=len(batch))

        report.duration_ms = round((time.time() - start) * 1000, 2)
        logger.info(
            "Mentor indexing completed",
            mentors=report.mentors,
            vectors=report.vectors,
            duration_ms=report.duration_ms,
        )
        return report

    def delete_mentor(self, mentor_id: str) -> None:
        """Remove a mentor's vector from every namespace."""
        namespaces = self.config.vector_index.namespaces
        vector_id = vector_id_for(mentor_id)
        targets = [
            namespaces.investor,
            namespaces.developer,
            namespaces.social_user,
            namespaces.all,
        ]
        for namespace in targets:
            self.vector_index.delete(namespace, [vector_id])
        logger.info("Deleted mentor from index", mentor_id=mentor_id)
