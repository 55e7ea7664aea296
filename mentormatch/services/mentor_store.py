"""
Read-only mentor reference store.

Holds the full mentor population in memory. The fallback matcher reads it
directly and the indexing job pushes it into the vector index. Seed files are
validated strictly on load; a malformed seed file fails at startup.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml

from mentormatch.profiles.models import Archetype, MentorProfile
from mentormatch.shared.config import Config
from mentormatch.shared.observability import get_logger

logger = get_logger(__name__)

DEFAULT_SEED_PATH = Path(__file__).parent.parent / "data" / "mentors.yaml"


class MentorReferenceStore:
    def __init__(self, mentors: Iterable[MentorProfile]):
        self._mentors: Dict[str, MentorProfile] = {}
        for mentor in mentors:
            if mentor.id in self._mentors:
                raise ValueError(f"Duplicate mentor id: {mentor.id}")
            self._mentors[mentor.id] = mentor

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "MentorReferenceStore":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Mentor seed file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        records = data.get("mentors", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ValueError(f"Mentor seed file {path} must contain a list of mentors")

        store = cls(MentorProfile.model_validate(record) for record in records)
        logger.info("Loaded mentor reference store", path=str(path), mentors=len(store))
        return store

    @classmethod
    def from_config(cls, config: Config) -> "MentorReferenceStore":
        return cls.from_yaml(config.mentors.seed_path or DEFAULT_SEED_PATH)

    def __len__(self) -> int:
        return len(self._mentors)

    def __contains__(self, mentor_id: object) -> bool:
        return mentor_id in self._mentors

    def get(self, mentor_id: str) -> Optional[MentorProfile]:
        return self._mentors.get(mentor_id)

    def all(self) -> List[MentorProfile]:
        return list(self._mentors.values())

    def available(self) -> List[MentorProfile]:
        """Mentors taking new mentees: available and below capacity."""
        return [
            mentor
            for mentor in self._mentors.values()
            if mentor.availability.is_available and mentor.availability.has_capacity
        ]

    def by_archetype(self, archetype: Archetype) -> List[MentorProfile]:
        return [m for m in self._mentors.values() if m.primary_archetype == archetype]
