"""
Error taxonomy for mentor matching.

Only InvalidProfile ever reaches a caller. Everything else is recovered inside
the matching pipeline: a failed strategy contributes no candidates, a failed
embedding or an empty retrieval sends the request to the in-memory fallback,
and a scoring anomaly zeroes one component of one candidate.
"""

from typing import Any, Dict, List, Optional


class MentorMatchError(Exception):
    """Base class for matching errors."""


class InvalidProfile(MentorMatchError):
    """The newcomer profile is missing required fields or has invalid values."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class EmbeddingFailure(MentorMatchError):
    """The query text could not be embedded; the vector path cannot run."""


class VectorIndexUnavailable(MentorMatchError):
    """The vector index circuit is open; calls are rejected without being sent."""


class ScoringAnomaly(MentorMatchError):
    """Mentor data needed by one scoring component is missing or malformed."""

    def __init__(self, component: str, field: str):
        super().__init__(f"{component}: mentor field {field!r} is unknown")
        self.component = component
        self.field = field
