# HTTP request and response models for the matching API

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from mentormatch.query.builder import SearchPreferences
from mentormatch.query.ranking import MatchResponse, MatchResult, SearchMethod


class MatchRequest(BaseModel):
    # Validated by the match service so errors come back as InvalidProfile
    profile: Dict[str, Any]
    preferences: Optional[SearchPreferences] = None


class MatchesResponse(BaseModel):
    success: bool = True
    matches: List[MatchResult] = Field(default_factory=list)
    total_count: int = 0
    search_time_ms: float = 0.0
    search_method: SearchMethod
    fallback_reason: Optional[str] = None

    @classmethod
    def from_match_response(cls, response: MatchResponse) -> "MatchesResponse":
        return cls(
            matches=response.results,
            total_count=response.total_count,
            search_time_ms=response.search_time_ms,
            search_method=response.search_method,
            fallback_reason=response.fallback_reason,
        )


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: List[Dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    embedding: Dict[str, Any] = Field(default_factory=dict)
    vector_backend: str
    mentor_count: int
