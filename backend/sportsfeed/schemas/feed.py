from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

FeedKind = Literal["player_prop", "game", "pick", "fantasy_team", "analytics"]


class EndpointCandidate(BaseModel):
    path: str
    priority: int
    display_name: str = ""
    timeout_seconds: Optional[float] = None


class FeedDescriptor(BaseModel):
    feed_id: str
    kind: FeedKind
    base_parameters: dict[str, str] = Field(default_factory=dict)
    candidates: list[EndpointCandidate] = Field(default_factory=list)
    fallback_count: Optional[int] = None

    @model_validator(mode="after")
    def _unique_priorities(self) -> "FeedDescriptor":
        seen: set[int] = set()
        for candidate in self.candidates:
            if candidate.priority in seen:
                raise ValueError(
                    f"duplicate candidate priority {candidate.priority} in feed {self.feed_id}"
                )
            seen.add(candidate.priority)
        return self


class FetchAttemptResult(BaseModel):
    candidate: EndpointCandidate
    succeeded: bool
    http_status: Optional[int] = None
    error: Optional[str] = None
    elapsed_ms: int = 0
