from __future__ import annotations

import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from sportsfeed.schemas.records import NormalizedRecord

Provenance = Literal["live", "cached", "synthetic"]


class Snapshot(BaseModel):
    feed_id: str
    records: list[NormalizedRecord] = Field(default_factory=list)
    captured_at: datetime.datetime
    provenance: Provenance
    source_endpoint: Optional[str] = None
    last_error_message: Optional[str] = None


class AcquisitionUnavailable(BaseModel):
    """Returned instead of a Snapshot when no data path is left at all."""

    feed_id: str
    reason: str
