from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class Outcome(BaseModel):
    status_code: int = 0
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None
    observed_at: float


class RequestRecord(BaseModel):
    """One outbound relay attempt and what came back from it."""

    id: str
    content: str
    destination: str
    display_name: Optional[str] = None
    avatar_ref: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: float
    expires_at: float
    outcome: Optional[Outcome] = None


# Fields an update may touch; everything else is fixed at creation.
MUTABLE_FIELDS = frozenset({"status", "outcome"})
