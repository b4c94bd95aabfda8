"""Review cycle data models"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from .diff import DiffSegment


class ReviewDecision(str, Enum):
    """Reviewer verdict on a proposed change"""

    ACCEPT = "accept"
    REJECT = "reject"


class ReviewState(str, Enum):
    """Lifecycle of a single review cycle"""

    IDLE = "idle"
    DIFF_COMPUTED = "diff_computed"
    RENDERED = "rendered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CLOSED = "closed"


class AcceptMessage(BaseModel):
    """Sent by the review surface when the reviewer accepts"""

    command: Literal["accept"]
    code: str  # Text currently displayed, including manual edits


class RejectMessage(BaseModel):
    """Sent by the review surface when the reviewer rejects"""

    command: Literal["reject"]


# The only two inbound shapes the review surface may send
ReviewMessage = Annotated[Union[AcceptMessage, RejectMessage], Field(discriminator="command")]


class ReviewOutcome(BaseModel):
    """Result of a finished review cycle"""

    review_id: str
    decision: ReviewDecision
    replacement: str | None = None  # Only set on accept


class ReviewSummary(BaseModel):
    """Current status of a review cycle"""

    review_id: str
    state: ReviewState
    language: str
    segments: list[DiffSegment] = []
