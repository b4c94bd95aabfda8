"""
Review Session Service - Accept/reject cycle for a proposed code change

A review cycle moves Idle -> DiffComputed -> Rendered -> Accepted|Rejected
-> Closed. Closing before a decision counts as a reject. Nothing leaves
Closed, and each cycle resolves exactly once.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any, Callable

from pydantic import TypeAdapter

from dsxpert.log import get_logger
from dsxpert.models.diff import DiffSegment
from dsxpert.models.review import (
    AcceptMessage,
    ReviewDecision,
    ReviewMessage,
    ReviewOutcome,
    ReviewState,
    ReviewSummary,
)
from dsxpert.services.diff_renderer import compute_diff, render

logger = get_logger("dsxpert.review")

_message_adapter = TypeAdapter(ReviewMessage)

_DECIDED = (ReviewState.ACCEPTED, ReviewState.REJECTED, ReviewState.CLOSED)

DEFAULT_REVIEW_TTL = 300


class ReviewStateError(Exception):
    """Raised on an operation the cycle's current state does not allow"""


class ReviewNotFoundError(KeyError):
    """Raised when no live review cycle has the given id"""


def parse_review_message(payload: dict[str, Any]) -> ReviewMessage:
    """Validate a raw surface message into one of the two accepted shapes"""
    return _message_adapter.validate_python(payload)


class ReviewCycle:
    """One proposed change awaiting a single reviewer decision"""

    def __init__(
        self,
        original: str,
        modified: str,
        language: str = "unknown",
        explanation: str = "",
        file_path: str = "selection",
        review_id: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.review_id = review_id or uuid.uuid4().hex
        self.original = original
        self.modified = modified
        self.language = language
        self.explanation = explanation
        self.file_path = file_path
        self.state = ReviewState.IDLE
        self._segments: list[DiffSegment] | None = None
        self._outcome: ReviewOutcome | None = None
        self._resolved = asyncio.Event()
        self._clock = clock
        self.opened_at = clock()
        self.closed_at: float | None = None

    @property
    def segments(self) -> list[DiffSegment]:
        if self._segments is None:
            raise ReviewStateError(f"Review {self.review_id} has no diff ({self.state.value})")
        return self._segments

    @property
    def outcome(self) -> ReviewOutcome | None:
        return self._outcome

    @property
    def is_changed(self) -> bool:
        return self.original != self.modified

    def compute(self) -> list[DiffSegment]:
        if self.state != ReviewState.IDLE:
            raise ReviewStateError(f"Cannot compute diff in state {self.state.value}")
        self._segments = compute_diff(self.original, self.modified)
        self.state = ReviewState.DIFF_COMPUTED
        return self._segments

    def render(self) -> str:
        """Highlighted diff markup; rendering again yields the same markup"""
        if self.state not in (ReviewState.DIFF_COMPUTED, ReviewState.RENDERED):
            raise ReviewStateError(f"Cannot render in state {self.state.value}")
        html = render(self._segments)
        self.state = ReviewState.RENDERED
        return html

    def handle_message(self, message: ReviewMessage | dict[str, Any]) -> ReviewOutcome:
        """Apply the reviewer's accept/reject message and close the cycle"""
        if isinstance(message, dict):
            message = parse_review_message(message)

        if self.state in _DECIDED:
            raise ReviewStateError(f"Review {self.review_id} is already {self.state.value}")
        if self.state != ReviewState.RENDERED:
            raise ReviewStateError(f"Review {self.review_id} has not been shown yet ({self.state.value})")

        if isinstance(message, AcceptMessage):
            # The displayed text wins over the proposal: the reviewer may have edited it
            outcome = ReviewOutcome(
                review_id=self.review_id,
                decision=ReviewDecision.ACCEPT,
                replacement=message.code,
            )
            self.state = ReviewState.ACCEPTED
        else:
            outcome = ReviewOutcome(review_id=self.review_id, decision=ReviewDecision.REJECT)
            self.state = ReviewState.REJECTED

        self._outcome = outcome
        logger.info(f"Review {self.review_id}: {outcome.decision.value}")
        self.close()
        return outcome

    def close(self) -> ReviewOutcome:
        """Dispose the surface; an undecided cycle is rejected"""
        if self.state == ReviewState.CLOSED:
            return self._outcome

        if self._outcome is None:
            self._outcome = ReviewOutcome(review_id=self.review_id, decision=ReviewDecision.REJECT)
            logger.info(f"Review {self.review_id}: closed without decision, treated as reject")

        self._segments = None
        self.state = ReviewState.CLOSED
        self.closed_at = self._clock()
        self._resolved.set()
        return self._outcome

    async def wait(self, timeout: float | None = None) -> ReviewOutcome:
        """Wait for the decision; raises asyncio.TimeoutError if none arrives in time"""
        await asyncio.wait_for(self._resolved.wait(), timeout)
        return self._outcome

    def summary(self) -> ReviewSummary:
        return ReviewSummary(
            review_id=self.review_id,
            state=self.state,
            language=self.language,
            segments=self._segments or [],
        )


class ReviewSessionManager:
    """Live review cycles, keyed by id.

    Cycles are pruned lazily: an undecided cycle older than `ttl` seconds is
    closed (an implicit reject), and a closed cycle whose outcome nobody
    collected within another `ttl` seconds is dropped.
    """

    def __init__(self, ttl: float = DEFAULT_REVIEW_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._cycles: dict[str, ReviewCycle] = {}

    def __len__(self) -> int:
        return len(self._cycles)

    def open(
        self,
        original: str,
        modified: str,
        language: str = "unknown",
        explanation: str = "",
        file_path: str = "selection",
    ) -> ReviewCycle:
        """Create a cycle, compute its diff and render it for display"""
        self.prune()
        cycle = ReviewCycle(original, modified, language, explanation, file_path, clock=self._clock)
        cycle.compute()
        cycle.render()
        self._cycles[cycle.review_id] = cycle
        logger.info(f"Review {cycle.review_id} opened ({len(cycle.segments)} segments)")
        return cycle

    def get(self, review_id: str) -> ReviewCycle:
        try:
            return self._cycles[review_id]
        except KeyError:
            raise ReviewNotFoundError(review_id) from None

    def dispatch(self, review_id: str, message: ReviewMessage | dict[str, Any]) -> ReviewOutcome:
        return self.get(review_id).handle_message(message)

    def close(self, review_id: str) -> ReviewOutcome:
        return self.get(review_id).close()

    async def wait_for_outcome(self, review_id: str, timeout: float | None = None) -> ReviewOutcome:
        """Wait for a cycle's decision, then forget the cycle"""
        cycle = self.get(review_id)
        outcome = await cycle.wait(timeout)
        self._cycles.pop(review_id, None)
        return outcome

    def prune(self) -> int:
        """Expire stale undecided cycles and drop uncollected closed ones"""
        now = self._clock()
        dropped = 0
        for review_id, cycle in list(self._cycles.items()):
            if cycle.closed_at is None:
                if now - cycle.opened_at >= self.ttl:
                    logger.info(f"Review {review_id} expired undecided")
                    cycle.close()
            elif now - cycle.closed_at >= self.ttl:
                del self._cycles[review_id]
                dropped += 1
        if dropped:
            logger.debug(f"Dropped {dropped} uncollected review(s)")
        return dropped

    def close_all(self) -> None:
        for cycle in self._cycles.values():
            cycle.close()
        self._cycles.clear()
