"""Job, solution and feedback dataclasses exchanged with the pool."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class Job:
    """One unit of work: find n with sha1(base + str(n)) == target."""

    base: str
    target: bytes
    difficulty: int


@dataclass(frozen=True)
class Solution:
    """A nonce that satisfied a job, with the time the search took."""

    nonce: int
    elapsed_us: int

    @property
    def hashrate(self) -> float:
        """Nonces tried per second (elapsed clamped to 1us)."""
        return 1_000_000 * self.nonce / max(self.elapsed_us, 1)


class FeedbackKind(Enum):
    """Pool verdicts on a submitted share."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NEW_BLOCK = "new_block"
    OTHER = "other"


@dataclass(frozen=True)
class Accepted:
    kind = FeedbackKind.ACCEPTED


@dataclass(frozen=True)
class Rejected:
    reason: str
    kind = FeedbackKind.REJECTED


@dataclass(frozen=True)
class NewBlock:
    kind = FeedbackKind.NEW_BLOCK


@dataclass(frozen=True)
class Other:
    raw: str
    kind = FeedbackKind.OTHER


Feedback = Union[Accepted, Rejected, NewBlock, Other]


class PoolReplies:
    """Literal feedback tokens sent by the pool."""

    GOOD = "GOOD"
    BAD_PREFIX = "BAD,"
    BLOCK = "BLOCK"
