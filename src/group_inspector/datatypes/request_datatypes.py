"""
Join request records and filter decisions.

This module defines the immutable values that flow through the pipeline:
the JoinRequest received from the platform, the InboundMessage a reviewer
sends, and the Decision the filter chain produces.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True, slots=True)
class JoinRequest:
    """An applicant's petition to join a managed group.

    Attributes:
        request_id: Opaque platform token used to answer the request.
        applicant_id: ID of the user asking to join.
        group_id: ID of the group being joined.
        comment: Free-text comment the applicant submitted.
        submitted_at: When the platform received the request.
    """
    request_id: str
    applicant_id: str
    group_id: str
    comment: str
    submitted_at: datetime

    @property
    def pair(self) -> tuple[str, str]:
        """The (applicant, group) pair a pending approval is keyed by."""
        return (self.applicant_id, self.group_id)


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """A text message seen by the bot; origin_group_id is None for private chats."""
    text: str
    sender_id: str
    origin_group_id: str | None = None


class DecisionKind(Enum):
    """Outcome class of a filter chain evaluation."""

    DENY = "deny"
    ACCEPT = "accept"
    UNDECIDED = "undecided"

    def __str__(self) -> str:
        return self.value


class ReasonCode(Enum):
    """Why a request was denied automatically."""

    GLOBAL_PATTERN = "global-pattern"
    DUPLICATE_REQUEST = "duplicate-request"
    REJOIN = "rejoin"
    LOW_REPUTATION = "low-reputation"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Decision:
    """Result of FilterChain.evaluate; reason is set only for DENY."""
    kind: DecisionKind
    reason: ReasonCode | None = None

    @classmethod
    def deny(cls, reason: ReasonCode) -> "Decision":
        return cls(DecisionKind.DENY, reason)

    @classmethod
    def accept(cls) -> "Decision":
        return cls(DecisionKind.ACCEPT)

    @classmethod
    def undecided(cls) -> "Decision":
        return cls(DecisionKind.UNDECIDED)

    @property
    def is_deny(self) -> bool:
        return self.kind is DecisionKind.DENY

    @property
    def is_accept(self) -> bool:
        return self.kind is DecisionKind.ACCEPT

    def __str__(self) -> str:
        return f"{self.kind}({self.reason})" if self.reason else str(self.kind)
