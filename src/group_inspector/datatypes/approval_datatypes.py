"""
Pending approval bookkeeping types and notify target addressing.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from group_inspector.datatypes.request_datatypes import JoinRequest
from group_inspector.errors import ConfigError

if TYPE_CHECKING:
    from group_inspector.approval.listeners import ListenerHandle


class ApprovalState(Enum):
    """Lifecycle of a PendingApproval; every state but PENDING is terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    SUPERSEDED = "superseded"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class TimeoutAction(Enum):
    """Fallback applied when a pending approval times out."""

    ACCEPT = "accept"
    REJECT = "reject"

    @property
    def approve(self) -> bool:
        return self is TimeoutAction.ACCEPT


class TargetKind(Enum):
    GUILD = "guild"
    PRIVATE = "private"


@dataclass(frozen=True, slots=True)
class NotifyTarget:
    """Where reviewer notices go, written ``"<kind>:<id>"`` in configuration."""
    kind: TargetKind
    target_id: str

    @classmethod
    def parse(cls, raw: str) -> "NotifyTarget":
        """Parse ``guild:<id>`` or ``private:<id>``.

        Raises:
            ConfigError: If the string is not of that shape.
        """
        if not isinstance(raw, str) or ":" not in raw:
            raise ConfigError(f"Malformed notify target {raw!r}, expected '<kind>:<id>'")
        kind, _, target_id = raw.strip().partition(":")
        target_id = target_id.strip()
        try:
            target_kind = TargetKind(kind.strip().lower())
        except ValueError:
            raise ConfigError(f"Unknown notify target kind {kind!r} in {raw!r}") from None
        if not target_id:
            raise ConfigError(f"Notify target {raw!r} has no id")
        return cls(target_kind, target_id)

    def addresses(self, sender_id: str, origin_group_id: str | None) -> bool:
        """Return True if a message from this sender/origin comes from the target conversation."""
        if self.kind is TargetKind.GUILD:
            return origin_group_id == self.target_id
        return origin_group_id is None and sender_id == self.target_id

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.target_id}"


@dataclass(eq=False)
class PendingApproval:
    """
    One escalated request awaiting a reviewer's command.

    Owned by ApprovalStateMachine; released exactly once through its teardown,
    whichever of command, bulk command, timeout or supersede gets there first.
    """
    sequence: int
    request: JoinRequest
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    listener: ListenerHandle | None = None
    timeout_task: asyncio.Task[None] | None = None
    state: ApprovalState = ApprovalState.PENDING
    released: bool = False

    @property
    def is_pending(self) -> bool:
        return self.state is ApprovalState.PENDING
