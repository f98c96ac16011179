"""
Contracts the inspector consumes from the chat platform.

PlatformGateway answers join requests and looks up users. MessageTransport
delivers text. Implementations raise TransportError (DeliveryError for sends)
on failure.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol, runtime_checkable


@runtime_checkable
class MessageTransport(Protocol):
    async def send_message(self, target_id: str, text: str) -> None:
        """Send ``text`` to a group conversation."""
        ...

    async def send_direct_message(self, user_id: str, text: str) -> None:
        """Send ``text`` to a user in private."""
        ...


@runtime_checkable
class PlatformGateway(Protocol):
    async def submit_decision(self, request_id: str, approve: bool, reason: str) -> None:
        """Approve or deny a pending join request on the platform."""
        ...

    def iter_members(self, group_id: str) -> AsyncIterator[str]:
        """Lazily yield the member IDs of a group; the sequence is finite."""
        ...

    async def get_reputation(self, user_id: str) -> float:
        """Return the user's reputation (level) as a number."""
        ...
