"""
Target-scoped command listeners.

Every inbound message is parsed once by the hub and fanned out to the handlers
subscribed for the conversation it came from. Subscriptions are released
through ListenerHandle.dispose(), which is idempotent.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List

from group_inspector.approval.command_parser import Command, parse_command
from group_inspector.datatypes.approval_datatypes import NotifyTarget
from group_inspector.datatypes.request_datatypes import InboundMessage
from group_inspector.util.logger import get_logger

logger = get_logger("command_listeners")

CommandHandler = Callable[[Command, InboundMessage], Awaitable[None]]


class ListenerHandle:
    """A live subscription; ``dispose()`` detaches it once, later calls are no-ops."""

    __slots__ = ("_hub", "_key", "target", "handler", "disposed")

    def __init__(self, hub: "CommandListenerHub", key: int, target: NotifyTarget, handler: CommandHandler) -> None:
        self._hub = hub
        self._key = key
        self.target = target
        self.handler = handler
        self.disposed = False

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self._hub._remove(self._key)


class CommandListenerHub:
    def __init__(self) -> None:
        self._listeners: Dict[int, ListenerHandle] = {}
        self._next_key = 0

    def subscribe(self, target: NotifyTarget, handler: CommandHandler) -> ListenerHandle:
        self._next_key += 1
        handle = ListenerHandle(self, self._next_key, target, handler)
        self._listeners[self._next_key] = handle
        return handle

    def _remove(self, key: int) -> None:
        self._listeners.pop(key, None)

    def __len__(self) -> int:
        return len(self._listeners)

    async def dispatch(self, message: InboundMessage) -> int:
        """Parse ``message`` and run every listener bound to its conversation.

        Returns the number of handlers invoked. Handlers disposed by an earlier
        handler of the same message are skipped.
        """
        command = parse_command(message.text)
        if command is None:
            return 0

        handlers: List[ListenerHandle] = [
            handle for handle in self._listeners.values()
            if handle.target.addresses(message.sender_id, message.origin_group_id)
        ]
        invoked = 0
        for handle in handlers:
            if handle.disposed:
                continue
            invoked += 1
            try:
                await handle.handler(command, message)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("[APPROVAL] Command listener failed for %r", message.text)
        return invoked
