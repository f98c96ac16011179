"""
Composition root of the join-request inspector.

A GroupInspector is built from InspectorSettings plus the platform
collaborators and exposes the two event hooks the host adapter calls:
``on_join_request`` and ``on_message``.
"""

from __future__ import annotations

from pathlib import Path

from group_inspector.approval.listeners import CommandListenerHub
from group_inspector.approval.registry import ApprovalRegistry
from group_inspector.approval.state_machine import ApprovalStateMachine
from group_inspector.configuration.app_configuration import AppConfig
from group_inspector.configuration.inspector_settings import InspectorSettings, load_settings
from group_inspector.counter.rate_counter import MemoryRateCounter, RateCounter
from group_inspector.datatypes.request_datatypes import Decision, InboundMessage, JoinRequest
from group_inspector.dispatcher import RequestDispatcher
from group_inspector.filters.filter_chain import FilterChain
from group_inspector.notify.channel import NotificationChannel
from group_inspector.notify.messages import MessageCatalog
from group_inspector.transport.base import MessageTransport, PlatformGateway
from group_inspector.util.logger import get_logger

logger = get_logger("inspector")


class GroupInspector:
    """
    Owns one registry, listener hub, filter chain and state machine.

    Args:
        settings: Compiled configuration.
        gateway: Platform calls (answer requests, membership, reputation).
        transport: Message delivery for reviewer notices.
        counter: Counter store; defaults to an in-process MemoryRateCounter.
    """

    def __init__(
        self,
        settings: InspectorSettings,
        gateway: PlatformGateway,
        transport: MessageTransport,
        counter: RateCounter | None = None,
    ) -> None:
        self.settings = settings
        self.registry = ApprovalRegistry()
        self.hub = CommandListenerHub()
        self.channel = NotificationChannel(transport, settings.manual.notify_target, MessageCatalog(settings.messages))
        self.filter_chain = FilterChain(
            gateway,
            counter or MemoryRateCounter(),
            deny_patterns=settings.deny_patterns,
            duplicate=settings.duplicate,
            prior_membership=settings.prior_membership,
            reputation_floor=settings.reputation_floor,
            accept_rules=settings.accept_rules,
        )
        self.state_machine = ApprovalStateMachine(
            self.registry,
            gateway,
            self.channel,
            self.hub,
            timeout_minutes=settings.manual.timeout_minutes,
            timeout_action=settings.manual.timeout_action,
        )
        self.dispatcher = RequestDispatcher(
            self.filter_chain,
            self.state_machine,
            gateway,
            self.channel,
            manual_enabled=settings.manual.enabled,
            notify_auto_decisions=settings.notify_auto_decisions,
        )

    @classmethod
    def from_config_file(
        cls,
        path: Path,
        gateway: PlatformGateway,
        transport: MessageTransport,
        counter: RateCounter | None = None,
    ) -> "GroupInspector":
        """Build an inspector from a YAML file (see AppConfig.inspector_section)."""
        settings = load_settings(AppConfig(path).inspector_section)
        return cls(settings, gateway, transport, counter)

    async def on_join_request(self, request: JoinRequest) -> Decision:
        return await self.dispatcher.handle(request)

    async def on_message(self, message: InboundMessage) -> int:
        """Feed a chat message to the command listeners; returns how many handled it."""
        return await self.hub.dispatch(message)

    async def shutdown(self) -> None:
        await self.state_machine.shutdown()
        logger.info("[INSPECTOR] Shut down")
