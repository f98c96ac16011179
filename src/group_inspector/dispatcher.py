"""
Top-level routing of incoming join requests.

FilterChain decides first. Denied and accepted requests are answered on the
platform immediately; undecided ones go to manual review when it is enabled
and are otherwise left for the platform's own default.
"""

from __future__ import annotations

import asyncio

from group_inspector.approval.state_machine import ApprovalStateMachine
from group_inspector.datatypes.request_datatypes import Decision, JoinRequest
from group_inspector.errors import ResolutionError
from group_inspector.filters.filter_chain import FilterChain
from group_inspector.notify.channel import NotificationChannel
from group_inspector.transport.base import PlatformGateway
from group_inspector.util.logger import get_logger

logger = get_logger("dispatcher")


class RequestDispatcher:
    def __init__(
        self,
        filter_chain: FilterChain,
        state_machine: ApprovalStateMachine,
        gateway: PlatformGateway,
        channel: NotificationChannel,
        *,
        manual_enabled: bool = False,
        notify_auto_decisions: bool = False,
    ) -> None:
        self.filter_chain = filter_chain
        self.state_machine = state_machine
        self.gateway = gateway
        self.channel = channel
        self.manual_enabled = manual_enabled
        self.notify_auto_decisions = notify_auto_decisions

    async def handle(self, request: JoinRequest) -> Decision:
        """Run one request through the pipeline and return the filter decision."""
        decision = await self.filter_chain.evaluate(request)

        if decision.is_deny:
            reason = self.channel.messages.deny_reason(decision.reason)
            await self._auto_resolve(request, decision, approve=False, reason=reason)
        elif decision.is_accept:
            await self._auto_resolve(request, decision, approve=True, reason="")
        elif self.manual_enabled:
            await self.state_machine.escalate(request)
        else:
            logger.info("[DISPATCH] Request %s left to the platform default", request.request_id)

        return decision

    async def _auto_resolve(self, request: JoinRequest, decision: Decision, *, approve: bool, reason: str) -> None:
        try:
            await self.gateway.submit_decision(request.request_id, approve, reason)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("[DISPATCH] %s", ResolutionError(request.request_id, str(exc)))
            return

        logger.info("[DISPATCH] Request %s auto-%s", request.request_id, "approved" if approve else "denied")
        if self.notify_auto_decisions:
            await self.channel.auto_decision_notice(request, decision.reason)
