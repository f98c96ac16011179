"""
Manual escalation of join requests.

Each escalated request becomes a PendingApproval with a sequence number, a
command listener bound to the notify target and, when configured, a timeout
task. It leaves the PENDING state exactly once:

- APPROVED / REJECTED through a single command (``y1``, ``n1 reason``) or a
  bulk command (``ya``, ``na reason``)
- TIMED_OUT when the timer fires first; the configured fallback is applied
- SUPERSEDED when a newer request for the same (applicant, group) arrives
- CANCELLED on shutdown

Every exit goes through ``_teardown``, which removes the approval from the
registry, disposes the listener and cancels the timer before anything is
awaited. That ordering is what keeps a request from being resolved twice.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import List

from group_inspector.approval.command_parser import BulkCommand, Command, SingleCommand
from group_inspector.approval.listeners import CommandListenerHub, ListenerHandle
from group_inspector.approval.registry import ApprovalRegistry
from group_inspector.datatypes.approval_datatypes import ApprovalState, PendingApproval, TimeoutAction
from group_inspector.datatypes.request_datatypes import InboundMessage, JoinRequest
from group_inspector.errors import ResolutionError
from group_inspector.notify.channel import NotificationChannel
from group_inspector.transport.base import PlatformGateway
from group_inspector.util.logger import get_logger

logger = get_logger("approval_state_machine")


class ApprovalStateMachine:
    """
    Owns the lifecycle of every pending approval.

    Args:
        registry: Pending set and sequence allocator.
        gateway: Platform call used to approve or deny a request.
        channel: Reviewer notifications; its target also scopes the command listeners.
        hub: Listener hub the inbound message hook dispatches through.
        timeout_minutes: Minutes before the fallback applies; 0 disables the timer.
        timeout_action: Fallback decision on timeout.
    """

    def __init__(
        self,
        registry: ApprovalRegistry,
        gateway: PlatformGateway,
        channel: NotificationChannel,
        hub: CommandListenerHub,
        *,
        timeout_minutes: float = 0,
        timeout_action: TimeoutAction = TimeoutAction.REJECT,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.channel = channel
        self.hub = hub
        self.timeout_minutes = timeout_minutes
        self.timeout_action = timeout_action
        self._unresolvable_warned = False

        # Subscribed before any per-approval listener so it sees the registry
        # as it was when the command arrived.
        self._control_listener: ListenerHandle | None = None
        if channel.target is not None:
            self._control_listener = hub.subscribe(channel.target, self._on_control_command)

    @property
    def pending_count(self) -> int:
        return len(self.registry)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @property
    def can_resolve(self) -> bool:
        """False when neither a reviewer command nor a timer could ever resolve an approval."""
        return self.channel.target is not None or self.timeout_minutes > 0

    async def escalate(self, request: JoinRequest) -> PendingApproval | None:
        """Register ``request`` for manual review, superseding any pending one for the same pair.

        Returns None without registering anything when the approval could never
        be resolved; the request is then left to the platform default.
        """
        if not self.can_resolve:
            if not self._unresolvable_warned:
                self._unresolvable_warned = True
                logger.warning("[APPROVAL] No notify target and no timeout, requests are left to the platform default")
            logger.info("[APPROVAL] Request %s left to the platform default", request.request_id)
            return None

        superseded = self.registry.pop_pair(request.applicant_id, request.group_id)
        if superseded is not None:
            self._teardown(superseded, ApprovalState.SUPERSEDED)
            logger.info(
                "[APPROVAL] #%d (%s) superseded by request %s",
                superseded.sequence,
                superseded.request.request_id,
                request.request_id,
            )

        approval = self.registry.register(request)
        if self.channel.target is not None:
            approval.listener = self.hub.subscribe(
                self.channel.target, partial(self._on_single_command, approval)
            )
        else:
            logger.warning("[APPROVAL] #%d registered without a notify target, no commands can reach it", approval.sequence)

        if self.timeout_minutes > 0:
            approval.timeout_task = asyncio.create_task(
                self._expire(approval), name=f"group-inspector-timeout-{approval.sequence}"
            )

        logger.info(
            "[APPROVAL] #%d pending for request %s (%s -> %s)",
            approval.sequence,
            request.request_id,
            request.applicant_id,
            request.group_id,
        )
        await self.channel.pending_notice(approval)
        return approval

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _teardown(self, approval: PendingApproval, state: ApprovalState) -> bool:
        """Release the approval's registry entry, listener and timer exactly once."""
        if approval.released:
            return False
        approval.released = True
        approval.state = state
        self.registry.remove(approval)

        if approval.listener is not None:
            approval.listener.dispose()

        task = approval.timeout_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        return True

    def cancel(self, approval: PendingApproval) -> bool:
        """Drop ``approval`` without recording a decision; False if it was already released."""
        return self._teardown(approval, ApprovalState.CANCELLED)

    async def _submit(self, approval: PendingApproval, approve: bool, reason: str) -> None:
        request = approval.request
        try:
            await self.gateway.submit_decision(request.request_id, approve, reason)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise ResolutionError(request.request_id, str(exc)) from exc
        logger.info(
            "[APPROVAL] #%d %s (request %s)", approval.sequence, approval.state, request.request_id
        )

    # ------------------------------------------------------------------
    # Resolution paths
    # ------------------------------------------------------------------

    async def resolve(self, sequence: int, approve: bool, reason: str = "") -> bool:
        """Resolve one pending approval by number.

        Returns False when the number is not pending.

        Raises:
            ResolutionError: If the platform call fails; the approval is gone either way.
        """
        approval = self.registry.get(sequence)
        if approval is None:
            return False
        return await self._resolve_single(approval, approve, reason)

    async def _resolve_single(self, approval: PendingApproval, approve: bool, reason: str) -> bool:
        if not approve and not reason:
            reason = self.channel.messages.render("reason.manual")
        state = ApprovalState.APPROVED if approve else ApprovalState.REJECTED
        if not self._teardown(approval, state):
            return False
        await self._submit(approval, approve, reason)
        return True

    async def resolve_all(self, approve: bool, reason: str = "") -> int:
        """Resolve every pending approval with the same decision; returns how many succeeded."""
        if not approve and not reason:
            reason = self.channel.messages.render("reason.manual")
        state = ApprovalState.APPROVED if approve else ApprovalState.REJECTED

        batch: List[PendingApproval] = [a for a in self.registry.pop_all() if self._teardown(a, state)]
        resolved = 0
        for approval in batch:
            try:
                await self._submit(approval, approve, reason)
                resolved += 1
            except ResolutionError as exc:
                logger.error("[APPROVAL] Bulk resolution of #%d failed: %s", approval.sequence, exc)
        logger.info("[APPROVAL] Bulk %s resolved %d/%d", "approve" if approve else "reject", resolved, len(batch))
        return resolved

    async def _expire(self, approval: PendingApproval) -> None:
        await asyncio.sleep(self.timeout_minutes * 60)
        if not self._teardown(approval, ApprovalState.TIMED_OUT):
            return

        approve = self.timeout_action.approve
        reason = "" if approve else self.channel.messages.render("reason.timeout")
        logger.info("[APPROVAL] #%d timed out, applying %s", approval.sequence, self.timeout_action.value)
        try:
            await self._submit(approval, approve, reason)
        except ResolutionError as exc:
            logger.error("[APPROVAL] Timeout resolution of #%d failed: %s", approval.sequence, exc)
            return
        await self.channel.timeout_notice(approval, approve)

    # ------------------------------------------------------------------
    # Command listeners
    # ------------------------------------------------------------------

    async def _on_single_command(self, approval: PendingApproval, command: Command, message: InboundMessage) -> None:
        if not isinstance(command, SingleCommand) or command.sequence != approval.sequence:
            return
        logger.debug("[APPROVAL] %s sent %r", message.sender_id, message.text)
        try:
            resolved = await self._resolve_single(approval, command.approve, command.reason)
        except ResolutionError as exc:
            logger.error("[APPROVAL] Resolution of #%d failed: %s", approval.sequence, exc)
            await self.channel.failure_notice(approval, exc)
            return
        if resolved:
            await self.channel.resolution_notice(approval, command.approve, command.reason or self._default_reason(command.approve))

    async def _on_control_command(self, command: Command, message: InboundMessage) -> None:
        if isinstance(command, BulkCommand):
            count = await self.resolve_all(command.approve, command.reason)
            await self.channel.bulk_notice(command.approve, count)
        elif command.sequence not in self.registry:
            logger.debug("[APPROVAL] %s referenced unknown #%d", message.sender_id, command.sequence)
            await self.channel.not_found_notice(command.sequence)

    def _default_reason(self, approve: bool) -> str:
        return "" if approve else self.channel.messages.render("reason.manual")

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Cancel every pending approval and wait for their timers to finish."""
        tasks = []
        approvals = self.registry.pop_all()
        for approval in approvals:
            if approval.timeout_task is not None:
                tasks.append(approval.timeout_task)
            self._teardown(approval, ApprovalState.CANCELLED)
        if self._control_listener is not None:
            self._control_listener.dispose()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("[APPROVAL] Shutdown complete, %d pending approval(s) cancelled", len(approvals))
