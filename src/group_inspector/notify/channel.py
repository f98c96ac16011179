"""
Notification channel towards the human reviewer.

A NotificationChannel is bound to one NotifyTarget. A channel without a
target is disabled: every notice becomes a no-op, which is how a malformed
``notify_target`` degrades at runtime.
"""

from __future__ import annotations

from group_inspector.datatypes.approval_datatypes import NotifyTarget, PendingApproval, TargetKind
from group_inspector.datatypes.request_datatypes import JoinRequest, ReasonCode
from group_inspector.errors import DeliveryError, TransportError
from group_inspector.notify.messages import MessageCatalog
from group_inspector.transport.base import MessageTransport
from group_inspector.util.logger import get_logger

logger = get_logger("notification_channel")


class NotificationChannel:
    def __init__(
        self,
        transport: MessageTransport,
        target: NotifyTarget | None,
        messages: MessageCatalog | None = None,
    ) -> None:
        self.transport = transport
        self.target = target
        self.messages = messages or MessageCatalog()

    @property
    def enabled(self) -> bool:
        return self.target is not None

    async def notify(self, message: str) -> None:
        """Deliver ``message`` to the bound target.

        Raises:
            DeliveryError: If the transport fails.
        """
        if self.target is None:
            return
        try:
            if self.target.kind is TargetKind.GUILD:
                await self.transport.send_message(self.target.target_id, message)
            else:
                await self.transport.send_direct_message(self.target.target_id, message)
        except DeliveryError:
            raise
        except TransportError as exc:
            raise DeliveryError(str(exc)) from exc
        except Exception as exc:
            raise DeliveryError(f"Failed to notify {self.target}: {exc}") from exc

    async def try_notify(self, message: str) -> bool:
        """Best-effort ``notify``: failures are logged and reported as False."""
        try:
            await self.notify(message)
        except DeliveryError as exc:
            logger.warning("[NOTIFY] Delivery to %s failed: %s", self.target, exc)
            return False
        return self.enabled

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------

    def _fields(self, approval: PendingApproval) -> dict:
        request = approval.request
        return {
            "sequence": approval.sequence,
            "applicant_id": request.applicant_id,
            "group_id": request.group_id,
            "comment": request.comment,
        }

    async def pending_notice(self, approval: PendingApproval) -> bool:
        return await self.try_notify(self.messages.render("pending", **self._fields(approval)))

    async def resolution_notice(self, approval: PendingApproval, approve: bool, reason: str = "") -> bool:
        key = "approved" if approve else "rejected"
        return await self.try_notify(self.messages.render(key, reason=reason, **self._fields(approval)))

    async def timeout_notice(self, approval: PendingApproval, approve: bool) -> bool:
        action = self.messages.action_word(approve)
        return await self.try_notify(self.messages.render("timeout", action=action, **self._fields(approval)))

    async def bulk_notice(self, approve: bool, count: int) -> bool:
        action = self.messages.action_word(approve)
        return await self.try_notify(self.messages.render("bulk", action=action, count=count))

    async def not_found_notice(self, sequence: int) -> bool:
        return await self.try_notify(self.messages.render("not-found", sequence=sequence))

    async def failure_notice(self, approval: PendingApproval, error: Exception) -> bool:
        return await self.try_notify(self.messages.render("resolve-failed", sequence=approval.sequence, error=error))

    async def auto_decision_notice(self, request: JoinRequest, reason: ReasonCode | None) -> bool:
        if reason is None:
            text = self.messages.render(
                "auto-approved", applicant_id=request.applicant_id, group_id=request.group_id
            )
        else:
            text = self.messages.render(
                "auto-denied",
                applicant_id=request.applicant_id,
                group_id=request.group_id,
                reason=self.messages.deny_reason(reason),
            )
        return await self.try_notify(text)
