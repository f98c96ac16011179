"""Reviewer-facing and applicant-facing text, zh-CN by default.

Deny reasons are sent back to the platform with the rejection and must stay
under 30 characters.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from group_inspector.datatypes.request_datatypes import ReasonCode
from group_inspector.util.logger import get_logger

logger = get_logger("messages")

DEFAULT_MESSAGES: Dict[str, str] = {
    "deny.global-pattern": "验证消息不符合要求",
    "deny.duplicate-request": "请勿重复申请，请稍后再试",
    "deny.rejoin": "你已经在群内或曾经退出过本群",
    "deny.low-reputation": "账号等级过低",
    "pending": (
        "收到入群申请 #{sequence}\n"
        "申请人：{applicant_id}\n"
        "群：{group_id}\n"
        "验证消息：{comment}\n"
        "回复 y{sequence} 同意，n{sequence} [理由] 拒绝；"
        "ya 全部同意，na [理由] 全部拒绝"
    ),
    "approved": "已同意 #{sequence}（{applicant_id} → {group_id}）",
    "rejected": "已拒绝 #{sequence}（{applicant_id} → {group_id}），理由：{reason}",
    "timeout": "#{sequence} 审核超时，已自动{action}（{applicant_id} → {group_id}）",
    "bulk": "已{action} {count} 个申请",
    "not-found": "没有找到待审核的申请 #{sequence}",
    "resolve-failed": "处理 #{sequence} 失败：{error}",
    "auto-approved": "已自动同意 {applicant_id} 加入 {group_id}",
    "auto-denied": "已自动拒绝 {applicant_id} 加入 {group_id}：{reason}",
    "action.accept": "同意",
    "action.reject": "拒绝",
    "reason.manual": "管理员拒绝",
    "reason.timeout": "审核超时",
}


class MessageCatalog:
    """Template lookup with per-deployment overrides layered over the defaults."""

    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        self._templates: Dict[str, str] = dict(DEFAULT_MESSAGES)
        for key, value in (overrides or {}).items():
            if key not in DEFAULT_MESSAGES:
                logger.warning("[CONFIG] Ignoring unknown message key %r", key)
                continue
            self._templates[key] = str(value)

    def render(self, key: str, **values: Any) -> str:
        template = self._templates.get(key, key)
        try:
            return template.format(**values)
        except (KeyError, IndexError, ValueError) as exc:
            logger.warning("[NOTIFY] Template %r could not be rendered (%s), using default", key, exc)
            return DEFAULT_MESSAGES.get(key, key).format(**values)

    def deny_reason(self, reason: ReasonCode) -> str:
        return self.render(f"deny.{reason.value}")

    def action_word(self, approve: bool) -> str:
        return self.render("action.accept" if approve else "action.reject")
