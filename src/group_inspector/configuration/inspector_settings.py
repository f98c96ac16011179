"""
Compilation of the inspector configuration into tagged rules.

``load_settings`` validates the mapping's structure with jsonschema and then
compiles every user-supplied regex and the notify target once. Malformed
values are reported as ConfigError in the log and degrade the one rule or
feature they belong to; only a structurally invalid mapping fails the load.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

import jsonschema
from jsonschema import ValidationError

from group_inspector.datatypes.approval_datatypes import NotifyTarget, TimeoutAction
from group_inspector.datatypes.rule_datatypes import (
    AutoAcceptRule,
    DenyPattern,
    DuplicateThreshold,
    PriorMembershipCheck,
    ReputationFloor,
)
from group_inspector.errors import ConfigError
from group_inspector.util.logger import get_logger

logger = get_logger("inspector_settings")

DEFAULT_INTERVAL_MINUTES = 5
DEFAULT_REQUEST_PATTERNS = ["管理员你好，我是来交流学习的，请通过一下", "通过一下"]

_ID = {"type": ["string", "integer"]}
_NON_NEGATIVE = {"type": "integer", "minimum": 0}

SETTINGS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "interval": {"type": "number", "exclusiveMinimum": 0},
        "request_match": {
            "type": ["object", "null"],
            "properties": {
                "enabled": {"type": "boolean"},
                "patterns": {"type": ["array", "null"], "items": {"type": "string"}},
            },
        },
        "unique": {
            "type": ["object", "null"],
            "properties": {"enabled": {"type": "boolean"}, "deny_threshold": _NON_NEGATIVE},
        },
        "rejoin": {
            "type": ["object", "null"],
            "properties": {"enabled": {"type": "boolean"}, "groups": {"type": ["array", "null"], "items": _ID}},
        },
        "level": {
            "type": ["object", "null"],
            "properties": {
                "enabled": {"type": "boolean"},
                "floor": {"type": "number", "minimum": 0},
                "deny_threshold": _NON_NEGATIVE,
            },
        },
        "auto_accept": {
            "type": ["array", "null"],
            "items": {
                "type": "object",
                "required": ["guild_id"],
                "properties": {
                    "guild_id": _ID,
                    "keyword": {"type": ["string", "null"]},
                    "min_level": {"type": ["number", "null"], "minimum": 0},
                },
            },
        },
        "manual": {
            "type": ["object", "null"],
            "properties": {
                "enabled": {"type": "boolean"},
                "notify_target": {"type": ["string", "null"]},
                "timeout_minutes": {"type": "number", "minimum": 0},
                "timeout_action": {"enum": ["accept", "reject"]},
            },
        },
        "notify_auto_decisions": {"type": "boolean"},
        "messages": {"type": ["object", "null"], "additionalProperties": {"type": "string"}},
    },
}


@dataclass(frozen=True)
class ManualSettings:
    enabled: bool = False
    notify_target: NotifyTarget | None = None
    timeout_minutes: float = 0
    timeout_action: TimeoutAction = TimeoutAction.REJECT


@dataclass(frozen=True)
class InspectorSettings:
    """Everything the inspector needs, compiled and read-only."""
    interval_minutes: float = DEFAULT_INTERVAL_MINUTES
    deny_patterns: Tuple[DenyPattern, ...] = ()
    duplicate: DuplicateThreshold | None = None
    prior_membership: PriorMembershipCheck | None = None
    reputation_floor: ReputationFloor | None = None
    accept_rules: Tuple[AutoAcceptRule, ...] = ()
    manual: ManualSettings = field(default_factory=ManualSettings)
    notify_auto_decisions: bool = False
    messages: Mapping[str, str] = field(default_factory=dict)
    config_errors: Tuple[str, ...] = ()


def compile_pattern(source: str) -> re.Pattern[str]:
    """Compile a user-supplied regex.

    Raises:
        ConfigError: If ``source`` is not a valid pattern.
    """
    try:
        return re.compile(source)
    except re.error as exc:
        raise ConfigError(f"Invalid regex {source!r}: {exc}") from exc


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    return data.get(key) or {}


def load_settings(data: Mapping[str, Any] | None) -> InspectorSettings:
    """Validate and compile a configuration mapping.

    Raises:
        ConfigError: If the mapping does not match SETTINGS_SCHEMA.
    """
    data = dict(data or {})
    try:
        jsonschema.validate(instance=data, schema=SETTINGS_SCHEMA)
    except ValidationError as exc:
        path = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(f"Invalid configuration at {path}: {exc.message}") from exc

    errors: List[str] = []

    def degrade(exc: ConfigError, consequence: str) -> None:
        logger.warning("[CONFIG] %s; %s", exc, consequence)
        errors.append(str(exc))

    interval = float(data.get("interval", DEFAULT_INTERVAL_MINUTES))

    deny_patterns: List[DenyPattern] = []
    request_match = _section(data, "request_match")
    if request_match.get("enabled", False):
        patterns = request_match.get("patterns")
        for source in DEFAULT_REQUEST_PATTERNS if patterns is None else patterns:
            try:
                deny_patterns.append(DenyPattern(source, compile_pattern(source)))
            except ConfigError as exc:
                degrade(exc, "pattern skipped")

    unique = _section(data, "unique")
    unique_threshold = int(unique.get("deny_threshold", 2))
    duplicate = None
    if unique.get("enabled", False):
        duplicate = DuplicateThreshold(deny_threshold=unique_threshold, window_minutes=interval)

    rejoin = _section(data, "rejoin")
    prior_membership = None
    if rejoin.get("enabled", False):
        prior_membership = PriorMembershipCheck(
            deny_threshold=unique_threshold,
            window_minutes=interval,
            group_ids=tuple(str(g) for g in rejoin.get("groups") or []),
        )

    level = _section(data, "level")
    reputation_floor = None
    if level.get("enabled", False):
        reputation_floor = ReputationFloor(
            floor=float(level.get("floor", 10)),
            deny_threshold=int(level.get("deny_threshold", 2)),
            window_minutes=interval,
        )

    accept_rules: List[AutoAcceptRule] = []
    for entry in data.get("auto_accept") or []:
        group_id = str(entry["guild_id"])
        min_level = entry.get("min_level")
        min_reputation = float(min_level) if min_level is not None else None
        keyword_source = entry.get("keyword")
        if not keyword_source:
            accept_rules.append(AutoAcceptRule(group_id, None, min_reputation))
            continue
        try:
            accept_rules.append(AutoAcceptRule(group_id, compile_pattern(keyword_source), min_reputation))
        except ConfigError as exc:
            degrade(exc, f"auto-accept rule for {group_id} disabled")
            accept_rules.append(AutoAcceptRule(group_id, None, min_reputation, broken=True))

    manual = _section(data, "manual")
    target = None
    raw_target = manual.get("notify_target")
    if raw_target:
        try:
            target = NotifyTarget.parse(raw_target)
        except ConfigError as exc:
            degrade(exc, "notifications disabled")
    manual_settings = ManualSettings(
        enabled=bool(manual.get("enabled", False)),
        notify_target=target,
        timeout_minutes=float(manual.get("timeout_minutes", 0)),
        timeout_action=TimeoutAction(manual.get("timeout_action", "reject")),
    )

    settings = InspectorSettings(
        interval_minutes=interval,
        deny_patterns=tuple(deny_patterns),
        duplicate=duplicate,
        prior_membership=prior_membership,
        reputation_floor=reputation_floor,
        accept_rules=tuple(accept_rules),
        manual=manual_settings,
        notify_auto_decisions=bool(data.get("notify_auto_decisions", False)),
        messages=dict(data.get("messages") or {}),
        config_errors=tuple(errors),
    )
    logger.info(
        "[CONFIG] Loaded %d deny pattern(s), %d auto-accept rule(s), manual review %s",
        len(settings.deny_patterns),
        len(settings.accept_rules),
        "on" if manual_settings.enabled else "off",
    )
    return settings
