"""
Compiled filter rules.

Rules are built once by ``configuration.inspector_settings.load_settings`` from
the YAML mapping. Patterns arrive here already compiled, so evaluation never
touches user-supplied regex source again.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True, slots=True)
class DenyPattern:
    """Global deny regex tested against the applicant's comment."""
    source: str
    pattern: re.Pattern[str]

    def matches(self, comment: str) -> bool:
        return self.pattern.search(comment) is not None


@dataclass(frozen=True, slots=True)
class DuplicateThreshold:
    """Deny repeat requests whose counter lands within [2, deny_threshold]."""
    deny_threshold: int
    window_minutes: float

    def denies(self, count: int) -> bool:
        return 2 <= count <= self.deny_threshold


@dataclass(frozen=True, slots=True)
class PriorMembershipCheck:
    """Deny applicants already present in any of ``group_ids``.

    An empty tuple means the request's own target group is scanned.
    """
    deny_threshold: int
    window_minutes: float
    group_ids: Tuple[str, ...] = ()

    def groups_for(self, target_group_id: str) -> Tuple[str, ...]:
        return self.group_ids or (target_group_id,)


@dataclass(frozen=True, slots=True)
class ReputationFloor:
    """Deny the first ``deny_threshold`` attempts of applicants below ``floor``."""
    floor: float
    deny_threshold: int
    window_minutes: float


@dataclass(frozen=True, slots=True)
class AutoAcceptRule:
    """
    Per-group rule that bypasses manual review.

    Both configured clauses must hold. A rule with neither clause, or whose
    keyword failed to compile (``broken``), never matches.
    """
    group_id: str
    keyword: re.Pattern[str] | None = None
    min_reputation: float | None = None
    broken: bool = field(default=False, compare=False)

    @property
    def has_clauses(self) -> bool:
        return self.keyword is not None or self.min_reputation is not None
