"""
Ordered, short-circuiting evaluation of join requests.

Order is fixed:

1. global deny patterns against the comment
2. duplicate-request throttle (counter ``<applicant>:unique``)
3. prior-membership check across configured groups
4. reputation floor (counter ``<applicant>:level``)
5. per-group auto-accept rule lookup

Steps 1-4 can only deny, step 5 can only accept. Transport and counter
failures never deny or accept: they are logged and the step counts as a
non-match.
"""

from __future__ import annotations

import asyncio
from typing import Sequence

from group_inspector.counter.rate_counter import RateCounter, counter_key
from group_inspector.datatypes.request_datatypes import Decision, JoinRequest, ReasonCode
from group_inspector.datatypes.rule_datatypes import (
    AutoAcceptRule,
    DenyPattern,
    DuplicateThreshold,
    PriorMembershipCheck,
    ReputationFloor,
)
from group_inspector.transport.base import PlatformGateway
from group_inspector.util.logger import get_logger

logger = get_logger("filter_chain")

UNIQUE_PURPOSE = "unique"
LEVEL_PURPOSE = "level"


def _window_ms(minutes: float) -> int:
    return int(minutes * 60 * 1000)


class _ReputationLookup:
    """Fetches an applicant's reputation at most once per evaluation."""

    def __init__(self, gateway: PlatformGateway, user_id: str) -> None:
        self._gateway = gateway
        self._user_id = user_id
        self._fetched = False
        self._value: float | None = None

    async def get(self) -> float | None:
        if not self._fetched:
            self._fetched = True
            try:
                self._value = float(await self._gateway.get_reputation(self._user_id))
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("[FILTER] Reputation lookup for %s failed: %s", self._user_id, exc)
                self._value = None
        return self._value


class FilterChain:
    """
    Evaluates a JoinRequest against compiled rules.

    Args:
        gateway: Platform lookups (membership scan, reputation).
        counter: Expiring counter store used by the throttles.
        deny_patterns: Global deny regexes; empty disables step 1.
        duplicate: Duplicate throttle; None disables step 2.
        prior_membership: Membership check; None disables step 3.
        reputation_floor: Low-reputation throttle; None disables step 4.
        accept_rules: Auto-accept rules; the first whose group matches wins.
    """

    def __init__(
        self,
        gateway: PlatformGateway,
        counter: RateCounter,
        *,
        deny_patterns: Sequence[DenyPattern] = (),
        duplicate: DuplicateThreshold | None = None,
        prior_membership: PriorMembershipCheck | None = None,
        reputation_floor: ReputationFloor | None = None,
        accept_rules: Sequence[AutoAcceptRule] = (),
    ) -> None:
        self.gateway = gateway
        self.counter = counter
        self.deny_patterns = tuple(deny_patterns)
        self.duplicate = duplicate
        self.prior_membership = prior_membership
        self.reputation_floor = reputation_floor
        self.accept_rules = tuple(accept_rules)

    async def evaluate(self, request: JoinRequest) -> Decision:
        reputation = _ReputationLookup(self.gateway, request.applicant_id)

        if self._matches_deny_pattern(request):
            return self._log(request, Decision.deny(ReasonCode.GLOBAL_PATTERN))

        unique_count = await self._count_unique(request)
        if self.duplicate is not None and unique_count is not None and self.duplicate.denies(unique_count):
            return self._log(request, Decision.deny(ReasonCode.DUPLICATE_REQUEST))

        if await self._is_rejoin(request, unique_count):
            return self._log(request, Decision.deny(ReasonCode.REJOIN))

        if await self._below_reputation_floor(request, reputation):
            return self._log(request, Decision.deny(ReasonCode.LOW_REPUTATION))

        if await self._auto_accepts(request, reputation):
            return self._log(request, Decision.accept())

        return self._log(request, Decision.undecided())

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _matches_deny_pattern(self, request: JoinRequest) -> bool:
        for rule in self.deny_patterns:
            if rule.matches(request.comment):
                logger.debug("[FILTER] Comment of %s matched deny pattern %r", request.applicant_id, rule.source)
                return True
        return False

    async def _count_unique(self, request: JoinRequest) -> int | None:
        if self.duplicate is None and self.prior_membership is None:
            return None
        window = self.duplicate.window_minutes if self.duplicate else self.prior_membership.window_minutes
        return await self._increment(counter_key(request.applicant_id, UNIQUE_PURPOSE), window)

    async def _increment(self, key: str, window_minutes: float) -> int | None:
        try:
            return await self.counter.increment(key, _window_ms(window_minutes))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("[FILTER] Counter increment for %s failed: %s", key, exc)
            return None

    async def _is_rejoin(self, request: JoinRequest, unique_count: int | None) -> bool:
        check = self.prior_membership
        if check is None or unique_count is None or unique_count > check.deny_threshold:
            return False

        for group_id in check.groups_for(request.group_id):
            try:
                async for member_id in self.gateway.iter_members(group_id):
                    if member_id == request.applicant_id:
                        logger.debug("[FILTER] %s is already a member of %s", request.applicant_id, group_id)
                        return True
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("[FILTER] Membership scan of %s failed: %s", group_id, exc)
        return False

    async def _below_reputation_floor(self, request: JoinRequest, reputation: _ReputationLookup) -> bool:
        floor = self.reputation_floor
        if floor is None:
            return False
        value = await reputation.get()
        if value is None or value >= floor.floor:
            return False
        count = await self._increment(counter_key(request.applicant_id, LEVEL_PURPOSE), floor.window_minutes)
        return count is not None and count <= floor.deny_threshold

    def find_rule(self, group_id: str) -> AutoAcceptRule | None:
        for rule in self.accept_rules:
            if rule.group_id == group_id:
                return rule
        return None

    async def _auto_accepts(self, request: JoinRequest, reputation: _ReputationLookup) -> bool:
        rule = self.find_rule(request.group_id)
        if rule is None or rule.broken or not rule.has_clauses:
            return False

        if rule.keyword is not None and rule.keyword.search(request.comment) is None:
            return False

        if rule.min_reputation is not None:
            value = await reputation.get()
            if value is None or value < rule.min_reputation:
                return False

        return True

    def _log(self, request: JoinRequest, decision: Decision) -> Decision:
        logger.info(
            "[FILTER] Request %s (%s -> %s) evaluated as %s",
            request.request_id,
            request.applicant_id,
            request.group_id,
            decision,
        )
        return decision
