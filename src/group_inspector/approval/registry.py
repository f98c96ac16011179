"""
Registry of pending approvals.

Owns the pending set (indexed by sequence number and by (applicant, group))
and the sequence allocator. Everything here is synchronous: a check-and-clear
never spans an await, which keeps it atomic on a single event loop.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from group_inspector.datatypes.approval_datatypes import PendingApproval
from group_inspector.datatypes.request_datatypes import JoinRequest

MAX_SEQUENCE = 2**63 - 1


class ApprovalRegistry:
    def __init__(self) -> None:
        self._by_sequence: Dict[int, PendingApproval] = {}
        self._by_pair: Dict[Tuple[str, str], int] = {}
        self._last_sequence = 0

    def _next_sequence(self) -> int:
        candidate = self._last_sequence
        while True:
            candidate = candidate + 1 if candidate < MAX_SEQUENCE else 1
            if candidate not in self._by_sequence:
                self._last_sequence = candidate
                return candidate

    def register(self, request: JoinRequest) -> PendingApproval:
        """Create a PendingApproval for ``request``.

        The caller must have cleared any approval for the same pair first.

        Raises:
            ValueError: If the (applicant, group) pair is still pending.
        """
        if request.pair in self._by_pair:
            raise ValueError(f"Pair {request.pair} already has a pending approval")
        approval = PendingApproval(sequence=self._next_sequence(), request=request)
        self._by_sequence[approval.sequence] = approval
        self._by_pair[request.pair] = approval.sequence
        return approval

    def get(self, sequence: int) -> PendingApproval | None:
        return self._by_sequence.get(sequence)

    def find_by_pair(self, applicant_id: str, group_id: str) -> PendingApproval | None:
        sequence = self._by_pair.get((applicant_id, group_id))
        return None if sequence is None else self._by_sequence.get(sequence)

    def remove(self, approval: PendingApproval) -> bool:
        """Remove ``approval`` if it is still registered; True only for the caller that removed it."""
        if self._by_sequence.get(approval.sequence) is not approval:
            return False
        del self._by_sequence[approval.sequence]
        if self._by_pair.get(approval.request.pair) == approval.sequence:
            del self._by_pair[approval.request.pair]
        return True

    def pop_pair(self, applicant_id: str, group_id: str) -> PendingApproval | None:
        approval = self.find_by_pair(applicant_id, group_id)
        if approval is not None:
            self.remove(approval)
        return approval

    def pop_all(self) -> List[PendingApproval]:
        approvals = sorted(self._by_sequence.values(), key=lambda a: a.sequence)
        self._by_sequence.clear()
        self._by_pair.clear()
        return approvals

    def __len__(self) -> int:
        return len(self._by_sequence)

    def __contains__(self, sequence: object) -> bool:
        return sequence in self._by_sequence
