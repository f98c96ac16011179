"""
Pytest configuration and fixtures for group_inspector tests.
"""

import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Keep session log files out of the working tree; must happen before any
# group_inspector import creates a logger.
os.environ.setdefault("GROUP_INSPECTOR_LOG_DIR", tempfile.mkdtemp(prefix="group-inspector-logs-"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from group_inspector.datatypes.request_datatypes import JoinRequest  # noqa: E402
from group_inspector.errors import DeliveryError, TransportError  # noqa: E402


class FakeGateway:
    """In-memory PlatformGateway recording every decision."""

    def __init__(self, members=None, reputation=None):
        self.members = members or {}
        self.reputation = reputation or {}
        self.decisions = []
        self.failing_requests = set()
        self.failing_groups = set()
        self.reputation_error = None
        self.reputation_calls = 0

    async def submit_decision(self, request_id, approve, reason):
        if request_id in self.failing_requests:
            raise TransportError(f"platform refused {request_id}")
        self.decisions.append((request_id, approve, reason))

    async def iter_members(self, group_id):
        if group_id in self.failing_groups:
            raise TransportError(f"cannot list {group_id}")
        for member_id in self.members.get(group_id, []):
            yield member_id

    async def get_reputation(self, user_id):
        self.reputation_calls += 1
        if self.reputation_error is not None:
            raise self.reputation_error
        return self.reputation.get(user_id, 0)

    def decision_for(self, request_id):
        return [d for d in self.decisions if d[0] == request_id]


class FakeTransport:
    """In-memory MessageTransport."""

    def __init__(self):
        self.sent = []
        self.direct = []
        self.fail = False

    async def send_message(self, target_id, text):
        if self.fail:
            raise DeliveryError("send failed")
        self.sent.append((target_id, text))

    async def send_direct_message(self, user_id, text):
        if self.fail:
            raise DeliveryError("send failed")
        self.direct.append((user_id, text))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_request():
    counter = {"n": 0}

    def _make(applicant_id="A", group_id="G", comment="hello", request_id=None):
        counter["n"] += 1
        return JoinRequest(
            request_id=request_id or f"req-{counter['n']}",
            applicant_id=applicant_id,
            group_id=group_id,
            comment=comment,
            submitted_at=datetime.now(timezone.utc),
        )

    return _make
