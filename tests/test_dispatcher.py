"""Tests for request dispatching and the end-to-end inspector flow."""

import asyncio

import pytest

from group_inspector.configuration.inspector_settings import load_settings
from group_inspector.datatypes.request_datatypes import Decision, InboundMessage, ReasonCode
from group_inspector.inspector import GroupInspector


def inspector_for(gateway, transport, **overrides):
    config = {
        "interval": 5,
        "request_match": {"enabled": True, "patterns": ["通过一下"]},
        "unique": {"enabled": True, "deny_threshold": 2},
        "auto_accept": [{"guild_id": "G", "keyword": "^学习$"}],
        "manual": {"enabled": True, "notify_target": "guild:111"},
    }
    config.update(overrides)
    return GroupInspector(load_settings(config), gateway, transport)


@pytest.mark.asyncio
async def test_end_to_end_scenario(gateway, transport, make_request):
    inspector = inspector_for(gateway, transport)

    a = make_request(applicant_id="A", comment="通过一下")
    assert await inspector.on_join_request(a) == Decision.deny(ReasonCode.GLOBAL_PATTERN)
    assert gateway.decision_for(a.request_id) == [(a.request_id, False, "验证消息不符合要求")]

    b1 = make_request(applicant_id="B", group_id="H", comment="hi there")
    b2 = make_request(applicant_id="B", group_id="H", comment="hi there")
    assert await inspector.on_join_request(b1) == Decision.undecided()
    assert await inspector.on_join_request(b2) == Decision.deny(ReasonCode.DUPLICATE_REQUEST)

    c = make_request(applicant_id="C", group_id="G", comment="学习")
    assert await inspector.on_join_request(c) == Decision.accept()
    assert gateway.decision_for(c.request_id) == [(c.request_id, True, "")]

    d = make_request(applicant_id="D", group_id="H", comment="let me in")
    assert await inspector.on_join_request(d) == Decision.undecided()
    pending = inspector.registry.find_by_pair("D", "H")
    assert pending is not None

    handled = await inspector.on_message(InboundMessage(f"y{pending.sequence}", "reviewer", "111"))

    assert handled >= 1
    assert gateway.decision_for(d.request_id) == [(d.request_id, True, "")]
    await inspector.shutdown()


@pytest.mark.asyncio
async def test_first_pending_approval_is_number_one(gateway, transport, make_request):
    inspector = inspector_for(gateway, transport)

    await inspector.on_join_request(make_request(applicant_id="D", comment="unrelated"))

    assert inspector.registry.get(1) is not None
    assert "#1" in transport.sent[0][1]
    await inspector.shutdown()


@pytest.mark.asyncio
async def test_undecided_without_manual_review_is_left_alone(gateway, transport, make_request):
    inspector = inspector_for(gateway, transport, manual={"enabled": False, "notify_target": "guild:111"})

    decision = await inspector.on_join_request(make_request(comment="unrelated"))

    assert decision == Decision.undecided()
    assert gateway.decisions == []
    assert inspector.registry.find_by_pair("A", "G") is None


@pytest.mark.asyncio
async def test_auto_decision_notice_when_enabled(gateway, transport, make_request):
    inspector = inspector_for(gateway, transport, notify_auto_decisions=True)

    await inspector.on_join_request(make_request(comment="通过一下"))
    await inspector.on_join_request(make_request(applicant_id="C", comment="学习"))

    assert "自动拒绝" in transport.sent[0][1]
    assert "自动同意" in transport.sent[1][1]


@pytest.mark.asyncio
async def test_auto_decisions_are_silent_by_default(gateway, transport, make_request):
    inspector = inspector_for(gateway, transport)

    await inspector.on_join_request(make_request(comment="通过一下"))

    assert transport.sent == []


@pytest.mark.asyncio
async def test_failed_auto_resolution_is_logged_not_raised(gateway, transport, make_request):
    inspector = inspector_for(gateway, transport, notify_auto_decisions=True)
    request = make_request(comment="通过一下")
    gateway.failing_requests = {request.request_id}

    decision = await inspector.on_join_request(request)

    assert decision.is_deny
    assert transport.sent == []


@pytest.mark.asyncio
async def test_deny_reason_uses_message_overrides(gateway, transport, make_request):
    inspector = inspector_for(gateway, transport, messages={"deny.global-pattern": "请认真填写"})
    request = make_request(comment="通过一下")

    await inspector.on_join_request(request)

    assert gateway.decisions == [(request.request_id, False, "请认真填写")]


@pytest.mark.asyncio
async def test_same_pair_racing_requests_last_registration_wins(gateway, transport, make_request):
    release_first = asyncio.Event()
    slow_applicants = {"first": True}

    original = gateway.get_reputation

    async def slow_reputation(user_id):
        if slow_applicants.pop("first", False):
            await release_first.wait()
        return await original(user_id)

    gateway.get_reputation = slow_reputation
    inspector = inspector_for(
        gateway,
        transport,
        unique={"enabled": False},
        auto_accept=[{"guild_id": "G", "min_level": 100}],
    )
    r1 = make_request(applicant_id="A", comment="one")
    r2 = make_request(applicant_id="A", comment="two")

    first = asyncio.create_task(inspector.on_join_request(r1))
    await asyncio.sleep(0)
    await inspector.on_join_request(r2)
    release_first.set()
    await first

    pending = inspector.registry.find_by_pair("A", "G")
    assert pending.request is r1
    assert len(inspector.registry) == 1
    await inspector.shutdown()


@pytest.mark.asyncio
async def test_from_config_file(tmp_path, gateway, transport, make_request):
    path = tmp_path / "group_inspector.yml"
    path.write_text(
        "group_inspector:\n"
        "  request_match:\n"
        "    enabled: true\n"
        "    patterns: ['广告']\n",
        encoding="utf-8",
    )

    inspector = GroupInspector.from_config_file(path, gateway, transport)

    assert await inspector.on_join_request(make_request(comment="卖广告")) == Decision.deny(ReasonCode.GLOBAL_PATTERN)


@pytest.mark.asyncio
async def test_malformed_target_without_timeout_leaves_requests_alone(gateway, transport, make_request):
    inspector = inspector_for(gateway, transport, manual={"enabled": True, "notify_target": "bogus"})

    for i in range(50):
        decision = await inspector.on_join_request(make_request(applicant_id=f"U{i}", comment="hello"))
        assert decision == Decision.undecided()
    await inspector.on_message(InboundMessage("ya", "reviewer", "111"))

    assert len(inspector.registry) == 0
    assert len(inspector.hub) == 0
    assert gateway.decisions == []


@pytest.mark.asyncio
async def test_empty_yaml_sections_load(tmp_path, gateway, transport, make_request):
    path = tmp_path / "group_inspector.yml"
    path.write_text(
        "group_inspector:\n"
        "  unique:\n"
        "  auto_accept:\n"
        "  manual:\n"
        "  messages:\n",
        encoding="utf-8",
    )

    inspector = GroupInspector.from_config_file(path, gateway, transport)

    assert inspector.settings.accept_rules == ()
    assert inspector.settings.manual.enabled is False
    assert await inspector.on_join_request(make_request()) == Decision.undecided()
