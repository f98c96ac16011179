import pytest

from group_inspector.approval.command_parser import BulkCommand, SingleCommand
from group_inspector.approval.listeners import CommandListenerHub
from group_inspector.datatypes.approval_datatypes import NotifyTarget
from group_inspector.datatypes.request_datatypes import InboundMessage

GROUP_TARGET = NotifyTarget.parse("guild:111")


@pytest.mark.asyncio
async def test_dispatch_only_reaches_bound_conversation():
    hub = CommandListenerHub()
    seen = []

    async def handler(command, message):
        seen.append(command)

    hub.subscribe(GROUP_TARGET, handler)

    assert await hub.dispatch(InboundMessage("y1", "reviewer", "222")) == 0
    assert await hub.dispatch(InboundMessage("y1", "reviewer", None)) == 0
    assert await hub.dispatch(InboundMessage("y1", "reviewer", "111")) == 1
    assert seen == [SingleCommand(approve=True, sequence=1)]


@pytest.mark.asyncio
async def test_non_commands_are_not_dispatched():
    hub = CommandListenerHub()
    seen = []

    async def handler(command, message):
        seen.append(command)

    hub.subscribe(GROUP_TARGET, handler)

    assert await hub.dispatch(InboundMessage("good morning", "reviewer", "111")) == 0
    assert seen == []


@pytest.mark.asyncio
async def test_private_target_requires_sender_and_no_origin():
    hub = CommandListenerHub()
    seen = []

    async def handler(command, message):
        seen.append(command)

    hub.subscribe(NotifyTarget.parse("private:42"), handler)

    await hub.dispatch(InboundMessage("ya", "42", "111"))
    await hub.dispatch(InboundMessage("ya", "43", None))
    await hub.dispatch(InboundMessage("ya", "42", None))

    assert seen == [BulkCommand(approve=True)]


@pytest.mark.asyncio
async def test_dispose_is_idempotent():
    hub = CommandListenerHub()

    async def handler(command, message):
        pass

    handle = hub.subscribe(GROUP_TARGET, handler)
    handle.dispose()
    handle.dispose()

    assert len(hub) == 0
    assert handle.disposed is True


@pytest.mark.asyncio
async def test_handler_disposed_mid_dispatch_is_skipped():
    hub = CommandListenerHub()
    calls = []

    async def first(command, message):
        calls.append("first")
        second_handle.dispose()

    async def second(command, message):
        calls.append("second")

    hub.subscribe(GROUP_TARGET, first)
    second_handle = hub.subscribe(GROUP_TARGET, second)

    await hub.dispatch(InboundMessage("ya", "reviewer", "111"))

    assert calls == ["first"]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_others():
    hub = CommandListenerHub()
    calls = []

    async def broken(command, message):
        raise RuntimeError("boom")

    async def healthy(command, message):
        calls.append(command)

    hub.subscribe(GROUP_TARGET, broken)
    hub.subscribe(GROUP_TARGET, healthy)

    assert await hub.dispatch(InboundMessage("na", "reviewer", "111")) == 2
    assert calls == [BulkCommand(approve=False)]
