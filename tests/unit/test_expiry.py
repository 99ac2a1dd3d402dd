import asyncio
from datetime import timedelta

from whitelist.engine import IDLE_NOTE
from whitelist.expiry import expire_idle, sweep_idle
from whitelist.models import ApplicationStatus


def test_expire_idle_uses_ttl(harness):
    started = asyncio.run(harness.engine.start("100", "u1", "Mara"))
    now = harness.clock() + timedelta(hours=71)
    assert expire_idle(harness.store, now=now) == []

    later = harness.clock() + timedelta(hours=73)
    expired = expire_idle(harness.store, now=later)
    assert [a.id for a in expired] == [started.application.id]
    record = harness.store.get(started.application.id)
    assert record.status == ApplicationStatus.EXPIRED
    assert record.decision_note == IDLE_NOTE


def test_custom_ttl_override(harness):
    asyncio.run(harness.engine.start("100", "u1", "Mara"))
    assert len(expire_idle(harness.store, now=harness.clock() + timedelta(hours=2), ttl_hours=1)) == 1


def test_sweep_closes_surfaces(harness):
    started = asyncio.run(harness.engine.start("100", "u1", "Mara"))
    expired = asyncio.run(
        sweep_idle(harness.store, harness.surfaces, now=harness.clock() + timedelta(hours=80))
    )
    assert len(expired) == 1
    assert (started.conversation.channel_id, IDLE_NOTE) in harness.surfaces.closed


def test_submitted_records_never_expire(harness, valid_answers):
    from whitelist.engine import InboundMessage

    started = asyncio.run(harness.engine.start("100", "u1", "Mara"))
    for text in valid_answers:
        asyncio.run(
            harness.engine.handle_message(InboundMessage("u1", started.conversation.channel_id, text, "100"))
        )
    assert expire_idle(harness.store, now=harness.clock() + timedelta(days=30)) == []
