"""Interview engine scenarios against the SQLite store and in-memory ports."""
from __future__ import annotations

import asyncio

from whitelist import messages
from whitelist.engine import InboundMessage
from whitelist.models import ApplicationStatus


def _say(h, ref, text, applicant="u1"):
    return asyncio.run(h.engine.handle_message(InboundMessage(applicant, ref.channel_id, text, "100")))


def _start(h, applicant="u1"):
    return asyncio.run(h.engine.start("100", applicant, "Mara"))


def test_start_opens_thread_and_asks_first_question(harness):
    result = _start(harness)
    assert result.ok
    assert result.conversation.kind == "thread"
    texts = harness.surfaces.texts(result.conversation.channel_id)
    assert len(texts) == 1
    assert texts[0].startswith(messages.INTRO)
    assert "**Question 1/7**" in texts[0]
    stored = harness.store.get(result.application.id)
    assert stored.conversation_ref == result.conversation


def test_full_interview_submits_and_posts_one_card(harness, valid_answers):
    result = _start(harness)
    ref = result.conversation
    outcomes = [_say(harness, ref, text) for text in valid_answers]

    assert [o.kind for o in outcomes] == ["advance"] * 6 + ["completed"]
    app = harness.store.get(result.application.id)
    assert app.status == ApplicationStatus.SUBMITTED
    assert app.extracted_identifier == "76561198000000001"
    assert app.answers["name"] == "Mara Voss"
    assert app.review_card_ref is not None

    assert len(harness.messenger.cards) == 1
    channel_id, card = harness.messenger.cards[0]
    assert channel_id == "200"
    assert card.application_id == app.id
    assert harness.surfaces.texts(ref.channel_id)[-1] == messages.COMPLETED
    assert "**Question 7/7**" in harness.surfaces.texts(ref.channel_id)[-2]


def test_invalid_identifier_keeps_step_and_explains(harness, valid_answers):
    result = _start(harness)
    ref = result.conversation
    for text in valid_answers[:5]:
        _say(harness, ref, text)

    outcome = _say(harness, ref, "12345")
    assert outcome.kind == "rejected"
    assert "SteamID64" in outcome.reason
    assert harness.store.get(result.application.id).current_step == 5
    assert harness.surfaces.texts(ref.channel_id)[-1] == messages.rejected_answer(outcome.reason)

    again = _say(harness, ref, "12345")
    assert again.kind == "rejected"
    assert harness.store.get(result.application.id).current_step == 5

    assert _say(harness, ref, valid_answers[5]).kind == "advance"
    assert harness.store.get(result.application.id).current_step == 6


def test_restart_supersedes_and_closes_old_surface(harness, valid_answers):
    first = _start(harness)
    for text in valid_answers[:3]:
        _say(harness, first.conversation, text)

    second = _start(harness)
    assert [a.id for a in second.superseded] == [first.application.id]
    assert harness.store.get(first.application.id).status == ApplicationStatus.EXPIRED
    assert (first.conversation.channel_id, "superseded") in harness.surfaces.closed

    fresh = harness.store.get(second.application.id)
    assert fresh.current_step == 0
    assert fresh.answers == {}
    assert _say(harness, first.conversation, "late answer") is None


def test_missing_review_queue_is_reported_not_swallowed(harness, valid_answers):
    harness.bind("staff_queue_channel", None)
    result = _start(harness)
    outcomes = [_say(harness, result.conversation, text) for text in valid_answers]

    final = outcomes[-1]
    assert final.kind == "completed"
    assert final.dispatch_error == messages.review_queue_missing(result.application.id)
    assert harness.messenger.cards == []
    assert harness.store.get(result.application.id).status == ApplicationStatus.SUBMITTED
    assert harness.surfaces.texts(result.conversation.channel_id)[-1] == final.dispatch_error


def test_unreachable_review_queue_is_reported(harness, valid_answers):
    harness.messenger.fail_post = True
    result = _start(harness)
    outcomes = [_say(harness, result.conversation, text) for text in valid_answers]
    assert outcomes[-1].dispatch_error is not None
    assert harness.store.get(result.application.id).review_card_ref is None


def test_lost_race_on_final_answer_does_not_dispatch(harness, valid_answers, monkeypatch):
    result = _start(harness)
    for text in valid_answers[:6]:
        _say(harness, result.conversation, text)

    real = harness.store.record_answer

    def racing(application_id, **kwargs):
        real(application_id, **kwargs)
        return real(application_id, **kwargs)

    monkeypatch.setattr(harness.store, "record_answer", racing)
    outcome = asyncio.run(harness.engine.submit_answer(result.application.id, valid_answers[6]))
    assert outcome.kind == "ignored"
    assert harness.messenger.cards == []
    assert harness.store.get(result.application.id).status == ApplicationStatus.SUBMITTED


def test_duplicate_final_delivery_dispatches_once(harness, valid_answers):
    result = _start(harness)
    for text in valid_answers[:6]:
        _say(harness, result.conversation, text)

    async def deliver_twice():
        return await asyncio.gather(
            harness.engine.submit_answer(result.application.id, valid_answers[6]),
            harness.engine.submit_answer(result.application.id, valid_answers[6]),
        )

    outcomes = asyncio.run(deliver_twice())
    assert sorted(o.kind for o in outcomes) == ["completed", "ignored"]
    assert len(harness.messenger.cards) == 1


def test_answers_after_submission_are_ignored(harness, valid_answers):
    result = _start(harness)
    for text in valid_answers:
        _say(harness, result.conversation, text)
    outcome = asyncio.run(harness.engine.submit_answer(result.application.id, "one more"))
    assert outcome.kind == "ignored"
    assert len(harness.messenger.cards) == 1


def test_pending_role_granted_on_submit(harness, valid_answers):
    harness.bind("pending_role", "500")
    result = _start(harness)
    for text in valid_answers:
        _say(harness, result.conversation, text)
    assert harness.roles.granted == [("u1", "500")]


def test_surface_failure_then_resume(harness):
    harness.surfaces.fail_open = True
    result = _start(harness)
    assert not result.ok
    assert result.instruction == "Enable direct messages and press Start again."
    assert result.application.status == ApplicationStatus.IN_PROGRESS
    assert result.application.conversation_ref is None

    harness.surfaces.fail_open = False
    resumed = asyncio.run(harness.engine.resume("100", "u1"))
    assert resumed.ok
    texts = harness.surfaces.texts(resumed.conversation.channel_id)
    assert texts[0].startswith(messages.RESUMED)
    assert "**Question 1/7**" in texts[0]


def test_resume_resends_current_question(harness, valid_answers):
    result = _start(harness)
    _say(harness, result.conversation, valid_answers[0])
    resumed = asyncio.run(harness.engine.resume("100", "u1"))
    assert resumed.conversation == result.conversation
    assert "**Question 2/7**" in harness.surfaces.texts(result.conversation.channel_id)[-1]


def test_resume_without_attempt_returns_none(harness):
    assert asyncio.run(harness.engine.resume("100", "nobody")) is None


def test_idle_attempt_expires_on_next_message(harness):
    result = _start(harness)
    harness.clock.advance(hours=73)
    outcome = _say(harness, result.conversation, "Mara Voss")
    assert outcome.kind == "expired"
    assert outcome.application.status == ApplicationStatus.EXPIRED
    assert harness.surfaces.texts(result.conversation.channel_id)[-1] == messages.EXPIRED
    assert result.conversation.channel_id in [cid for cid, _ in harness.surfaces.closed]


def test_messages_from_other_applicants_are_ignored(harness):
    result = _start(harness)
    assert _say(harness, result.conversation, "hello", applicant="u2") is None
    assert harness.store.get(result.application.id).current_step == 0


def test_three_question_catalog_submits_with_three_answers(harness):
    from whitelist.catalog import Catalog, Question, exact_digits
    from whitelist.engine import InterviewEngine
    from whitelist.review import ReviewDispatcher

    catalog = Catalog(
        [
            Question(key="name", label="Name", prompt="Name?", max_length=40),
            Question(key="story", label="Story", prompt="Story?", max_length=200),
            Question(
                key="steam_id",
                label="SteamID64",
                prompt="SteamID64?",
                max_length=32,
                validators=(exact_digits(17, "SteamID64"),),
                identifier=True,
            ),
        ],
        version="test",
    )
    dispatcher = ReviewDispatcher(harness.store, harness.config, harness.messenger, catalog)
    engine = InterviewEngine(harness.store, harness.surfaces, dispatcher, catalog=catalog, clock=harness.clock)

    result = asyncio.run(engine.start("100", "u1", "Mara"))
    ref = result.conversation
    for text in ("Mara", "Came down the river.", "abc", "76561198000000001"):
        asyncio.run(engine.handle_message(InboundMessage("u1", ref.channel_id, text, "100")))

    app = harness.store.get(result.application.id)
    assert app.status == ApplicationStatus.SUBMITTED
    assert app.current_step == 3
    assert app.catalog_version == "test"
    assert len(harness.messenger.cards) == 1
    card = harness.messenger.cards[0][1]
    assert [f.name for f in card.fields] == ["Applicant", "Status", "SteamID64", "Name", "Story"]


def test_non_ascii_digits_are_not_an_identifier(harness, valid_answers):
    result = _start(harness)
    for text in valid_answers[:5]:
        _say(harness, result.conversation, text)

    arabic_indic = "".join(chr(0x660 + int(c)) for c in "76561198000000001")
    outcome = _say(harness, result.conversation, arabic_indic)
    assert outcome.kind == "rejected"
    app = harness.store.get(result.application.id)
    assert app.current_step == 5
    assert app.extracted_identifier is None


def test_dm_held_by_other_community_is_not_rebound(harness, valid_answers):
    harness.surfaces.kind = "dm"
    first = asyncio.run(harness.engine.start("100", "u1", "Mara"))
    assert first.ok and first.conversation.kind == "dm"

    second = asyncio.run(harness.engine.start("101", "u1", "Mara"))
    assert second.instruction == messages.DM_BUSY
    assert harness.store.get(second.application.id).conversation_ref is None
    assert harness.store.get(second.application.id).status == ApplicationStatus.IN_PROGRESS

    dm = InboundMessage("u1", first.conversation.channel_id, valid_answers[0], None)
    outcome = asyncio.run(harness.engine.handle_message(dm))
    assert outcome.application.id == first.application.id
    assert outcome.application.current_step == 1
