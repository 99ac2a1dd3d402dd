import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from storage.applications import ApplicationStore
from storage.community_config import CommunityConfigStore
from whitelist.decisions import DecisionWorkflow
from whitelist.engine import InterviewEngine
from whitelist.errors import (
    NotificationFailed,
    ReviewQueueNotConfigured,
    RoleUpdateFailed,
    SurfaceUnavailable,
)
from whitelist.models import ConversationRef, MessageRef
from whitelist.review import ReviewDispatcher

COMMUNITY = "100"
STAFF_QUEUE = "200"
PARENT = "300"
REJECT_LOG = "400"
PENDING_ROLE = "500"
APPROVED_ROLE = "501"
REJECTED_ROLE = "502"


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)


class FakeSurfaces:
    def __init__(self):
        self.opened = []
        self.sent = []
        self.closed = []
        self.fail_open = False
        self.fail_send = False
        self.kind = "thread"
        self._counter = 0

    async def open(self, community_id, applicant_id, application_id):
        if self.fail_open:
            raise SurfaceUnavailable("dm closed", "Enable direct messages and press Start again.")
        self._counter += 1
        if self.kind == "dm":
            ref = ConversationRef(kind="dm", channel_id=f"dm-{applicant_id}")
        else:
            ref = ConversationRef(kind="thread", channel_id=f"9{self._counter:03d}", parent_id=PARENT)
        self.opened.append((application_id, ref))
        return ref

    async def send(self, ref, text):
        if self.fail_send:
            raise SurfaceUnavailable("gone", "Press Continue to reopen the interview.")
        self.sent.append((ref.channel_id, text))

    async def close(self, ref, reason):
        self.closed.append((ref.channel_id, reason))

    def texts(self, channel_id):
        return [text for cid, text in self.sent if cid == channel_id]


class FakeMessenger:
    def __init__(self):
        self.cards = []
        self.updates = []
        self.texts = []
        self.fail_post = False

    async def post_card(self, channel_id, card):
        if self.fail_post:
            raise ReviewQueueNotConfigured(COMMUNITY, "channel unreachable")
        self.cards.append((channel_id, card))
        return MessageRef(channel_id=channel_id, message_id=str(7000 + len(self.cards)))

    async def update_card(self, ref, card):
        self.updates.append((ref, card))

    async def post_text(self, channel_id, text):
        self.texts.append((channel_id, text))


class FakeRoles:
    def __init__(self):
        self.granted = []
        self.revoked = []
        self.fail = False

    async def grant(self, community_id, member_id, role_id):
        if self.fail:
            raise RoleUpdateFailed(f"cannot grant {role_id}")
        self.granted.append((member_id, role_id))

    async def revoke(self, community_id, member_id, role_id):
        if self.fail:
            raise RoleUpdateFailed(f"cannot revoke {role_id}")
        self.revoked.append((member_id, role_id))


class FakeNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def notify(self, applicant_id, text):
        if self.fail:
            raise NotificationFailed(f"{applicant_id} has DMs closed")
        self.sent.append((applicant_id, text))


class Harness:
    def __init__(self):
        self.clock = FakeClock()
        self.store = ApplicationStore()
        self.config = CommunityConfigStore()
        self.surfaces = FakeSurfaces()
        self.messenger = FakeMessenger()
        self.roles = FakeRoles()
        self.notifier = FakeNotifier()
        self.dispatcher = ReviewDispatcher(self.store, self.config, self.messenger)
        self.engine = InterviewEngine(
            self.store,
            self.surfaces,
            self.dispatcher,
            config_store=self.config,
            roles=self.roles,
            clock=self.clock,
        )
        self.decisions = DecisionWorkflow(
            self.store,
            self.config,
            self.dispatcher,
            self.messenger,
            self.roles,
            self.notifier,
            surfaces=self.surfaces,
            clock=self.clock,
        )

    def bind(self, field, value):
        return self.config.set_field(COMMUNITY, field, value)


VALID_ANSWERS = [
    "Mara Voss",
    "A flooded port town; the water took everyone.",
    "Scavenged, traded, lied when I had to.",
    "Only my brother.",
    "I would lie. I would not abandon anyone.",
    "76561198000000001",
    "Former ferry pilot who now runs salt between camps.",
]


@pytest.fixture
def harness():
    h = Harness()
    h.bind("staff_queue_channel", STAFF_QUEUE)
    h.bind("parent_channel", PARENT)
    return h


@pytest.fixture
def valid_answers():
    return list(VALID_ANSWERS)
