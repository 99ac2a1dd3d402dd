from datetime import datetime, timezone

import pytest

from observability import admin_cli
from storage.applications import ApplicationStore
from storage.community_config import CommunityConfigStore


def test_tail_applications_filters_by_status(capsys):
    store = ApplicationStore()
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    store.supersede_and_create(community_id="100", applicant_id="u1", display_name="A", catalog_version="3", now=now)
    store.supersede_and_create(community_id="100", applicant_id="u1", display_name="A", catalog_version="3", now=now)

    lines = admin_cli.tail_applications(10, "expired")
    assert len(lines) == 1
    assert "EXPIRED" in lines[0]
    assert "superseded" in capsys.readouterr().out


def test_set_config_from_cli(capsys):
    admin_cli.main(["--set-config", "100", "staff_queue_channel", "200"])
    assert CommunityConfigStore().get("100").staff_queue_channel_id == "200"
    assert "staff_queue_channel_id: 200" in capsys.readouterr().out

    admin_cli.main(["--set-config", "100", "staff_queue_channel", "-"])
    assert CommunityConfigStore().get("100").staff_queue_channel_id is None


def test_set_config_rejects_bad_field():
    with pytest.raises(SystemExit):
        admin_cli.main(["--set-config", "100", "nope", "1"])
    with pytest.raises(SystemExit):
        admin_cli.main(["--set-config", "100", "pending_role", "abc"])
