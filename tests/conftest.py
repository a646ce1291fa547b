"""Shared pytest fixtures and configuration."""

import os
import pytest
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("SCOPE_LOOKUP_FAILURE_MODE", "restrict")
os.environ.setdefault("LOG_FORMAT", "text")

from whisprnet.models.scope import Integration, ItemType
from whisprnet.models.tagged_event import TaggedEvent
from tests.utils.factories import create_scope
from tests.utils.fakes import InMemoryMetadataStore, InMemoryScopeStore, InMemoryWhisperStore


@pytest.fixture
def scope_store():
    """Empty in-memory scope store."""
    return InMemoryScopeStore()


@pytest.fixture
def metadata_store():
    """Empty in-memory tagged event store."""
    return InMemoryMetadataStore()


@pytest.fixture
def whisper_store():
    """Empty in-memory whisper store."""
    return InMemoryWhisperStore()


@pytest.fixture
def slack_scopes(scope_store):
    """Two managers watching overlapping Slack users/channels in org_1, one in org_2."""
    alice = scope_store.add(create_scope(
        scope_id="scope_alice",
        manager_id="mgr_alice",
        items=[("U1", ItemType.USER), ("C1", ItemType.CHANNEL)],
    ))
    bob = scope_store.add(create_scope(
        scope_id="scope_bob",
        manager_id="mgr_bob",
        items=[("C1", ItemType.CHANNEL)],
    ))
    other_org = scope_store.add(create_scope(
        organization_id="org_2",
        scope_id="scope_other_org",
        manager_id="mgr_carol",
        items=[("U1", ItemType.USER)],
    ))
    return {"alice": alice, "bob": bob, "other_org": other_org}


@pytest.fixture
def sample_slack_event():
    """Slack message metadata event."""
    return {
        "eventId": "Ev123456",
        "type": "message",
        "user": "U1",
        "channel": "C1",
        "ts": "1733745600.000100",
        "messageLength": 42,
    }


@pytest.fixture
def unscoped_tagged_event():
    """Tagged event that matched no scope."""
    return TaggedEvent(
        event_id="Ev_unscoped",
        organization_id="org_1",
        integration=Integration.SLACK,
        event_type="message",
        user="U9",
        channel="C9",
    )


@pytest.fixture
def burnout_insight():
    return "This team shows signs of burnout and urgent overwork"


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
