"""Tests for identifier extraction."""

import pytest

from whisprnet.models.scope import Identifier, Integration, ItemType
from whisprnet.models.tagged_event import TaggedEvent
from whisprnet.models.whisper import SourceItem
from whisprnet.services.identifier_extractor import (
    EXTRACTION_RULES,
    extract_identifiers,
    extract_source_items,
    validate_extraction_rules,
)
from whisprnet.utils.errors import ConfigurationError
from tests.fixtures.integration_events import (
    discord_message_event,
    github_push_event,
    gmail_metadata_event,
    slack_message_event,
    teams_message_event,
)


def ids(identifiers):
    return {(identifier.item_id, identifier.item_type) for identifier in identifiers}


@pytest.mark.unit
def test_slack_user_and_channel():
    result = extract_identifiers({"user": "U1", "channel": "C1"}, "slack")
    assert ids(result) == {("U1", ItemType.USER), ("C1", ItemType.CHANNEL)}


@pytest.mark.unit
def test_slack_empty_event():
    assert extract_identifiers({}, "slack") == []


@pytest.mark.unit
@pytest.mark.parametrize("event_factory,integration,expected", [
    (teams_message_event, Integration.TEAMS, {("teams-user-1", ItemType.USER), ("19:channel@thread", ItemType.CHANNEL)}),
    (discord_message_event, Integration.DISCORD, {("80351110224678912", ItemType.USER), ("41771983423143937", ItemType.CHANNEL)}),
    (gmail_metadata_event, Integration.GMAIL, {("dana@example.com", ItemType.USER)}),
    (github_push_event, Integration.GITHUB, {("octocat", ItemType.USER), ("1296269", ItemType.GROUP)}),
])
def test_rule_per_integration(event_factory, integration, expected):
    assert ids(extract_identifiers(event_factory(), integration)) == expected


@pytest.mark.unit
def test_fields_of_other_integrations_are_ignored():
    """Slack uses user/channel, so camelCase ids are not picked up."""
    assert extract_identifiers({"userId": "U1", "channelId": "C1"}, "slack") == []
    assert extract_identifiers(slack_message_event(), Integration.TEAMS) == []


@pytest.mark.unit
def test_unknown_integration_is_empty():
    assert extract_identifiers({"user": "U1", "userId": "U1"}, "jira") == []


@pytest.mark.unit
def test_integration_name_is_case_insensitive():
    assert ids(extract_identifiers({"user": "U1"}, "Slack")) == {("U1", ItemType.USER)}


@pytest.mark.unit
def test_blank_and_structured_values_are_skipped():
    event = {"user": "  ", "channel": {"id": "C1"}}
    assert extract_identifiers(event, Integration.SLACK) == []
    assert extract_identifiers(None, Integration.SLACK) == []


@pytest.mark.unit
def test_order_follows_rule_table():
    result = extract_identifiers({"channel": "C1", "user": "U1"}, Integration.SLACK)
    assert result == [
        Identifier(item_id="U1", item_type=ItemType.USER),
        Identifier(item_id="C1", item_type=ItemType.CHANNEL),
    ]


@pytest.mark.unit
def test_every_integration_has_a_rule():
    assert set(EXTRACTION_RULES) == set(Integration)


@pytest.mark.unit
def test_missing_extraction_rule_is_rejected():
    rules = {key: value for key, value in EXTRACTION_RULES.items() if key != Integration.GMAIL}

    with pytest.raises(ConfigurationError, match="gmail"):
        validate_extraction_rules(rules)


@pytest.mark.unit
def test_extracts_from_tagged_event_extra_fields():
    tagged = TaggedEvent(
        event_id="Ev1",
        organization_id="org_1",
        integration=Integration.SLACK,
        user="U1",
        channel="C1",
    )
    assert extract_source_items(tagged, tagged.integration) == [
        SourceItem(item_id="U1", item_type=ItemType.USER),
        SourceItem(item_id="C1", item_type=ItemType.CHANNEL),
    ]
