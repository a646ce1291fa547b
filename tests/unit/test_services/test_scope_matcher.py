"""Tests for scope matching."""

import pytest

from whisprnet.models.scope import Identifier, Integration, ItemType, ScopeMatch
from whisprnet.services.scope_matcher import ScopeMatchResult, dedupe_matches, match_scopes
from whisprnet.utils.errors import ConfigurationError
from tests.utils.factories import create_scope


U1 = Identifier(item_id="U1", item_type=ItemType.USER)
C1 = Identifier(item_id="C1", item_type=ItemType.CHANNEL)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_matches_across_managers(scope_store, slack_scopes):
    result = await match_scopes([U1, C1], "org_1", Integration.SLACK, lookup=scope_store.find_active_scopes)

    assert not result.lookup_failed
    assert {match.scope_id for match in result.matches} == {"scope_alice", "scope_bob"}
    assert all(match.organization_id == "org_1" for match in result.matches)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scope_matched_by_two_identifiers_counts_once(scope_store, slack_scopes):
    result = await match_scopes([U1, C1], "org_1", "slack", lookup=scope_store.find_active_scopes)

    alice_matches = [match for match in result.matches if match.scope_id == "scope_alice"]
    assert alice_matches == [ScopeMatch(scope_id="scope_alice", manager_id="mgr_alice", organization_id="org_1")]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_other_organizations_never_match(scope_store, slack_scopes):
    result = await match_scopes([U1], "org_1", Integration.SLACK, lookup=scope_store.find_active_scopes)
    assert "scope_other_org" not in {match.scope_id for match in result.matches}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_item_type_must_match(scope_store):
    scope_store.add(create_scope(items=[("C1", ItemType.USER)]))
    result = await match_scopes([C1], "org_1", Integration.SLACK, lookup=scope_store.find_active_scopes)
    assert result.matches == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_integration_must_match(scope_store):
    scope_store.add(create_scope(integration=Integration.TEAMS, items=[("U1", ItemType.USER)]))
    result = await match_scopes([U1], "org_1", Integration.SLACK, lookup=scope_store.find_active_scopes)
    assert result.matches == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_inactive_scopes_do_not_match(scope_store, slack_scopes):
    scope_store.deactivate("scope_bob")
    result = await match_scopes([C1], "org_1", Integration.SLACK, lookup=scope_store.find_active_scopes)
    assert [match.scope_id for match in result.matches] == ["scope_alice"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_no_identifiers_skips_store(scope_store, slack_scopes):
    result = await match_scopes([], "org_1", Integration.SLACK, lookup=scope_store.find_active_scopes)

    assert result == ScopeMatchResult()
    assert not result
    assert scope_store.lookups == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lookup_failure_restrict_mode(scope_store, slack_scopes):
    scope_store.unavailable = True
    result = await match_scopes(
        [U1], "org_1", Integration.SLACK,
        lookup=scope_store.find_active_scopes,
        on_error="restrict"
    )
    assert result.matches == []
    assert result.lookup_failed is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lookup_failure_broaden_mode(scope_store, slack_scopes):
    scope_store.unavailable = True
    result = await match_scopes(
        [U1], "org_1", Integration.SLACK,
        lookup=scope_store.find_active_scopes,
        on_error="broaden"
    )
    assert result.matches == []
    assert result.lookup_failed is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_failure_mode_rejected(scope_store):
    with pytest.raises(ConfigurationError):
        await match_scopes([U1], "org_1", Integration.SLACK, lookup=scope_store.find_active_scopes, on_error="ignore")


@pytest.mark.unit
def test_dedupe_keeps_first_occurrence():
    first = ScopeMatch(scope_id="s1", manager_id="m1", organization_id="o")
    second = ScopeMatch(scope_id="s2", manager_id="m2", organization_id="o")
    assert dedupe_matches([first, second, first]) == [first, second]
