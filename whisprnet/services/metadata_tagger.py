"""Metadata tagger - annotate integration events with scope matches and persist them."""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from whisprnet.models.scope import Integration
from whisprnet.models.tagged_event import TaggedEvent
from whisprnet.services.identifier_extractor import extract_identifiers
from whisprnet.services.scope_matcher import ScopeLookup, match_scopes
from whisprnet.services.supabase_client import find_active_scopes, insert_metadata
from whisprnet.utils.errors import UnsupportedIntegrationError
from whisprnet.utils.logging import LogContext, get_structured_logger, log_timing

logger = get_structured_logger(__name__)

METADATA_TABLES: dict[Integration, str] = {
    Integration.SLACK: "slack_metadata",
    Integration.TEAMS: "teams_metadata",
    Integration.DISCORD: "discord_metadata",
    Integration.GMAIL: "gmail_metadata",
    Integration.GITHUB: "github_metadata",
}

# Raw keys that would collide with values computed at tagging time
_RESERVED_KEYS = set(TaggedEvent.model_fields) | {
    "eventId",
    "eventType",
    "organizationId",
    "scopeMatches",
    "processingStatus",
}

MetadataStore = Callable[[str, dict], Awaitable[Any]]


@dataclass
class BatchResult:
    """Outcome of a batch run with per-item error isolation."""
    succeeded: list = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


def generate_event_id(event: dict, organization_id: Optional[str] = None) -> str:
    """
    Generate deterministic event ID.

    Uses the event's own ID when present, otherwise hashes the organization
    together with the event body so identical payloads from different
    tenants never share an ID.
    """
    for key in ("eventId", "event_id", "id"):
        value = event.get(key)
        if value:
            return str(value)

    body_str = json.dumps({"organization_id": organization_id, "event": event}, sort_keys=True, default=str)
    return hashlib.sha1(body_str.encode()).hexdigest()


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return datetime.now(timezone.utc)
    if isinstance(value, str) and value:
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            pass
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def resolve_integration(integration: Union[Integration, str]) -> Integration:
    """Return the Integration member or raise for unsupported integrations."""
    resolved = Integration.parse(integration)
    if resolved is None:
        raise UnsupportedIntegrationError(f"Unsupported integration: {integration}")
    return resolved


async def tag_metadata(
    event: dict,
    integration: Union[Integration, str],
    organization_id: str,
    lookup: ScopeLookup = find_active_scopes,
    on_error: Optional[str] = None
) -> TaggedEvent:
    """Extract identifiers, match them against active scopes and attach the matches."""
    resolved = resolve_integration(integration)
    event = dict(event or {})
    event_id = generate_event_id(event, organization_id)
    context = LogContext(organization_id, resolved.value, event_id)

    identifiers = extract_identifiers(event, resolved)
    result = await match_scopes(
        identifiers,
        organization_id,
        resolved,
        lookup=lookup,
        on_error=on_error,
        context=context
    )

    extra_fields = {
        key: value
        for key, value in event.items()
        if key not in _RESERVED_KEYS and not str(key).startswith("_")
    }
    tagged = TaggedEvent(
        event_id=event_id,
        organization_id=organization_id,
        integration=resolved,
        event_type=str(event.get("eventType") or event.get("event_type") or event.get("type") or "unknown"),
        timestamp=_parse_timestamp(event.get("timestamp") or event.get("ts")),
        scope_matches=result.matches,
        scope_lookup_failed=result.lookup_failed,
        **extra_fields
    )

    if tagged.is_scoped:
        logger.debug(
            "Tagged metadata with scope information",
            context,
            match_count=len(tagged.scope_matches)
        )
    return tagged


async def process_metadata(
    event: dict,
    integration: Union[Integration, str],
    organization_id: str,
    lookup: ScopeLookup = find_active_scopes,
    store: MetadataStore = insert_metadata,
    on_error: Optional[str] = None
) -> TaggedEvent:
    """
    Tag an event and persist it to its integration table.

    Exactly one write per event; persistence errors propagate to the caller.
    """
    resolved = resolve_integration(integration)
    logger.debug(
        "Processing metadata",
        LogContext(organization_id, resolved.value)
    )

    tagged = await tag_metadata(event, resolved, organization_id, lookup=lookup, on_error=on_error)
    context = LogContext(organization_id, resolved.value, tagged.event_id)

    try:
        with log_timing("store_metadata", logger=logger, context=context):
            await store(METADATA_TABLES[resolved], tagged.to_document())
    except Exception as e:
        logger.error("Error storing metadata", context, error=str(e))
        raise

    logger.info(
        "Metadata processed and stored",
        context,
        has_scopes=tagged.is_scoped,
        match_count=len(tagged.scope_matches),
        scope_lookup_failed=tagged.scope_lookup_failed
    )
    return tagged


async def batch_process_metadata(
    events: list[dict],
    integration: Union[Integration, str],
    organization_id: str,
    lookup: ScopeLookup = find_active_scopes,
    store: MetadataStore = insert_metadata,
    on_error: Optional[str] = None
) -> BatchResult:
    """Process events independently; one failure never blocks the rest."""
    integration_name = getattr(integration, "value", integration)
    logger.debug(
        f"Batch processing {len(events)} metadata items",
        LogContext(organization_id, integration_name)
    )

    result = BatchResult()
    for index, event in enumerate(events):
        try:
            tagged = await process_metadata(
                event,
                integration,
                organization_id,
                lookup=lookup,
                store=store,
                on_error=on_error
            )
            result.succeeded.append(tagged)
        except Exception as e:
            event_id = generate_event_id(event, organization_id) if isinstance(event, dict) else None
            logger.error(
                "Error processing metadata item",
                LogContext(organization_id, integration_name, event_id),
                item_index=index,
                error=str(e)
            )
            result.failed.append({"index": index, "event_id": event_id, "error": str(e)})

    logger.info(
        "Batch metadata processing finished",
        LogContext(organization_id, integration_name),
        succeeded=len(result.succeeded),
        failed=len(result.failed)
    )
    return result
