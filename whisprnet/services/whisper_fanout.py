"""Whisper fanout - turn one tagged event into one whisper per matched scope."""

import copy
import inspect
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from whisprnet.models.tagged_event import TaggedEvent
from whisprnet.models.whisper import ScopeInfo, Whisper, WhisperSource
from whisprnet.services.identifier_extractor import extract_source_items
from whisprnet.services.metadata_tagger import BatchResult
from whisprnet.services.supabase_client import insert_whisper
from whisprnet.utils.config import PipelineConfig
from whisprnet.utils.errors import FanoutError, InvalidEventError
from whisprnet.utils.logging import LogContext, get_structured_logger

logger = get_structured_logger(__name__)

CreateWhisper = Callable[[dict], Awaitable[Any]]
WhisperStore = Callable[[dict], Awaitable[Any]]
InsightFunction = Callable[[TaggedEvent], Union[Optional[dict], Awaitable[Optional[dict]]]]


def _event_context(tagged_event: TaggedEvent) -> LogContext:
    return LogContext(
        tagged_event.organization_id,
        tagged_event.integration.value,
        tagged_event.event_id
    )


async def create_scoped_whispers(
    whisper_data: dict,
    tagged_event: TaggedEvent,
    create_fn: CreateWhisper,
    best_effort: Optional[bool] = None
) -> list:
    """
    Create one whisper per scope match, or one organization-wide whisper.

    Events whose scope lookup failed in restrict mode get no whisper at all.
    By default the first create_fn error aborts the fanout; with best_effort
    every match is attempted and failures are raised together as FanoutError.
    """
    context = _event_context(tagged_event)
    best_effort = PipelineConfig.FANOUT_BEST_EFFORT if best_effort is None else best_effort

    if not tagged_event.scope_matches:
        if tagged_event.scope_lookup_failed:
            logger.warning(
                "Scope lookup failed for event, withholding organization-wide whisper",
                context
            )
            return []
        whisper = await create_fn(copy.deepcopy(whisper_data))
        logger.debug("Created organization-wide whisper", context)
        return [whisper]

    source_items = extract_source_items(tagged_event, tagged_event.integration)
    whispers = []
    failures = []

    for match in tagged_event.scope_matches:
        scoped_data = copy.deepcopy(whisper_data)
        scoped_data["scope_info"] = ScopeInfo(
            manager_id=match.manager_id,
            scope_id=match.scope_id,
            integration=tagged_event.integration,
            source_items=source_items,
        ).model_dump(mode="json")

        try:
            whispers.append(await create_fn(scoped_data))
        except Exception as e:
            logger.error(
                "Error creating scoped whisper",
                context,
                scope_id=match.scope_id,
                manager_id=match.manager_id,
                error=str(e)
            )
            if not best_effort:
                raise
            failures.append({
                "scope_id": match.scope_id,
                "manager_id": match.manager_id,
                "error": str(e),
            })

    if failures:
        raise FanoutError(created=whispers, failures=failures)

    logger.debug("Created scoped whispers", context, whisper_count=len(whispers))
    return whispers


def make_whisper_creator(store: WhisperStore = insert_whisper) -> CreateWhisper:
    """Build a create_fn that validates whisper data and persists it."""
    async def create_whisper(data: dict) -> Whisper:
        whisper = Whisper.model_validate(data)
        await store(whisper.to_document())
        return whisper

    return create_whisper


async def generate_whispers(
    tagged_event: TaggedEvent,
    whisper_data: dict,
    store: WhisperStore = insert_whisper,
    best_effort: Optional[bool] = None
) -> list[Whisper]:
    """Stamp organization and generation metadata onto whisper data and fan it out."""
    if tagged_event is None or not tagged_event.organization_id:
        raise InvalidEventError("Invalid metadata provided: missing organization_id")

    context = _event_context(tagged_event)
    base_whisper_data = {
        **whisper_data,
        "organization_id": tagged_event.organization_id,
        "source": WhisperSource.AGENT.value,
        "metadata": {
            "generated_at": datetime.now(timezone.utc),
            "source": tagged_event.integration.value,
            "event_id": tagged_event.event_id,
            **(whisper_data.get("metadata") or {}),
        },
    }

    whispers = await create_scoped_whispers(
        base_whisper_data,
        tagged_event,
        make_whisper_creator(store),
        best_effort=best_effort
    )

    logger.info(
        f"Created {len(whispers)} whispers from metadata",
        context,
        whisper_ids=[whisper.whisper_id for whisper in whispers]
    )
    return whispers


async def batch_generate_whispers(
    tagged_events: list[TaggedEvent],
    insight_fn: InsightFunction,
    store: WhisperStore = insert_whisper,
    best_effort: Optional[bool] = None
) -> BatchResult:
    """
    Generate whispers for many tagged events with per-event error isolation.

    insight_fn returns whisper data for an event, or None to skip it.
    """
    result = BatchResult()

    for tagged_event in tagged_events:
        try:
            whisper_data = insight_fn(tagged_event)
            if inspect.isawaitable(whisper_data):
                whisper_data = await whisper_data
            if not whisper_data:
                continue
            result.succeeded.extend(
                await generate_whispers(tagged_event, whisper_data, store=store, best_effort=best_effort)
            )
        except Exception as e:
            logger.error(
                "Error in batch whisper generation",
                _event_context(tagged_event),
                error=str(e)
            )
            result.failed.append({"event_id": tagged_event.event_id, "error": str(e)})

    return result
