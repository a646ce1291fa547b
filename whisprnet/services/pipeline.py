"""Event pipeline - tag, classify and fan out one integration event at a time."""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from whisprnet.models.scope import Integration
from whisprnet.models.tagged_event import ProcessingStatus, TaggedEvent
from whisprnet.models.whisper import Whisper
from whisprnet.services.insight_classifier import format_insight_to_whisper
from whisprnet.services.metadata_tagger import (
    METADATA_TABLES,
    BatchResult,
    MetadataStore,
    generate_event_id,
    process_metadata,
)
from whisprnet.services.scope_matcher import ScopeLookup
from whisprnet.services.supabase_client import (
    find_active_scopes,
    insert_metadata,
    insert_whisper,
    update_metadata_status,
)
from whisprnet.services.whisper_fanout import WhisperStore, generate_whispers
from whisprnet.utils.logging import LogContext, get_structured_logger, log_timing

logger = get_structured_logger(__name__)

InsightTextFunction = Callable[[TaggedEvent], Union[Optional[str], Awaitable[Optional[str]]]]
StatusStore = Callable[..., Awaitable[Any]]


@dataclass
class PipelineResult:
    """Tagged event and the whispers created from it."""
    tagged_event: TaggedEvent
    whispers: list[Whisper] = field(default_factory=list)


async def _set_status(
    tagged_event: TaggedEvent,
    status: ProcessingStatus,
    status_store: StatusStore,
    error: Optional[str] = None
) -> None:
    tagged_event.advance_status(status, error)
    await status_store(
        METADATA_TABLES[tagged_event.integration],
        tagged_event.organization_id,
        tagged_event.event_id,
        status.value,
        error_message=tagged_event.processing_error,
        processed_at=tagged_event.processed_at.isoformat() if tagged_event.processed_at else None
    )


async def process_event(
    event: dict,
    integration: Union[Integration, str],
    organization_id: str,
    insight_fn: InsightTextFunction,
    lookup: ScopeLookup = find_active_scopes,
    metadata_store: MetadataStore = insert_metadata,
    status_store: StatusStore = update_metadata_status,
    whisper_store: WhisperStore = insert_whisper,
    on_error: Optional[str] = None,
    best_effort: Optional[bool] = None
) -> PipelineResult:
    """
    Run one event through extract, match, tag, classify and fanout.

    insight_fn produces the raw insight text for the tagged event (None skips
    whisper generation). Failures after the event is stored mark it failed
    and are re-raised.
    """
    tagged = await process_metadata(
        event,
        integration,
        organization_id,
        lookup=lookup,
        store=metadata_store,
        on_error=on_error
    )
    context = LogContext(organization_id, tagged.integration.value, tagged.event_id)

    try:
        await _set_status(tagged, ProcessingStatus.PROCESSING, status_store)

        insight = insight_fn(tagged)
        if inspect.isawaitable(insight):
            insight = await insight

        whispers: list[Whisper] = []
        if insight:
            with log_timing("generate_whispers", logger=logger, context=context):
                whispers = await generate_whispers(
                    tagged,
                    format_insight_to_whisper(insight),
                    store=whisper_store,
                    best_effort=best_effort
                )
        else:
            logger.debug("No insight produced for event", context)

        await _set_status(tagged, ProcessingStatus.PROCESSED, status_store)
    except Exception as e:
        logger.error("Event pipeline failed", context, error=str(e), exc_info=True)
        if tagged.processing_status not in (ProcessingStatus.PROCESSED, ProcessingStatus.FAILED):
            try:
                await _set_status(tagged, ProcessingStatus.FAILED, status_store, error=str(e))
            except Exception as status_error:
                logger.warning(
                    "Failed to record event failure",
                    context,
                    error=str(status_error)
                )
        raise

    logger.info(
        "Event pipeline completed",
        context,
        match_count=len(tagged.scope_matches),
        whisper_count=len(whispers)
    )
    return PipelineResult(tagged_event=tagged, whispers=whispers)


async def process_batch(
    events: list[dict],
    integration: Union[Integration, str],
    organization_id: str,
    insight_fn: InsightTextFunction,
    **kwargs: Any
) -> BatchResult:
    """Run independent pipelines for each event; failures are logged and collected."""
    integration_name = getattr(integration, "value", integration)
    result = BatchResult()

    for index, event in enumerate(events):
        try:
            result.succeeded.append(
                await process_event(event, integration, organization_id, insight_fn, **kwargs)
            )
        except Exception as e:
            event_id = generate_event_id(event, organization_id) if isinstance(event, dict) else None
            logger.error(
                "Error processing event in batch",
                LogContext(organization_id, integration_name, event_id),
                item_index=index,
                error=str(e)
            )
            result.failed.append({"index": index, "event_id": event_id, "error": str(e)})

    logger.info(
        "Event batch finished",
        LogContext(organization_id, integration_name),
        succeeded=len(result.succeeded),
        failed=len(result.failed)
    )
    return result
