"""Whisper visibility, feedback and delivery-status updates."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional
from pydantic import BaseModel, Field

from whisprnet.models.whisper import Whisper, WhisperFeedback
from whisprnet.services.supabase_client import get_manager_whispers, update_whisper
from whisprnet.utils.errors import WhisperAccessError
from whisprnet.utils.logging import LogContext, get_structured_logger, mask_identifier

logger = get_structured_logger(__name__)

WhisperUpdate = Callable[[str, dict], Awaitable[Any]]
ManagerWhisperQuery = Callable[[str, str, int], Awaitable[list[dict]]]


class ViewerRole(str, Enum):
    """Roles known to the access-control layer."""
    SUPER_ADMIN = "super_admin"
    ORG_ADMIN = "org_admin"
    TEAM_MANAGER = "team_manager"
    EMPLOYEE = "employee"


class Viewer(BaseModel):
    """Authenticated caller as identified by the API layer."""
    user_id: str = Field(..., description="User ID")
    organization_id: str = Field(..., description="Caller's organization")
    role: ViewerRole = Field(default=ViewerRole.TEAM_MANAGER)


def can_view_whisper(whisper: Whisper, viewer: Viewer) -> bool:
    """
    Scoped whispers are visible to their manager and organization admins;
    organization-wide whispers to every admin and manager of the organization.
    """
    if viewer.role == ViewerRole.SUPER_ADMIN:
        return True
    if whisper.organization_id != viewer.organization_id:
        return False
    if viewer.role == ViewerRole.ORG_ADMIN:
        return True
    if viewer.role != ViewerRole.TEAM_MANAGER:
        return False
    if whisper.scope_info is None:
        return True
    return whisper.scope_info.manager_id == viewer.user_id


def visible_whispers(whispers: Iterable[Whisper], viewer: Viewer) -> list[Whisper]:
    return [whisper for whisper in whispers if can_view_whisper(whisper, viewer)]


def _check_access(whisper: Whisper, viewer: Viewer, action: str) -> None:
    if not can_view_whisper(whisper, viewer):
        logger.warning(
            f"Denied whisper {action}",
            LogContext(organization_id=viewer.organization_id),
            whisper_id=whisper.whisper_id,
            user_id=mask_identifier(viewer.user_id),
            role=viewer.role.value
        )
        raise WhisperAccessError(f"You do not have access to whisper {whisper.whisper_id}")


async def list_manager_whispers(
    viewer: Viewer,
    limit: int = 10,
    query: ManagerWhisperQuery = get_manager_whispers
) -> list[Whisper]:
    """Whispers scoped to the viewer plus organization-wide whispers."""
    rows = await query(viewer.user_id, viewer.organization_id, limit)
    return visible_whispers((Whisper.model_validate(row) for row in rows), viewer)


async def submit_feedback(
    whisper: Whisper,
    viewer: Viewer,
    is_helpful: bool,
    comment: Optional[str] = None,
    store: WhisperUpdate = update_whisper
) -> Whisper:
    """Attach reader feedback to a whisper the viewer can see."""
    _check_access(whisper, viewer, "feedback")

    whisper.feedback = WhisperFeedback(
        is_helpful=is_helpful,
        comment=comment or None,
        submitted_by=viewer.user_id,
        submitted_at=datetime.now(timezone.utc),
    )
    await store(whisper.whisper_id, {"feedback": whisper.feedback.model_dump(mode="json")})

    logger.info(
        "Whisper feedback submitted",
        LogContext(organization_id=whisper.organization_id),
        whisper_id=whisper.whisper_id,
        is_helpful=is_helpful
    )
    return whisper


async def record_delivery(
    whisper: Whisper,
    delivered: bool,
    store: WhisperUpdate = update_whisper
) -> Whisper:
    """Persist the outcome reported by the delivery channel."""
    if delivered:
        whisper.mark_delivered()
    else:
        whisper.mark_failed()

    updates = {"status": whisper.status.value}
    if whisper.delivered_at is not None:
        updates["delivered_at"] = whisper.delivered_at.isoformat()
    await store(whisper.whisper_id, updates)

    logger.info(
        "Whisper delivery recorded",
        LogContext(organization_id=whisper.organization_id),
        whisper_id=whisper.whisper_id,
        status=whisper.status.value
    )
    return whisper


async def archive_whisper(
    whisper: Whisper,
    viewer: Viewer,
    store: WhisperUpdate = update_whisper
) -> Whisper:
    """Archive a whisper. Archival is terminal."""
    _check_access(whisper, viewer, "archive")
    whisper.archive()
    await store(whisper.whisper_id, {"status": whisper.status.value})
    return whisper
