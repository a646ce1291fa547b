"""Tagged event model - an integration event annotated with its scope matches."""

from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field

from whisprnet.models.scope import Integration, ScopeMatch
from whisprnet.utils.errors import InvalidStatusTransition


class ProcessingStatus(str, Enum):
    """Processing status of a tagged event."""
    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


# Allowed forward moves; processed and failed are terminal
_NEXT_STATUSES = {
    ProcessingStatus.PENDING: {ProcessingStatus.PROCESSING, ProcessingStatus.FAILED},
    ProcessingStatus.PROCESSING: {ProcessingStatus.PROCESSED, ProcessingStatus.FAILED},
    ProcessingStatus.PROCESSED: set(),
    ProcessingStatus.FAILED: set(),
}


class TaggedEvent(BaseModel):
    """
    Integration event annotated with the scopes it matched.

    Integration-specific identifier fields (user, channel, userId, repoId,
    emailAddress, ...) are kept verbatim as extra fields.
    """
    model_config = ConfigDict(extra="allow")

    event_id: str = Field(..., description="Stable event ID")
    organization_id: str = Field(..., description="Owning organization")
    integration: Integration = Field(..., description="Source integration")
    event_type: str = Field(default="unknown", description="Integration event type")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event happened"
    )
    processing_status: ProcessingStatus = Field(default=ProcessingStatus.PENDING)
    scope_matches: list[ScopeMatch] = Field(
        default_factory=list,
        description="Scopes active at tagging time that contain one of the event's identifiers"
    )
    scope_lookup_failed: bool = Field(
        default=False,
        description="Scope store was unavailable when the event was tagged"
    )
    processing_error: Optional[str] = None
    processed_at: Optional[datetime] = None

    @property
    def is_scoped(self) -> bool:
        return len(self.scope_matches) > 0

    def advance_status(self, status: ProcessingStatus, error: Optional[str] = None) -> None:
        """Move processing_status forward, rejecting regressions."""
        status = ProcessingStatus(status)
        if status not in _NEXT_STATUSES[self.processing_status]:
            raise InvalidStatusTransition(
                f"Cannot move event {self.event_id} from "
                f"{self.processing_status.value} to {status.value}"
            )
        self.processing_status = status
        if status == ProcessingStatus.FAILED:
            self.processing_error = error
        if status in (ProcessingStatus.PROCESSED, ProcessingStatus.FAILED):
            self.processed_at = datetime.now(timezone.utc)

    def to_document(self) -> dict:
        """Serialize for storage."""
        return self.model_dump(mode="json")
