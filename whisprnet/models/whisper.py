"""Whisper model - the access-scoped insight record delivered to managers."""

from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field, computed_field
from ulid import ULID

from whisprnet.models.scope import Integration, ItemType
from whisprnet.utils.errors import InvalidStatusTransition


class WhisperCategory(str, Enum):
    """Whisper categories."""
    WARNING = "warning"
    SUGGESTION = "suggestion"
    ALERT = "alert"
    INSIGHT = "insight"
    # Categories used by manually created whispers
    IMPROVEMENT = "improvement"
    OPTIMIZATION = "optimization"
    HEALTH = "health"
    COLLABORATION = "collaboration"
    RECOGNITION = "recognition"


class PriorityLabel(str, Enum):
    """Human readable priority."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_LEVELS = {
    PriorityLabel.CRITICAL: 1,
    PriorityLabel.HIGH: 2,
    PriorityLabel.MEDIUM: 3,
    PriorityLabel.LOW: 4,
}


def priority_label(priority: int) -> PriorityLabel:
    """Map a numeric priority (1-5) to its label."""
    if priority == 1:
        return PriorityLabel.CRITICAL
    if priority == 2:
        return PriorityLabel.HIGH
    if priority == 3:
        return PriorityLabel.MEDIUM
    return PriorityLabel.LOW


class WhisperStatus(str, Enum):
    """Delivery status."""
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"
    ARCHIVED = "archived"


_NEXT_STATUSES = {
    WhisperStatus.PENDING: {WhisperStatus.DELIVERED, WhisperStatus.FAILED, WhisperStatus.ARCHIVED},
    WhisperStatus.FAILED: {WhisperStatus.DELIVERED, WhisperStatus.ARCHIVED},
    WhisperStatus.DELIVERED: {WhisperStatus.ARCHIVED},
    WhisperStatus.ARCHIVED: set(),
}


class WhisperSource(str, Enum):
    """Who created the whisper."""
    AGENT = "agent"
    MANUAL = "manual"
    API = "api"


def generate_whisper_id() -> str:
    """Generate a text-based whisper ID (ULID format)."""
    return f"whspr_{ULID()}"


class WhisperContent(BaseModel):
    """Message body and suggested follow-ups."""
    message: str = Field(..., min_length=1, description="Insight text")
    suggested_actions: list[str] = Field(default_factory=list)
    rationale: Optional[str] = None


class SourceItem(BaseModel):
    """Raw identifier that produced a scoped whisper."""
    item_id: str
    item_type: ItemType


class ScopeInfo(BaseModel):
    """Scope a whisper was created for. Absent on organization-wide whispers."""
    manager_id: str
    scope_id: str
    integration: Integration
    source_items: list[SourceItem] = Field(default_factory=list)


class WhisperFeedback(BaseModel):
    """Reader feedback attached after delivery."""
    is_helpful: Optional[bool] = None
    comment: Optional[str] = None
    submitted_by: Optional[str] = None
    submitted_at: Optional[datetime] = None


class WhisperMetadata(BaseModel):
    """Generation metadata."""
    generated_at: Optional[datetime] = None
    generated_by: Optional[str] = None
    model_name: Optional[str] = None
    source: Optional[str] = Field(None, description="Source integration")
    event_id: Optional[str] = Field(None, description="Tagged event the whisper was derived from")
    confidence: float = Field(default=0.75, ge=0.0, le=1.0)


class Whisper(BaseModel):
    """Insight record visible to one manager, or organization-wide when scope_info is absent."""
    whisper_id: str = Field(default_factory=generate_whisper_id)
    organization_id: str = Field(..., description="Owning organization")
    source: WhisperSource = Field(default=WhisperSource.AGENT)
    title: str = Field(..., min_length=1)
    category: WhisperCategory = Field(default=WhisperCategory.INSIGHT)
    priority: int = Field(default=3, ge=1, le=5, description="1 (critical) to 5 (lowest)")
    content: WhisperContent
    scope_info: Optional[ScopeInfo] = None
    status: WhisperStatus = Field(default=WhisperStatus.PENDING)
    channel: str = Field(default="admin_dm", description="Delivery channel")
    feedback: Optional[WhisperFeedback] = None
    metadata: WhisperMetadata = Field(default_factory=WhisperMetadata)
    delivered_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field
    @property
    def priority_text(self) -> PriorityLabel:
        return priority_label(self.priority)

    @property
    def is_organization_wide(self) -> bool:
        return self.scope_info is None

    def _transition(self, status: WhisperStatus) -> None:
        if status not in _NEXT_STATUSES[self.status]:
            raise InvalidStatusTransition(
                f"Cannot move whisper {self.whisper_id} from {self.status.value} to {status.value}"
            )
        self.status = status

    def mark_delivered(self) -> None:
        self._transition(WhisperStatus.DELIVERED)
        self.delivered_at = datetime.now(timezone.utc)

    def mark_failed(self) -> None:
        self._transition(WhisperStatus.FAILED)

    def archive(self) -> None:
        self._transition(WhisperStatus.ARCHIVED)

    def to_document(self) -> dict:
        """Serialize for storage."""
        return self.model_dump(mode="json", exclude_none=True)
