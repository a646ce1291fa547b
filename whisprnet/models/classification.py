"""Insight classification model."""

from pydantic import BaseModel, Field

from whisprnet.models.whisper import PriorityLabel, WhisperCategory, PRIORITY_LEVELS


class InsightClassification(BaseModel):
    """Result of keyword classification of a raw insight."""
    category: WhisperCategory = Field(..., description="warning, suggestion, alert or insight")
    priority: PriorityLabel = Field(..., description="critical, high, medium or low")
    title: str = Field(..., description="Fixed title for the category")
    suggested_actions: list[str] = Field(default_factory=list)

    @property
    def priority_level(self) -> int:
        """Numeric whisper priority (1 = critical)."""
        return PRIORITY_LEVELS[self.priority]
