"""Insight scope models - a manager's visibility grant for one integration."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Integration(str, Enum):
    """Supported third-party integrations."""
    SLACK = "slack"
    TEAMS = "teams"
    DISCORD = "discord"
    GMAIL = "gmail"
    GITHUB = "github"

    @classmethod
    def parse(cls, value) -> Optional["Integration"]:
        """Return the matching member, or None for unknown integrations."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


class ItemType(str, Enum):
    """Kinds of items a scope can contain."""
    USER = "user"
    CHANNEL = "channel"
    GROUP = "group"


class ScopeItem(BaseModel):
    """A single user, channel or group inside a scope."""
    item_id: str = Field(..., min_length=1, description="Integration-native identifier")
    item_type: ItemType = Field(..., description="user, channel or group")
    display_name: Optional[str] = Field(None, description="Human readable name")


class Scope(BaseModel):
    """Insight scope owned by one manager for one integration."""
    scope_id: str = Field(..., description="Scope ID (text)")
    organization_id: str = Field(..., description="Organization ID (text FK)")
    manager_id: str = Field(..., description="Manager user ID (text FK)")
    integration: Integration = Field(..., description="Integration this scope applies to")
    scope_items: list[ScopeItem] = Field(default_factory=list, description="Observed users/channels/groups")
    is_active: bool = Field(default=True, description="Inactive scopes never match")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="after")
    def check_unique_items(self) -> "Scope":
        """Reject duplicate (item_id, item_type) pairs."""
        seen = set()
        for item in self.scope_items:
            key = (item.item_id, item.item_type)
            if key in seen:
                raise ValueError(
                    f"Duplicate scope item {item.item_type.value}:{item.item_id}"
                )
            seen.add(key)
        return self

    def contains(self, item_id: str, item_type: ItemType) -> bool:
        return any(
            item.item_id == item_id and item.item_type == item_type
            for item in self.scope_items
        )


class ScopeMatch(BaseModel):
    """Reference to a scope an event matched at tagging time."""
    model_config = ConfigDict(frozen=True)

    scope_id: str
    manager_id: str
    organization_id: str

    @classmethod
    def from_scope(cls, scope: Scope) -> "ScopeMatch":
        return cls(
            scope_id=scope.scope_id,
            manager_id=scope.manager_id,
            organization_id=scope.organization_id,
        )


class Identifier(BaseModel):
    """An (item_id, item_type) pair extracted from a raw event."""
    model_config = ConfigDict(frozen=True)

    item_id: str
    item_type: ItemType
