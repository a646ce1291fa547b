"""Supabase client wrapper and document store operations for scopes, tagged events and whispers."""

import json
from typing import Optional
from supabase import create_client, Client
from supabase.client import ClientOptions

from whisprnet.models.scope import Integration, ItemType, Scope
from whisprnet.utils.config import PipelineConfig
from whisprnet.utils.errors import (
    MetadataStoreError,
    ScopeStoreError,
    StoreError,
    WhisperStoreError,
)
from whisprnet.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

SCOPES_TABLE = "insight_scopes"
WHISPERS_TABLE = "whispers"

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        try:
            url, key = PipelineConfig.supabase_credentials()
        except Exception as e:
            raise StoreError(str(e)) from e

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", supabase_url=url)

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                error_type=exc_type.__name__
            )
        return False


def scope_item_filter(item_id: str, item_type: ItemType) -> str:
    """JSON containment value matching one entry of the jsonb scope_items column."""
    return json.dumps([{"item_id": item_id, "item_type": ItemType(item_type).value}])


# Insight scope lookups (read-only; scope CRUD lives elsewhere)
async def find_active_scopes(
    organization_id: str,
    integration: Integration,
    item_id: str,
    item_type: ItemType
) -> list[Scope]:
    """Get active scopes of an organization whose items contain (item_id, item_type)."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table(SCOPES_TABLE)
                .select("*")
                .eq("organization_id", organization_id)
                .eq("integration", Integration(integration).value)
                .eq("is_active", True)
                .contains("scope_items", scope_item_filter(item_id, item_type))
                .execute()
            )
            return [Scope.model_validate(row) for row in (result.data or [])]
        except Exception as e:
            raise ScopeStoreError(f"Failed to find active scopes: {e}") from e


# Tagged event (metadata) tables
async def insert_metadata(table: str, document: dict) -> dict:
    """Insert a tagged event into its integration table."""
    async with SupabaseClient() as client:
        try:
            result = client.table(table).insert(document).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise MetadataStoreError(f"Failed to insert into {table}: no data returned")
        except MetadataStoreError:
            raise
        except Exception as e:
            raise MetadataStoreError(f"Failed to insert into {table}: {e}") from e


async def update_metadata_status(
    table: str,
    organization_id: str,
    event_id: str,
    status: str,
    error_message: Optional[str] = None,
    processed_at: Optional[str] = None
) -> None:
    """Update processing status of one organization's tagged event."""
    updates = {"processing_status": status}
    if error_message is not None:
        updates["processing_error"] = error_message
    if processed_at is not None:
        updates["processed_at"] = processed_at

    async with SupabaseClient() as client:
        try:
            (
                client.table(table)
                .update(updates)
                .eq("organization_id", organization_id)
                .eq("event_id", event_id)
                .execute()
            )
        except Exception as e:
            raise MetadataStoreError(f"Failed to update {table} event {event_id}: {e}") from e


# Whispers table operations
async def insert_whisper(document: dict) -> dict:
    """Create a new whisper."""
    async with SupabaseClient() as client:
        try:
            result = client.table(WHISPERS_TABLE).insert(document).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise WhisperStoreError("Failed to create whisper: no data returned")
        except WhisperStoreError:
            raise
        except Exception as e:
            raise WhisperStoreError(f"Failed to create whisper: {e}") from e


async def update_whisper(whisper_id: str, updates: dict) -> dict:
    """Update a whisper."""
    async with SupabaseClient() as client:
        try:
            result = client.table(WHISPERS_TABLE).update(updates).eq("whisper_id", whisper_id).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise WhisperStoreError(f"Failed to update whisper: {whisper_id}")
        except WhisperStoreError:
            raise
        except Exception as e:
            raise WhisperStoreError(f"Failed to update whisper: {e}") from e


async def get_manager_whispers(manager_id: str, organization_id: str, limit: int = 10) -> list[dict]:
    """Get whispers scoped to a manager plus organization-wide whispers, newest first."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table(WHISPERS_TABLE)
                .select("*")
                .eq("organization_id", organization_id)
                .or_(f"scope_info->>manager_id.eq.{manager_id},scope_info.is.null")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return result.data if result.data else []
        except Exception as e:
            raise WhisperStoreError(f"Failed to get manager whispers: {e}") from e
