"""Error handling utilities."""

from typing import Any, Optional


class WhisprNetError(Exception):
    """Base exception for the WhisprNet insight pipeline."""
    pass


class ConfigurationError(WhisprNetError):
    """Invalid or missing configuration."""
    pass


class UnsupportedIntegrationError(WhisprNetError):
    """Integration has no extraction rule or metadata table."""
    pass


class InvalidStatusTransition(WhisprNetError):
    """Status change would move a record backwards or out of a terminal state."""
    pass


class StoreError(WhisprNetError):
    """Supabase operation error."""
    pass


class ScopeStoreError(StoreError):
    """Scope lookup failed."""
    pass


class MetadataStoreError(StoreError):
    """Tagged event could not be written."""
    pass


class WhisperStoreError(StoreError):
    """Whisper could not be read or written."""
    pass


class WhisperAccessError(WhisprNetError):
    """Viewer is not allowed to see or act on a whisper."""
    pass


class FanoutError(WhisprNetError):
    """One or more scoped whispers could not be created in best-effort mode."""

    def __init__(self, created: list[Any], failures: list[dict], message: Optional[str] = None):
        self.created = created
        self.failures = failures
        super().__init__(
            message or f"Failed to create {len(failures)} of {len(created) + len(failures)} scoped whispers"
        )


class InvalidEventError(WhisprNetError):
    """Tagged event is missing data required to generate whispers."""
    pass
