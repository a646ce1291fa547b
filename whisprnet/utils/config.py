"""Pipeline configuration read from environment variables."""

import os

from whisprnet.utils.errors import ConfigurationError


SCOPE_LOOKUP_RESTRICT = "restrict"
SCOPE_LOOKUP_BROADEN = "broaden"


class PipelineConfig:
    """Centralized pipeline configuration."""

    SCOPE_LOOKUP_FAILURE_MODE = os.environ.get("SCOPE_LOOKUP_FAILURE_MODE", SCOPE_LOOKUP_RESTRICT).lower()
    FANOUT_BEST_EFFORT = os.environ.get("FANOUT_BEST_EFFORT", "false").lower() == "true"
    INSIGHT_DEFAULT_CONFIDENCE = float(os.environ.get("INSIGHT_DEFAULT_CONFIDENCE", "0.8"))

    @classmethod
    def scope_lookup_failure_mode(cls) -> str:
        """Return the validated scope lookup failure mode."""
        mode = cls.SCOPE_LOOKUP_FAILURE_MODE
        if mode not in (SCOPE_LOOKUP_RESTRICT, SCOPE_LOOKUP_BROADEN):
            raise ConfigurationError(
                f"SCOPE_LOOKUP_FAILURE_MODE must be '{SCOPE_LOOKUP_RESTRICT}' or "
                f"'{SCOPE_LOOKUP_BROADEN}', got '{mode}'"
            )
        return mode

    @classmethod
    def supabase_credentials(cls) -> tuple[str, str]:
        """Return (url, service role key) or raise if either is missing."""
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        return url, key
