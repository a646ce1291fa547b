"""Match extracted identifiers against active insight scopes."""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional, Union

from whisprnet.models.scope import Identifier, Integration, ItemType, Scope, ScopeMatch
from whisprnet.services.supabase_client import find_active_scopes
from whisprnet.utils.config import PipelineConfig, SCOPE_LOOKUP_BROADEN, SCOPE_LOOKUP_RESTRICT
from whisprnet.utils.errors import ConfigurationError
from whisprnet.utils.logging import LogContext, get_structured_logger, log_timing

logger = get_structured_logger(__name__)

ScopeLookup = Callable[[str, Integration, str, ItemType], Awaitable[list[Scope]]]


@dataclass
class ScopeMatchResult:
    """Deduplicated matches plus whether the scope store could be read."""
    matches: list[ScopeMatch] = field(default_factory=list)
    lookup_failed: bool = False

    def __bool__(self) -> bool:
        return bool(self.matches)


def dedupe_matches(matches: Iterable[ScopeMatch]) -> list[ScopeMatch]:
    """Keep the first match per scope_id."""
    unique: dict[str, ScopeMatch] = {}
    for match in matches:
        unique.setdefault(match.scope_id, match)
    return list(unique.values())


async def match_scopes(
    identifiers: Iterable[Identifier],
    organization_id: str,
    integration: Union[Integration, str],
    lookup: ScopeLookup = find_active_scopes,
    on_error: Optional[str] = None,
    context: Optional[LogContext] = None
) -> ScopeMatchResult:
    """
    Find active scopes in the organization containing any of the identifiers.

    A scope matched by several identifiers is reported once. When the store
    lookup fails the result is empty; ``lookup_failed`` is set in restrict
    mode so fanout withholds the organization-wide whisper, and left unset in
    broaden mode so the event is treated as unscoped.
    """
    identifiers = list(identifiers)
    context = context or LogContext(
        organization_id=organization_id,
        integration=getattr(integration, "value", integration)
    )
    mode = (on_error or PipelineConfig.scope_lookup_failure_mode()).lower()
    if mode not in (SCOPE_LOOKUP_RESTRICT, SCOPE_LOOKUP_BROADEN):
        raise ConfigurationError(f"Unknown scope lookup failure mode: {mode}")

    resolved = Integration.parse(integration)
    if not identifiers or resolved is None:
        logger.debug(
            "No identifiers found to match",
            context,
            identifier_count=len(identifiers)
        )
        return ScopeMatchResult()

    logger.debug(
        "Matching scopes for identifiers",
        context,
        identifier_types=[identifier.item_type.value for identifier in identifiers]
    )

    found: list[ScopeMatch] = []
    try:
        with log_timing("match_scopes", logger=logger, context=context):
            for identifier in identifiers:
                scopes = await lookup(organization_id, resolved, identifier.item_id, identifier.item_type)
                found.extend(
                    ScopeMatch.from_scope(scope)
                    for scope in scopes
                    if scope.is_active and scope.organization_id == organization_id
                )
    except Exception as e:
        logger.error(
            "Scope lookup failed",
            context,
            error=str(e),
            failure_mode=mode,
            exc_info=True
        )
        return ScopeMatchResult(lookup_failed=(mode == SCOPE_LOOKUP_RESTRICT))

    matches = dedupe_matches(found)
    logger.debug("Found scope matches", context, match_count=len(matches))
    return ScopeMatchResult(matches=matches)
