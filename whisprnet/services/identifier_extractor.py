"""Extract scope-matchable identifiers from raw integration events."""

from collections.abc import Mapping
from typing import Any, Union
from pydantic import BaseModel

from whisprnet.models.scope import Identifier, Integration, ItemType
from whisprnet.models.whisper import SourceItem
from whisprnet.utils.errors import ConfigurationError


# One row per integration: (event field, identifier kind), in match order
EXTRACTION_RULES: dict[Integration, tuple[tuple[str, ItemType], ...]] = {
    Integration.SLACK: (("user", ItemType.USER), ("channel", ItemType.CHANNEL)),
    Integration.TEAMS: (("userId", ItemType.USER), ("channelId", ItemType.CHANNEL)),
    Integration.DISCORD: (("userId", ItemType.USER), ("channelId", ItemType.CHANNEL)),
    Integration.GMAIL: (("emailAddress", ItemType.USER),),
    Integration.GITHUB: (("userId", ItemType.USER), ("repoId", ItemType.GROUP)),
}


def validate_extraction_rules(rules: Mapping) -> None:
    """Raise unless every integration has a rule."""
    missing = [integration.value for integration in Integration if integration not in rules]
    if missing:
        raise ConfigurationError(f"No extraction rule for integrations: {', '.join(missing)}")


validate_extraction_rules(EXTRACTION_RULES)


def _as_mapping(event: Union[Mapping, BaseModel, None]) -> Mapping:
    if event is None:
        return {}
    if isinstance(event, BaseModel):
        return event.model_dump(by_alias=True)
    if isinstance(event, Mapping):
        return event
    return {}


def _normalize(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    return str(value).strip()


def extract_identifiers(
    event: Union[Mapping, BaseModel, None],
    integration: Union[Integration, str]
) -> list[Identifier]:
    """
    Map a raw event to its (item_id, item_type) identifiers.

    Unknown integrations and missing or empty fields yield no identifiers.
    Duplicates are dropped; order follows EXTRACTION_RULES.
    """
    resolved = Integration.parse(integration)
    if resolved is None:
        return []

    data = _as_mapping(event)
    identifiers: list[Identifier] = []
    for field_name, item_type in EXTRACTION_RULES[resolved]:
        item_id = _normalize(data.get(field_name))
        if not item_id:
            continue
        identifier = Identifier(item_id=item_id, item_type=item_type)
        if identifier not in identifiers:
            identifiers.append(identifier)
    return identifiers


def extract_source_items(
    event: Union[Mapping, BaseModel, None],
    integration: Union[Integration, str]
) -> list[SourceItem]:
    """Identifiers of an event in the shape recorded on scoped whispers."""
    return [
        SourceItem(item_id=identifier.item_id, item_type=identifier.item_type)
        for identifier in extract_identifiers(event, integration)
    ]
