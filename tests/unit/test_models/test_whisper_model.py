"""Tests for Whisper model."""

import pytest
from pydantic import ValidationError

from whisprnet.models.whisper import (
    PriorityLabel,
    Whisper,
    WhisperCategory,
    WhisperStatus,
    generate_whisper_id,
    priority_label,
)
from whisprnet.utils.errors import InvalidStatusTransition


def make_whisper(**fields) -> Whisper:
    return Whisper(
        organization_id="org_1",
        title="Potential Team Concern Detected",
        content={"message": "Burnout risk", "suggested_actions": ["Take a break"]},
        **fields
    )


def test_defaults():
    whisper = make_whisper()

    assert whisper.whisper_id.startswith("whspr_")
    assert whisper.status == WhisperStatus.PENDING
    assert whisper.category == WhisperCategory.INSIGHT
    assert whisper.priority == 3
    assert whisper.priority_text == PriorityLabel.MEDIUM
    assert whisper.is_organization_wide


@pytest.mark.parametrize("priority,label", [
    (1, PriorityLabel.CRITICAL),
    (2, PriorityLabel.HIGH),
    (3, PriorityLabel.MEDIUM),
    (4, PriorityLabel.LOW),
    (5, PriorityLabel.LOW),
])
def test_priority_text_mirrors_priority(priority, label):
    assert priority_label(priority) == label
    whisper = make_whisper(priority=priority)
    assert whisper.priority_text == label
    assert whisper.to_document()["priority_text"] == label.value


def test_priority_text_follows_updates():
    whisper = make_whisper(priority=4)
    whisper.priority = 1
    assert whisper.priority_text == PriorityLabel.CRITICAL


@pytest.mark.parametrize("priority", [0, 6])
def test_priority_range(priority):
    with pytest.raises(ValidationError):
        make_whisper(priority=priority)


def test_roundtrip_from_document_ignores_computed_field():
    whisper = make_whisper(category="warning", priority=2)
    restored = Whisper.model_validate(whisper.to_document())
    assert restored.whisper_id == whisper.whisper_id
    assert restored.priority_text == PriorityLabel.HIGH


def test_whisper_ids_are_unique():
    assert generate_whisper_id() != generate_whisper_id()


def test_archived_is_terminal():
    whisper = make_whisper()
    whisper.archive()
    for transition in (whisper.mark_delivered, whisper.mark_failed, whisper.archive):
        with pytest.raises(InvalidStatusTransition):
            transition()


def test_delivered_cannot_fail():
    whisper = make_whisper()
    whisper.mark_delivered()
    with pytest.raises(InvalidStatusTransition):
        whisper.mark_failed()
    assert whisper.delivered_at is not None
