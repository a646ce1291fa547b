"""Keyword classifier for LLM-generated insights.

Rules are ordered tables evaluated first-match-wins with case-insensitive
substring checks. Category and priority are evaluated independently.
"""

from typing import Optional

from whisprnet.models.classification import InsightClassification
from whisprnet.models.whisper import PriorityLabel, WhisperCategory
from whisprnet.utils.config import PipelineConfig


CATEGORY_RULES: tuple[tuple[tuple[str, ...], WhisperCategory], ...] = (
    (("burnout", "stress", "overwork"), WhisperCategory.WARNING),
    (("recommend", "suggest", "consider"), WhisperCategory.SUGGESTION),
    (("critical", "urgent", "immediate"), WhisperCategory.ALERT),
)
DEFAULT_CATEGORY = WhisperCategory.INSIGHT

PRIORITY_RULES: tuple[tuple[tuple[str, ...], PriorityLabel], ...] = (
    (("critical", "urgent", "severe"), PriorityLabel.CRITICAL),
    (("important", "significant", "concerning"), PriorityLabel.HIGH),
    (("moderate", "consider", "potential"), PriorityLabel.MEDIUM),
)
DEFAULT_PRIORITY = PriorityLabel.LOW

CATEGORY_TITLES: dict[WhisperCategory, str] = {
    WhisperCategory.WARNING: "Potential Team Concern Detected",
    WhisperCategory.SUGGESTION: "Communication Pattern Suggestion",
    WhisperCategory.ALERT: "Urgent Team Dynamic Alert",
    WhisperCategory.INSIGHT: "Team Communication Insight",
}
FALLBACK_TITLE = "WhisprNet Communication Insight"

CATEGORY_ACTIONS: dict[WhisperCategory, tuple[str, ...]] = {
    WhisperCategory.WARNING: (
        "Schedule a team check-in to discuss workload",
        "Review project timelines and priorities",
    ),
    WhisperCategory.SUGGESTION: (
        "Consider adjusting communication channels",
        "Update team communication guidelines",
    ),
    WhisperCategory.ALERT: (
        "Schedule an immediate team meeting",
        "Address the issue with individual team members",
        "Adjust project timelines or resources",
    ),
    WhisperCategory.INSIGHT: (
        "Share this insight with team leads",
        "Monitor this pattern in coming weeks",
    ),
}

# Every matching rule appends its action, in table order
KEYWORD_ACTIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("burnout",), "Consider implementing mandatory breaks or time off"),
    (("disengagement",), "Schedule one-on-one check-ins with team members"),
    (("response time", "delay"), "Review team communication SLAs"),
)


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def determine_category(insight: Optional[str]) -> WhisperCategory:
    text = (insight or "").lower()
    for keywords, category in CATEGORY_RULES:
        if _contains_any(text, keywords):
            return category
    return DEFAULT_CATEGORY


def determine_priority(insight: Optional[str]) -> PriorityLabel:
    text = (insight or "").lower()
    for keywords, priority in PRIORITY_RULES:
        if _contains_any(text, keywords):
            return priority
    return DEFAULT_PRIORITY


def generate_title(category: WhisperCategory) -> str:
    return CATEGORY_TITLES.get(category, FALLBACK_TITLE)


def generate_suggested_actions(insight: Optional[str], category: WhisperCategory) -> list[str]:
    """Category defaults followed by keyword-specific actions."""
    text = (insight or "").lower()
    actions = list(CATEGORY_ACTIONS.get(category, ()))
    for keywords, action in KEYWORD_ACTIONS:
        if _contains_any(text, keywords):
            actions.append(action)
    return actions


def classify_insight(insight: Optional[str]) -> InsightClassification:
    """Classify raw insight text. Never fails; unmatched text is insight/low."""
    category = determine_category(insight)
    return InsightClassification(
        category=category,
        priority=determine_priority(insight),
        title=generate_title(category),
        suggested_actions=generate_suggested_actions(insight, category),
    )


def format_insight_to_whisper(insight: str, confidence: Optional[float] = None) -> dict:
    """
    Build the base whisper payload for an LLM insight.

    The payload carries no organization or scope; the fanout engine adds those.
    """
    classification = classify_insight(insight)
    return {
        "title": classification.title,
        "category": classification.category.value,
        "priority": classification.priority_level,
        "content": {
            "message": insight,
            "suggested_actions": classification.suggested_actions,
        },
        "metadata": {
            "confidence": PipelineConfig.INSIGHT_DEFAULT_CONFIDENCE if confidence is None else confidence,
        },
    }
