"""Raw metadata events per integration."""

from typing import Any, Dict


def slack_message_event(user: str = "U123456", channel: str = "C123456") -> Dict[str, Any]:
    """Slack message metadata (no content)."""
    return {
        "eventId": "Ev_slack_1",
        "type": "message",
        "user": user,
        "channel": channel,
        "ts": "1733745600.000100",
        "isInThread": False,
        "hasAttachments": False,
    }


def teams_message_event(user_id: str = "teams-user-1", channel_id: str = "19:channel@thread") -> Dict[str, Any]:
    return {
        "eventId": "teams_1",
        "eventType": "channelMessage",
        "userId": user_id,
        "channelId": channel_id,
        "timestamp": "2024-12-09T12:00:00Z",
    }


def discord_message_event(user_id: str = "80351110224678912", channel_id: str = "41771983423143937") -> Dict[str, Any]:
    return {
        "eventId": "discord_1",
        "eventType": "MESSAGE_CREATE",
        "userId": user_id,
        "channelId": channel_id,
        "timestamp": "2024-12-09T12:00:00Z",
    }


def gmail_metadata_event(email_address: str = "dana@example.com") -> Dict[str, Any]:
    return {
        "eventId": "gmail_1",
        "eventType": "message_sent",
        "emailAddress": email_address,
        "recipientCount": 3,
        "timestamp": "2024-12-09T12:00:00Z",
    }


def github_push_event(user_id: str = "octocat", repo_id=1296269) -> Dict[str, Any]:
    return {
        "eventId": "gh_delivery_1",
        "eventType": "push",
        "metadata_type": "commit_activity",
        "userId": user_id,
        "repoId": repo_id,
        "repoName": "octocat/Hello-World",
        "commitCount": 3,
        "timestamp": "2024-12-09T12:00:00Z",
    }
