"""
Slack notifications for the league's scheduled jobs.

Messages go to the incoming webhook in `settings.SLACK_WEBHOOK_URL`.
Nothing is sent (and False is returned) when no webhook is configured,
so local runs and tests never reach the network.
"""

import asyncio
import logging

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)


def _header(text: str) -> dict:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


def _fields(*pairs) -> dict:
    """Two-column section from (label, value) pairs"""
    return {
        "type": "section",
        "fields": [{"type": "mrkdwn", "text": f"*{label}:*\n{value}"} for label, value in pairs],
    }


def _text(text: str) -> dict:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


async def send_slack_notification_async(message: str, blocks: list = None):
    """
    Post `message` (and optional Block Kit `blocks`) to the webhook.

    Returns:
        True if Slack accepted the message, False otherwise
    """
    webhook_url = settings.SLACK_WEBHOOK_URL
    if not webhook_url:
        logger.info(f"Slack webhook not configured, skipping: {message}")
        return False

    payload = {"text": message, **({"blocks": blocks} if blocks else {})}

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(webhook_url, json=payload)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Slack notification failed: {e}")
        return False
    return True


def send_slack_notification(message: str, blocks: list = None):
    """
    Blocking version of `send_slack_notification_async` for commands and
    Prefect tasks.

        >>> send_slack_notification("Standings rebuilt")
    """
    return asyncio.run(send_slack_notification_async(message, blocks))


def send_round_completion_notification(summary: dict):
    """
    Report the outcome of a completion cascade.

    `summary` is the dict returned by `on_round_completed`; the flow also
    passes a reduced one (status/season/round/reason) when the race was
    not found.
    """
    try:
        status_text = {'complete': 'Complete', 'aborted': 'Aborted'}.get(
            summary['status'], summary['status'].title()
        )
        scope = f"{summary['season']} Season - Round {summary['round']}"

        blocks = [
            _header(f"Round Scoring {status_text}"),
            _fields(("Scope", scope), ("Leagues", summary.get('leagues_processed', 0))),
            {"type": "divider"},
            _fields(
                ("Selections Updated", summary.get('selections_updated', 0)),
                (
                    "Unchanged / Skipped",
                    f"{summary.get('selections_unchanged', 0)}/{summary.get('selections_skipped', 0)}",
                ),
            ),
        ]
        if summary.get('errors'):
            blocks.append(_text(f"*Failed Members/Leagues:* {summary['errors']}"))
        if summary.get('reason'):
            blocks.append(_text(f"*Reason:* {summary['reason']}"))

        return send_slack_notification(message=f"Round Scoring {status_text}: {scope}", blocks=blocks)

    except Exception:
        logger.exception("Could not send the round completion notification")
        return False


def send_auto_assignment_notification(summary: dict):
    """List the picks a deadline sweep made. Sends nothing when it made none."""
    assigned = summary.get('assigned', 0)
    if not assigned:
        return False

    try:
        lines = [
            f"• {item['username']} ({item['league']}, R{item['round']}): "
            f"{item['main_driver']} / {item['reserve_driver']} / {item['team']}"
            for item in summary.get('results', [])
        ]
        blocks = [
            _header(f"Auto-Assigned {assigned} Selection(s)"),
            _text("\n".join(lines) or "_No details_"),
        ]
        return send_slack_notification(
            message=f"Auto-assigned {assigned} selection(s), skipped {summary.get('skipped', 0)}",
            blocks=blocks,
        )

    except Exception:
        logger.exception("Could not send the auto-assignment notification")
        return False
