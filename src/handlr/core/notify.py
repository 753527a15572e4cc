"""Desktop notifications through ``notify-send``. Fire and forget."""

from __future__ import annotations

import subprocess

import structlog

log = structlog.get_logger(__name__)

APP_NAME = "handlr"
NOTIFY_TIMEOUT_MS = 10_000


def notify(title: str, body: str, urgency: str = "normal") -> None:
    """Show a notification. Failure to notify is logged, never raised."""
    icon = "dialog-error" if urgency == "critical" else "dialog-information"
    try:
        subprocess.run(
            [
                "notify-send",
                "--app-name", APP_NAME,
                "--urgency", urgency,
                "--icon", icon,
                "--expire-time", str(NOTIFY_TIMEOUT_MS),
                title,
                body,
            ],
            capture_output=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        log.warning("notify_failed", title=title, error=str(e))
