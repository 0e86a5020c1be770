# ─────────────────────────────────────────────────────────────────
# notifiers/sentry.py — Report Events to Sentry
#
# Each event carries a fingerprint of "<name>=FAIL" or "<name>=EARLY"
# so repeated failures of the same switch group into one issue.
# The Sentry client queues events on its own background transport,
# so capture_event() returns immediately.
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging

import sentry_sdk

from models import Classification
from notifiers import Notifier

logger = logging.getLogger("notifiers.sentry")


def fingerprint(name: str, classification: Classification) -> str:
    return f"{name}={'FAIL' if classification.is_late else 'EARLY'}"


def build_event(name: str, classification: Classification) -> dict:
    if classification.is_late:
        message = f"Switch `{name}` failed to make its deadline."
        level = "error"
    else:
        message = f"Switch `{name}` checked in early by {classification.seconds} seconds"
        level = "warning"

    return {
        "message": message,
        "level": level,
        "logger": "condemn",
        "tags": {"switch": name},
        "fingerprint": [fingerprint(name, classification)],
    }


class SentryNotifier(Notifier):

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_dsn(cls, dsn: str) -> "SentryNotifier":
        # A dedicated client, so nothing is installed into the global hub
        return cls(sentry_sdk.Client(dsn=dsn, default_integrations=False))

    def notify(self, name: str, classification: Classification) -> None:
        try:
            self.client.capture_event(build_event(name, classification))
        except Exception as e:
            logger.warning(f"Failed to submit Sentry event for '{name}': {e}")

    async def drain(self) -> None:
        # Gives queued events a chance to leave before the process exits
        await asyncio.to_thread(self.client.flush, 2.0)
