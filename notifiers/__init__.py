# ─────────────────────────────────────────────────────────────────
# notifiers — Alert Delivery
#
# A notifier is told that a switch was late or checked in early and
# does something about it: logs it, runs a command, or reports it
# to Sentry. notify() is fire-and-forget. It never raises into the
# caller and never blocks the store mutation that triggered it.
#
# Adding a new alert channel means adding a Notifier subclass and
# registering it in build_notifier().
# ─────────────────────────────────────────────────────────────────

import abc
import logging
from typing import Iterable, Optional

from models import Classification

logger = logging.getLogger("notifiers")


class Notifier(abc.ABC):

    @abc.abstractmethod
    def notify(self, name: str, classification: Classification) -> None:
        """Delivers one event. Must not raise."""

    async def drain(self) -> None:
        """Waits for background work started by notify(). Used at shutdown."""


class LogNotifier(Notifier):
    """Writes one log line per event. Always succeeds."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log if log is not None else logging.getLogger("alerts")

    def notify(self, name: str, classification: Classification) -> None:
        if classification.is_late:
            self.log.critical(f"🚨 SWITCH LATE: '{name}' failed to make its deadline")
        else:
            self.log.warning(
                f"⏱️  SWITCH EARLY: '{name}' checked in {classification.seconds}s "
                f"before its window opened"
            )


class AggregateNotifier(Notifier):
    """
    Fans every event out to a fixed, ordered list of notifiers.

    The list is frozen at construction. A failing member is logged
    and skipped; the remaining members still run.
    """

    def __init__(self, notifiers: Iterable[Notifier] = ()):
        self.notifiers = tuple(notifiers)

    def __len__(self):
        return len(self.notifiers)

    def notify(self, name: str, classification: Classification) -> None:
        for notifier in self.notifiers:
            try:
                notifier.notify(name, classification)
            except Exception:
                logger.exception(
                    f"Notifier {type(notifier).__name__} failed for '{name}'"
                )

    async def drain(self) -> None:
        for notifier in self.notifiers:
            try:
                await notifier.drain()
            except Exception:
                logger.exception(f"Notifier {type(notifier).__name__} failed to drain")


def build_notifier(settings) -> AggregateNotifier:
    """
    Builds the process-wide notifier from settings.

    The log notifier is always first, then the command notifier if a
    command is configured, then any named notifiers in order.
    """
    from notifiers.command import CommandNotifier
    from notifiers.sentry import SentryNotifier

    members = [LogNotifier()]

    if settings.notify_command:
        members.append(CommandNotifier.from_command_line(settings.notify_command))

    for kind in settings.notifiers:
        if kind == "sentry":
            members.append(SentryNotifier.from_dsn(settings.sentry_dsn))
        else:
            raise ValueError(f"unhandled notifier {kind!r}")

    logger.info(f"Notifiers: {', '.join(type(n).__name__ for n in members)}")
    return AggregateNotifier(members)


__all__ = ["AggregateNotifier", "LogNotifier", "Notifier", "build_notifier"]
