# ─────────────────────────────────────────────────────────────────
# checkin.py — Check-In Decision Logic
#
# Every GET /{name} ends up here. The request is classified against
# "now" and turned into one store mutation, at most one notification
# and a status for the HTTP layer:
#
#   Absent  ── deadline given ──▶ Armed      201 Created
#   Armed   ── deadline given ──▶ Armed      201 Created (maybe EARLY)
#   Armed   ── no deadline    ──▶ Absent     200 OK      (maybe EARLY/LATE)
#   Absent  ── no deadline    ──▶ Absent     404 Not Found
# ─────────────────────────────────────────────────────────────────

import logging
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Optional

from models import Classification, Switch, utcnow
from notifiers import Notifier
from stores import Store

logger = logging.getLogger("checkin")


class Outcome(IntEnum):
    """Result of a check-in, valued as the HTTP status it maps to."""

    OK = 200
    CREATED = 201
    NOT_FOUND = 404


def classify(existing: Switch, now: datetime, checkin_only: bool) -> Optional[Classification]:
    """
    Decides whether a check-in against `existing` deserves a notification.

    - deadline already passed → LATE, but only for a pure check-in.
      The sweep should have caught it, so this is the race between
      expiry and sweep. A request that re-arms the switch stays quiet.
    - deadline exactly now → on time, whatever the window says
    - deadline in the future, window not open yet → EARLY
    """
    if existing.deadline < now:
        if checkin_only:
            logger.warning(
                f"Late check-in; name={existing.name}, deadline={existing.deadline.isoformat()}"
            )
            return Classification.late()
        return None

    if existing.deadline == now:
        return None

    if existing.window_start is not None and now < existing.window_start:
        return Classification.early(existing.window_start - now)

    return None


async def check_in(
    store: Store,
    notifier: Notifier,
    name: str,
    deadline: Optional[timedelta] = None,
    window: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> Outcome:
    """
    Handles one check-in request.

    Flow:
    1. take() the current switch. Whatever was there is now ours.
    2. Classify it against now and notify if early or late
    3. If a deadline was given, insert a freshly armed switch → CREATED
    4. Otherwise the switch stays removed → OK, or NOT_FOUND if
       there was nothing to check into

    The new switch is built before the store is touched, so an
    out-of-range deadline raises ValueError with nothing changed.
    BackendError from the store propagates to the caller.
    """
    now = now or utcnow()
    switch = Switch.arm(name, now, deadline, window) if deadline is not None else None
    existing = await store.take(name)

    if existing is not None:
        classification = classify(existing, now, checkin_only=deadline is None)
        if classification is not None:
            notifier.notify(name, classification)

    if switch is not None:
        await store.insert(switch)
        logger.info(
            f"✅ Armed '{name}' | deadline: {switch.deadline.isoformat()}"
            + (f" | window opens: {switch.window_start.isoformat()}" if switch.window_start else "")
        )
        return Outcome.CREATED

    if existing is not None:
        logger.info(f"💓 Disarmed '{name}'")
        return Outcome.OK

    return Outcome.NOT_FOUND
