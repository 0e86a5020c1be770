# ─────────────────────────────────────────────────────────────────
# timer.py — Background Sweep Loop
#
# Instead of one sleeping task per switch, a single coroutine wakes
# up on a fixed period, asks the store for everything past its
# deadline and fires a LATE notification for each one.
#
# The store removes expired switches in the same atomic step that
# returns them, so a switch is reported late at most once no matter
# how check-ins and sweeps interleave.
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging
import time
from datetime import datetime
from typing import Optional

from models import Classification, Switch, utcnow
from notifiers import Notifier
from stores import BackendError, Store

logger = logging.getLogger("timer")

DEFAULT_INTERVAL = 1.0


async def sweep_once(store: Store, notifier: Notifier,
                     now: Optional[datetime] = None) -> list[Switch]:
    """One tick: expire everything due by `now` and notify LATE for each."""
    now = now or utcnow()
    switches = await store.expired(now)

    for switch in switches:
        logger.warning(
            f"⚠️  No check-in for '{switch.name}' before {switch.deadline.isoformat()}"
        )
        notifier.notify(switch.name, Classification.late())

    return switches


async def sweep_forever(store: Store, notifier: Notifier,
                        interval: float = DEFAULT_INTERVAL):
    """
    Runs sweep_once() every `interval` seconds until cancelled.

    Ticks run back to back inside this one coroutine, so two sweeps
    never overlap. A tick that overruns the interval makes the next
    one start immediately rather than queueing several. A failed tick
    is logged and the next tick retries.
    """
    logger.info(f"Sweep loop started, every {interval}s")

    try:
        while True:
            started = time.monotonic()
            try:
                await sweep_once(store, notifier)
            except BackendError as e:
                logger.warning(f"Sweep failed, store unavailable: {e}")
            except Exception:
                logger.exception("Sweep failed")

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, interval - elapsed))

    except asyncio.CancelledError:
        # Cancellation is how the app shuts the loop down
        logger.info("⏱️  Sweep loop stopped")
        raise
