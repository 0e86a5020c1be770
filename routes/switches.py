# ─────────────────────────────────────────────────────────────────
# routes/switches.py — All API Endpoints
#
#   GET /                                 → list armed switches
#   GET /{name}?deadline=30s&window=5s    → check in / (re-)arm
#
# This file owns the HTTP side only: query-string parsing, status
# codes and error translation. The decision of what a check-in
# means lives in checkin.py.
# ─────────────────────────────────────────────────────────────────

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response

from checkin import check_in
from durations import parse_duration
from models import Switch
from notifiers import Notifier
from stores import BackendError, Store

logger = logging.getLogger("routes")

router = APIRouter(tags=["Switches"])


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def _duration(field: str, value: Optional[str]):
    if value is None:
        return None
    try:
        return parse_duration(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid {field}: {e}")


# ─────────────────────────────────────────────────────────────────
# GET / — List all armed switches
# ─────────────────────────────────────────────────────────────────

@router.get("/", response_model=list[Switch])
async def list_switches(request: Request):
    """
    Returns every armed switch. Order is not guaranteed.
    """
    try:
        return await get_store(request).all()
    except BackendError as e:
        logger.error(f"Store failure while listing: {e}")
        raise HTTPException(status_code=500, detail="Internal Store Error")


# ─────────────────────────────────────────────────────────────────
# GET /{name} — Check in, optionally re-arming with a new deadline
# ─────────────────────────────────────────────────────────────────

@router.get("/{name}")
async def check_in_switch(
    name: str,
    request: Request,
    deadline: Optional[str] = Query(None, description="e.g. 30s, 5m, 1h 30m"),
    window: Optional[str] = Query(None, description="expected check-in window before the deadline"),
):
    """
    Checks in to a switch.

    - with ?deadline → switch is armed (or re-armed) → 201 Created
    - without        → switch is disarmed            → 200 OK
    - without, and no such switch                    → 404 Not Found

    A window is only meaningful together with a deadline.
    """
    new_deadline = _duration("deadline", deadline)
    new_window = _duration("window", window) if new_deadline is not None else None

    try:
        outcome = await check_in(
            get_store(request), get_notifier(request), name, new_deadline, new_window
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid deadline: {e}")
    except BackendError as e:
        logger.error(f"Store failure while checking in '{name}': {e}")
        raise HTTPException(status_code=500, detail="Internal Store Error")

    return Response(status_code=int(outcome))
