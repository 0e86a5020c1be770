# ─────────────────────────────────────────────────────────────────
# models.py — Data Models (Pydantic Schemas)
#
# All data shapes live here: the Switch record that every store
# keeps, and the Classification a notifier receives when a switch
# is late or checked in early.
# ─────────────────────────────────────────────────────────────────

import math
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


def utcnow() -> datetime:
    """Timezone-aware current time. Every deadline comparison uses this."""
    return datetime.now(timezone.utc)


class Switch(BaseModel):
    """
    A named deadline timer.

    {
        "name": "backup",
        "deadline": "2026-10-19T12:00:00Z",
        "window_start": "2026-10-19T11:55:00Z"
    }

    Switches are immutable. Re-arming a switch means inserting a
    brand new Switch under the same name.
    """

    model_config = ConfigDict(frozen=True)

    name: str                                # unique key, the only thing clients see
    deadline: datetime                       # absolute UTC instant
    window_start: Optional[datetime] = None  # start of the expected check-in window

    @field_validator("deadline", "window_start")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Naive timestamps are treated as UTC so comparisons never mix kinds
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def window_before_deadline(self):
        if self.window_start is not None and self.window_start > self.deadline:
            raise ValueError("window_start must not be after deadline")
        return self

    @classmethod
    def arm(cls, name: str, now: datetime, deadline: timedelta,
            window: Optional[timedelta] = None) -> "Switch":
        """
        Builds a fresh switch from request durations.

        window_start is derived from the new deadline and never
        stored on its own. Durations that push either instant past
        the datetime range raise ValueError.
        """
        try:
            new_deadline = now + deadline
            window_start = new_deadline - window if window is not None else None
        except OverflowError:
            raise ValueError("deadline or window is out of range") from None
        return cls(name=name, deadline=new_deadline, window_start=window_start)

    @property
    def score(self) -> float:
        """Deadline as a POSIX timestamp, used to order switches."""
        return self.deadline.timestamp()


class Kind(str, Enum):
    LATE = "late"
    EARLY = "early"


class Classification(BaseModel):
    """
    Why a notifier is being called.

    LATE  → the deadline passed without a check-in
    EARLY → checked in `seconds` before the window opened
    """

    model_config = ConfigDict(frozen=True)

    kind: Kind
    seconds: int = 0

    @classmethod
    def late(cls) -> "Classification":
        return cls(kind=Kind.LATE)

    @classmethod
    def early(cls, remaining: timedelta) -> "Classification":
        # Partial seconds round up so an early check-in never reports 0
        return cls(kind=Kind.EARLY, seconds=max(1, math.ceil(remaining.total_seconds())))

    @property
    def is_late(self) -> bool:
        return self.kind is Kind.LATE
