"""
Follow-up scheduling -- pure date arithmetic for post-adoption check-ins.

Responsibility:
    Turn a list of day offsets into dated follow-up slots, compute the
    trial-period end date, and pick the next follow-up still due.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Callers pass the
    current instant explicitly (from an injected Clock).

Invariants enforced:
    - One slot per offset, in the order given, each dated ``now + offset``.
    - The next follow-up is the earliest slot that is neither completed nor
      already in the past.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Protocol, Sequence

DEFAULT_FOLLOW_UP_TYPE = "visit"


@dataclass(frozen=True)
class FollowUpSlot:
    """A follow-up to be stored on a new adoption record."""

    scheduled_date: datetime
    type: str = DEFAULT_FOLLOW_UP_TYPE


class ScheduledFollowUp(Protocol):
    """Anything carrying a scheduled and an optional completed date."""

    scheduled_date: datetime
    completed_date: datetime | None


def build_follow_up_schedule(
    now: datetime,
    offsets_days: Sequence[int],
    follow_up_type: str = DEFAULT_FOLLOW_UP_TYPE,
) -> list[FollowUpSlot]:
    """
    One slot per offset, dated ``now + offset days``.

    Raises:
        ValueError: If an offset is negative.
    """
    slots = []
    for offset in offsets_days:
        if offset < 0:
            raise ValueError(f"follow-up offset must not be negative: {offset}")
        slots.append(
            FollowUpSlot(
                scheduled_date=now + timedelta(days=offset),
                type=follow_up_type,
            )
        )
    return slots


def compute_trial_end_date(
    now: datetime,
    trial_period: bool,
    trial_period_days: int | None,
) -> datetime | None:
    """Trial end is ``now + days`` only when a positive trial was requested."""
    if not trial_period or not trial_period_days or trial_period_days <= 0:
        return None
    return now + timedelta(days=trial_period_days)


def next_follow_up_date(
    follow_ups: Iterable[ScheduledFollowUp],
    now: datetime,
) -> datetime | None:
    """Earliest uncompleted follow-up not yet in the past, or None."""
    upcoming = [
        f.scheduled_date
        for f in follow_ups
        if f.completed_date is None and f.scheduled_date >= now
    ]
    return min(upcoming) if upcoming else None


def is_in_trial_period(trial_end_date: datetime | None, now: datetime) -> bool:
    if trial_end_date is None:
        return False
    return now < trial_end_date
