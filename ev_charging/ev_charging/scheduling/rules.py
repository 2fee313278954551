"""
Temporal Rules

Pure predicates over an explicit `now`, plus the clocks that supply it:
- Creation horizon: now < starts_at <= now + 7 days
- Modification cutoff: starts_at - now >= 12 hours
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import pytz

from .errors import InvalidTransitionError


CREATION_HORIZON = timedelta(days=7)
MODIFICATION_CUTOFF = timedelta(hours=12)


@dataclass(frozen=True)
class BookingPolicy:
	"""Tunable limits of the booking lifecycle."""

	creation_horizon: timedelta = CREATION_HORIZON
	modification_cutoff: timedelta = MODIFICATION_CUTOFF


def within_creation_horizon(
	starts_at: datetime,
	now: datetime,
	horizon: timedelta = CREATION_HORIZON
) -> bool:
	"""True when the booking starts in the future and no later than now + horizon."""
	return now < starts_at <= now + horizon


def meets_modification_cutoff(
	starts_at: datetime,
	now: datetime,
	cutoff: timedelta = MODIFICATION_CUTOFF
) -> bool:
	"""True when there is at least `cutoff` lead time before the booking starts."""
	return starts_at - now >= cutoff


def ensure_within_creation_horizon(
	starts_at: datetime,
	now: datetime,
	horizon: timedelta = CREATION_HORIZON
) -> None:
	"""
	Raises:
		InvalidTransitionError: rule "creation_horizon"
	"""
	if within_creation_horizon(starts_at, now, horizon):
		return

	if starts_at <= now:
		message = "Bookings must start in the future"
	else:
		message = f"Bookings can only be made up to {_describe(horizon)} in advance"
	raise InvalidTransitionError(message, rule="creation_horizon")


def ensure_meets_modification_cutoff(
	starts_at: datetime,
	now: datetime,
	action: str = "modified",
	cutoff: timedelta = MODIFICATION_CUTOFF
) -> None:
	"""
	Raises:
		InvalidTransitionError: rule "modification_cutoff"
	"""
	if meets_modification_cutoff(starts_at, now, cutoff):
		return

	raise InvalidTransitionError(
		f"Bookings can only be {action} at least {_describe(cutoff)} before the start time",
		rule="modification_cutoff"
	)


def _describe(delta: timedelta) -> str:
	if delta % timedelta(days=1) == timedelta(0):
		days = delta // timedelta(days=1)
		return f"{days} day{'s' if days != 1 else ''}"
	hours = delta / timedelta(hours=1)
	hours_label = f"{hours:g}"
	return f"{hours_label} hour{'s' if hours != 1 else ''}"


# ===== CLOCKS =====

class SystemClock:
	"""Wall clock in UTC."""

	def now(self) -> datetime:
		return datetime.now(pytz.UTC)


class FixedClock:
	"""Clock pinned to a given instant; tests move it explicitly."""

	def __init__(self, now: datetime):
		self._now = now if now.tzinfo else pytz.UTC.localize(now)

	def now(self) -> datetime:
		return self._now

	def set(self, now: datetime) -> None:
		self._now = now if now.tzinfo else pytz.UTC.localize(now)

	def advance(self, delta: Optional[timedelta] = None, **kwargs) -> datetime:
		self._now = self._now + (delta or timedelta(**kwargs))
		return self._now
