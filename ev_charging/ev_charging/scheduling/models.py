"""
Scheduling Data Model

Value objects shared by the resolver, allocator and lifecycle:
- Station (slot counts, derived slot identifiers, timezone)
- TimeWindow / Window (minute-of-day ranges, with slots for availability)
- WeeklyTemplateEntry and ScheduleException
- Booking

All objects are immutable; the lifecycle produces new Booking records
with dataclasses.replace.
"""

import re
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pytz

from .errors import ScheduleValidationError


MINUTES_PER_DAY = 24 * 60

_SLOT_ID_RE = re.compile(r"^(AC|DC)-([1-9]\d*)$")
_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class SlotType(str, Enum):
	AC = "AC"
	DC = "DC"


class StationStatus(str, Enum):
	ACTIVE = "ACTIVE"
	DEACTIVATED = "DEACTIVATED"


class BookingStatus(str, Enum):
	PENDING = "PENDING"
	APPROVED = "APPROVED"
	COMPLETED = "COMPLETED"
	CANCELLED = "CANCELLED"


# Statuses that hold a slot claim
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.APPROVED)
TERMINAL_STATUSES = (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


# ===== SLOT IDENTIFIERS =====

def make_slot_id(slot_type: SlotType, index: int) -> str:
	"""Builds a slot identifier such as "AC-1"."""
	return f"{SlotType(slot_type).value}-{index}"


def parse_slot_id(slot_id: str) -> Tuple[SlotType, int]:
	"""
	Splits a slot identifier into its type and ordinal index.

	Raises:
		ScheduleValidationError: if the identifier is malformed
	"""
	match = _SLOT_ID_RE.match(str(slot_id or "").strip())
	if not match:
		raise ScheduleValidationError(f"Invalid slot identifier '{slot_id}'")
	return SlotType(match.group(1)), int(match.group(2))


def slot_sort_key(slot_id: str) -> Tuple[str, int]:
	"""Orders slots by type, then by numeric index (AC-2 before AC-10)."""
	slot_type, index = parse_slot_id(slot_id)
	return slot_type.value, index


def sort_slot_ids(slot_ids: Iterable[str]) -> List[str]:
	return sorted(slot_ids, key=slot_sort_key)


def coerce_slot_type(value: Any) -> SlotType:
	try:
		return SlotType(value)
	except ValueError:
		raise ScheduleValidationError(f"Invalid slot type '{value}'. Use AC or DC")


# ===== TIME HELPERS =====

def parse_hhmm(value: str) -> int:
	"""
	Converts "HH:MM" to minute-of-day. "24:00" is accepted as end of day.

	Raises:
		ScheduleValidationError: if the value is not a valid time
	"""
	if isinstance(value, int):
		return value

	match = _HHMM_RE.match(str(value or "").strip())
	if not match:
		raise ScheduleValidationError(f"Invalid time '{value}'. Use HH:MM")

	hours, minutes = int(match.group(1)), int(match.group(2))
	if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
		raise ScheduleValidationError(f"Invalid time '{value}'. Use HH:MM")

	return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
	return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_of(day: date) -> int:
	"""Weekday with Sunday = 0 .. Saturday = 6."""
	return day.isoweekday() % 7


def get_timezone(tz_name: Optional[str]) -> pytz.BaseTzInfo:
	try:
		return pytz.timezone(tz_name or "UTC")
	except pytz.UnknownTimeZoneError:
		raise ScheduleValidationError(f"Unknown timezone '{tz_name}'")


# ===== STATION =====

@dataclass(frozen=True)
class Station:
	"""Charging station with a fixed number of AC and DC slots."""

	id: str
	ac_slot_count: int = 0
	dc_slot_count: int = 0
	status: StationStatus = StationStatus.ACTIVE
	timezone: str = "UTC"
	name: Optional[str] = None

	def __post_init__(self) -> None:
		if not self.id:
			raise ScheduleValidationError("Station id is required")

		for label, count in (("AC", self.ac_slot_count), ("DC", self.dc_slot_count)):
			if not isinstance(count, int) or isinstance(count, bool) or count < 0:
				raise ScheduleValidationError(f"{label} slot count must be a non-negative integer")

		if self.ac_slot_count == 0 and self.dc_slot_count == 0:
			raise ScheduleValidationError("Station needs at least one AC or DC slot")

		try:
			object.__setattr__(self, "status", StationStatus(self.status))
		except ValueError:
			raise ScheduleValidationError(f"Invalid station status '{self.status}'")

		get_timezone(self.timezone)

	@property
	def is_active(self) -> bool:
		return self.status == StationStatus.ACTIVE

	@property
	def tz(self) -> pytz.BaseTzInfo:
		return get_timezone(self.timezone)

	@property
	def total_slots(self) -> int:
		return self.ac_slot_count + self.dc_slot_count

	def slot_ids_of(self, slot_type: SlotType) -> List[str]:
		slot_type = SlotType(slot_type)
		count = self.ac_slot_count if slot_type == SlotType.AC else self.dc_slot_count
		return [make_slot_id(slot_type, index) for index in range(1, count + 1)]

	@property
	def slot_ids(self) -> List[str]:
		return self.slot_ids_of(SlotType.AC) + self.slot_ids_of(SlotType.DC)

	def has_slot(self, slot_id: str) -> bool:
		slot_type, index = parse_slot_id(slot_id)
		count = self.ac_slot_count if slot_type == SlotType.AC else self.dc_slot_count
		return index <= count

	def with_status(self, status: StationStatus) -> "Station":
		return replace(self, status=StationStatus(status))

	# Local-time conversions

	def localize(self, value: datetime) -> datetime:
		"""Returns `value` in station local time; naive values are taken as local."""
		if value.tzinfo is None:
			return self.tz.localize(value)
		return value.astimezone(self.tz)

	def local_bounds(self, day: date, window: "TimeWindow") -> Tuple[datetime, datetime]:
		"""Aware start/end datetimes of a minute-of-day window on `day`."""
		return self.at_minute(day, window.start), self.at_minute(day, window.end)

	def at_minute(self, day: date, minute: int) -> datetime:
		naive = datetime.combine(day, time()) + timedelta(minutes=minute)
		return self.tz.localize(naive)

	def local_range(self, starts_at: datetime, ends_at: datetime) -> Tuple[date, datetime, datetime]:
		"""
		Localizes a booking range and checks it fits one calendar day.

		Returns:
			tuple: (local date, aware start, aware end)

		Raises:
			ScheduleValidationError: if start >= end or the range spans days
		"""
		start = self.localize(starts_at)
		end = self.localize(ends_at)

		if start >= end:
			raise ScheduleValidationError("Start must be before end")

		day = start.date()
		end_wall = end.replace(tzinfo=None)
		next_midnight = datetime.combine(day + timedelta(days=1), time())
		if end.date() != day and end_wall != next_midnight:
			raise ScheduleValidationError("A booking must start and end on the same day")

		return day, start, end


# ===== WINDOWS =====

@dataclass(frozen=True)
class TimeWindow:
	"""Half-open minute-of-day range [start, end)."""

	start: int
	end: int

	def __post_init__(self) -> None:
		for value in (self.start, self.end):
			if not isinstance(value, int) or isinstance(value, bool):
				raise ScheduleValidationError("Window bounds must be minutes of day")
		if not 0 <= self.start < self.end <= MINUTES_PER_DAY:
			raise ScheduleValidationError(
				f"Invalid window {self.start}-{self.end}: start must be before end within one day"
			)

	@classmethod
	def parse(cls, start: str, end: str) -> "TimeWindow":
		return cls(parse_hhmm(start), parse_hhmm(end))

	@property
	def duration_minutes(self) -> int:
		return self.end - self.start

	def contains(self, other: "TimeWindow") -> bool:
		return self.start <= other.start and other.end <= self.end

	def overlaps(self, other: "TimeWindow") -> bool:
		return self.start < other.end and other.start < self.end

	def label(self) -> str:
		return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


@dataclass(frozen=True)
class Window(TimeWindow):
	"""Availability window: a time range and the slots open during it."""

	slot_ids: Tuple[str, ...] = ()

	def __post_init__(self) -> None:
		super().__post_init__()
		slot_ids = tuple(str(s).strip() for s in self.slot_ids)
		for slot_id in slot_ids:
			parse_slot_id(slot_id)
		if len(set(slot_ids)) != len(slot_ids):
			raise ScheduleValidationError(f"Window {self.label()} lists a slot twice")
		object.__setattr__(self, "slot_ids", tuple(sort_slot_ids(slot_ids)))

	@classmethod
	def from_capacity(cls, station: Station, start: int, end: int, capacity: int) -> "Window":
		"""
		Builds a window from a slot count.

		The lowest-numbered AC slots are taken first, then DC slots.

		Raises:
			ScheduleValidationError: if capacity is not positive or exceeds the station
		"""
		if not isinstance(capacity, int) or capacity <= 0:
			raise ScheduleValidationError("Window capacity must be greater than 0")
		if capacity > station.total_slots:
			raise ScheduleValidationError(
				f"Window capacity {capacity} exceeds the {station.total_slots} slots of station {station.id}"
			)
		return cls(start, end, tuple(station.slot_ids[:capacity]))

	@property
	def capacity(self) -> int:
		return len(self.slot_ids)

	@property
	def time_window(self) -> TimeWindow:
		return TimeWindow(self.start, self.end)

	def slots_of(self, slot_type: SlotType) -> List[str]:
		prefix = f"{SlotType(slot_type).value}-"
		return [s for s in self.slot_ids if s.startswith(prefix)]

	def validate_for(self, station: Station) -> None:
		unknown = [s for s in self.slot_ids if not station.has_slot(s)]
		if unknown:
			raise ScheduleValidationError(
				f"Window {self.label()} references unknown slots {', '.join(unknown)} for station {station.id}"
			)

	def as_dict(self) -> Dict[str, Any]:
		return {
			"start": format_minutes(self.start),
			"end": format_minutes(self.end),
			"slot_ids": list(self.slot_ids),
			"capacity": self.capacity,
		}


def normalize_windows(windows: Sequence[Window]) -> Tuple[Window, ...]:
	"""
	Orders windows by start and rejects overlaps.

	Raises:
		ScheduleValidationError: if two windows overlap in time
	"""
	ordered = sorted(windows, key=lambda w: (w.start, w.end))
	for current, following in zip(ordered, ordered[1:]):
		if current.end > following.start:
			raise ScheduleValidationError(
				f"Windows {current.label()} and {following.label()} overlap"
			)
	return tuple(ordered)


@dataclass(frozen=True)
class WeeklyTemplateEntry:
	"""Recurring windows of a station for one weekday (Sunday = 0)."""

	station_id: str
	weekday: int
	windows: Tuple[Window, ...] = ()

	def __post_init__(self) -> None:
		if not isinstance(self.weekday, int) or not 0 <= self.weekday <= 6:
			raise ScheduleValidationError(f"Weekday must be 0-6 (Sunday = 0), got {self.weekday}")
		object.__setattr__(self, "windows", normalize_windows(self.windows))

	def validate_for(self, station: Station) -> None:
		for window in self.windows:
			window.validate_for(station)


@dataclass(frozen=True)
class ScheduleException:
	"""Date-specific replacement of a station's template. Empty = closed all day."""

	station_id: str
	date: date
	windows: Tuple[Window, ...] = ()
	note: Optional[str] = None

	def __post_init__(self) -> None:
		if not isinstance(self.date, date) or isinstance(self.date, datetime):
			raise ScheduleValidationError("Exception date must be a calendar date")
		object.__setattr__(self, "windows", normalize_windows(self.windows))

	@property
	def is_closed(self) -> bool:
		return not any(w.capacity for w in self.windows)

	def validate_for(self, station: Station) -> None:
		for window in self.windows:
			window.validate_for(station)


# ===== BOOKING =====

@dataclass(frozen=True)
class Booking:
	"""A claim of one slot of a station for a time range."""

	id: str
	owner_id: str
	station_id: str
	slot_type: SlotType
	slot_id: str
	starts_at: datetime
	ends_at: datetime
	status: BookingStatus = BookingStatus.PENDING
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None
	cancel_reason: Optional[str] = None
	notes: Optional[str] = None
	created_by: Optional[str] = None

	def __post_init__(self) -> None:
		object.__setattr__(self, "slot_type", SlotType(self.slot_type))
		object.__setattr__(self, "status", BookingStatus(self.status))
		slot_type, _ = parse_slot_id(self.slot_id)
		if slot_type != self.slot_type:
			raise ScheduleValidationError(
				f"Slot {self.slot_id} is not a {self.slot_type.value} slot"
			)
		if self.starts_at >= self.ends_at:
			raise ScheduleValidationError("Booking start must be before end")

	@property
	def holds_slot(self) -> bool:
		return self.status in ACTIVE_STATUSES

	@property
	def is_terminal(self) -> bool:
		return self.status in TERMINAL_STATUSES

	@property
	def slot_key(self) -> Tuple[str, str]:
		return self.station_id, self.slot_id

	def as_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"owner_id": self.owner_id,
			"station_id": self.station_id,
			"slot_type": self.slot_type.value,
			"slot_id": self.slot_id,
			"starts_at": self.starts_at.isoformat(),
			"ends_at": self.ends_at.isoformat(),
			"status": self.status.value,
			"created_at": self.created_at.isoformat() if self.created_at else None,
			"updated_at": self.updated_at.isoformat() if self.updated_at else None,
			"cancel_reason": self.cancel_reason,
			"notes": self.notes,
			"created_by": self.created_by,
		}
