"""
Frappe Backend

Directory and booking store backed by the app DocTypes:
- Charging Station, Station Schedule (+ Schedule Window rows),
  Schedule Exception, EV Owner -> FrappeScheduleDirectory
- Station Booking -> FrappeBookingStore
- EV Charging Settings -> BookingPolicy

Booking datetimes are stored naive, in the wall time of the station.
"""

from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import frappe
from frappe.model.naming import make_autoname
from frappe.utils import cint, flt, get_datetime, get_system_timezone, get_time, getdate

from .directory import ScheduleDirectory
from .errors import NotFoundError, ScheduleValidationError
from .models import (
	ACTIVE_STATUSES,
	Booking,
	ScheduleException,
	Station,
	StationStatus,
	WeeklyTemplateEntry,
	Window,
	format_minutes,
	get_timezone,
	normalize_windows,
)
from .rules import CREATION_HORIZON, MODIFICATION_CUTOFF, BookingPolicy
from .service import BookingService
from .store import BookingQuery, BookingStore, matches


# Sunday = 0, same order as weekday_of()
WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

BOOKING_NAMING_SERIES = "BK-.#####"

STATION_FIELDS = ["name", "station_name", "ac_slot_count", "dc_slot_count", "status", "timezone"]

BOOKING_FIELDS = [
	"name",
	"ev_owner",
	"station",
	"slot_type",
	"slot_id",
	"starts_at",
	"ends_at",
	"status",
	"cancel_reason",
	"notes",
	"booked_by",
	"creation",
	"modified",
]


# ===== CONVERSIONS =====

def to_minutes(value: Union[time, timedelta, str]) -> int:
	"""
	Convierte un valor de campo Time a minutos desde medianoche.

	Args:
		value: time, timedelta (como lo devuelve MariaDB) o string "HH:MM[:SS]"
	"""
	if isinstance(value, timedelta):
		return int(value.total_seconds() // 60)
	if isinstance(value, str):
		if value.strip().startswith("24:00"):
			return 24 * 60
		value = get_time(value)
	if isinstance(value, time):
		return value.hour * 60 + value.minute
	raise ScheduleValidationError(f"Cannot convert {type(value)} to a time of day")


def split_slot_ids(value: Optional[str]) -> List[str]:
	"""Parses the comma/newline separated slot_ids text of a Schedule Window row."""
	if not value:
		return []
	return [part.strip() for part in value.replace("\n", ",").split(",") if part.strip()]


def window_from_row(station: Station, row: Any) -> Window:
	"""
	Construye un Window desde una fila Schedule Window.

	Los slot_ids explícitos tienen prioridad; si no hay, slot_count toma los
	primeros slots de la estación (AC primero).
	"""
	start = to_minutes(row.get("start_time"))
	end = to_minutes(row.get("end_time"))
	slot_ids = split_slot_ids(row.get("slot_ids"))

	if slot_ids:
		window = Window(start, end, tuple(slot_ids))
		window.validate_for(station)
		return window

	if cint(row.get("slot_count")):
		return Window.from_capacity(station, start, end, cint(row.get("slot_count")))

	return Window(start, end, ())


def windows_from_rows(station: Station, rows: List[Any]) -> Tuple[Window, ...]:
	"""Windows of a Station Schedule or Schedule Exception, ordered and checked for overlaps."""
	return normalize_windows([window_from_row(station, row) for row in rows or []])


def row_from_window(window: Window) -> Dict[str, Any]:
	return {
		"start_time": f"{format_minutes(window.start)}:00",
		"end_time": f"{format_minutes(window.end)}:00",
		"slot_ids": ", ".join(window.slot_ids),
		"slot_count": window.capacity,
	}


def station_from_row(row: Any) -> Station:
	return Station(
		id=row.name,
		ac_slot_count=cint(row.ac_slot_count),
		dc_slot_count=cint(row.dc_slot_count),
		status=row.status or StationStatus.ACTIVE.value,
		timezone=row.timezone or get_default_timezone(),
		name=row.station_name
	)


def to_station_wall_time(station: Station, value: datetime) -> datetime:
	"""Naive wall time of `value` at the station, as stored in Datetime fields."""
	return station.localize(value).replace(tzinfo=None)


def booking_from_row(station: Station, row: Any) -> Booking:
	system_tz = get_timezone(get_system_timezone())
	return Booking(
		id=row.name,
		owner_id=row.ev_owner,
		station_id=row.station,
		slot_type=row.slot_type,
		slot_id=row.slot_id,
		starts_at=station.localize(get_datetime(row.starts_at)),
		ends_at=station.localize(get_datetime(row.ends_at)),
		status=row.status,
		created_at=system_tz.localize(get_datetime(row.creation)) if row.get("creation") else None,
		updated_at=system_tz.localize(get_datetime(row.modified)) if row.get("modified") else None,
		cancel_reason=row.cancel_reason,
		notes=row.notes,
		created_by=row.booked_by
	)


def row_from_booking(station: Station, booking: Booking) -> Dict[str, Any]:
	return {
		"ev_owner": booking.owner_id,
		"station": booking.station_id,
		"slot_type": booking.slot_type.value,
		"slot_id": booking.slot_id,
		"starts_at": to_station_wall_time(station, booking.starts_at),
		"ends_at": to_station_wall_time(station, booking.ends_at),
		"status": booking.status.value,
		"cancel_reason": booking.cancel_reason,
		"notes": booking.notes,
		"booked_by": booking.created_by,
	}


# ===== SETTINGS =====

def get_default_timezone() -> str:
	settings = frappe.get_cached_doc("EV Charging Settings")
	return settings.default_timezone or get_system_timezone() or "UTC"


def get_policy() -> BookingPolicy:
	"""BookingPolicy configured in EV Charging Settings (defaults 7 days / 12 hours)."""
	settings = frappe.get_cached_doc("EV Charging Settings")
	horizon_days = cint(settings.creation_horizon_days)
	cutoff_hours = flt(settings.modification_cutoff_hours)

	return BookingPolicy(
		creation_horizon=timedelta(days=horizon_days) if horizon_days > 0 else CREATION_HORIZON,
		modification_cutoff=timedelta(hours=cutoff_hours) if cutoff_hours > 0 else MODIFICATION_CUTOFF
	)


# ===== DIRECTORY =====

class FrappeScheduleDirectory(ScheduleDirectory):
	"""Reads and writes station schedules through the Frappe ORM."""

	def get_station(self, station_id: str) -> Station:
		row = frappe.db.get_value("Charging Station", station_id, STATION_FIELDS, as_dict=True)
		if not row:
			raise NotFoundError("Charging Station", station_id)
		return station_from_row(row)

	def list_stations(self) -> List[Station]:
		rows = frappe.get_all("Charging Station", fields=STATION_FIELDS, order_by="name asc")
		return [station_from_row(row) for row in rows]

	def get_template(self, station_id: str, weekday: int) -> Optional[WeeklyTemplateEntry]:
		name = frappe.db.get_value(
			"Station Schedule",
			{"station": station_id, "weekday": WEEKDAYS[weekday]},
			"name"
		)
		if not name:
			return None

		station = self.get_station(station_id)
		doc = frappe.get_doc("Station Schedule", name)
		windows = windows_from_rows(station, doc.windows)
		return WeeklyTemplateEntry(station_id, weekday, windows)

	def get_exception(self, station_id: str, day: date) -> Optional[ScheduleException]:
		name = frappe.db.get_value(
			"Schedule Exception",
			{"station": station_id, "date": day},
			"name"
		)
		if not name:
			return None

		station = self.get_station(station_id)
		doc = frappe.get_doc("Schedule Exception", name)
		windows = windows_from_rows(station, doc.windows)
		return ScheduleException(station_id, getdate(doc.date), windows, doc.note)

	def is_active_owner(self, owner_id: str) -> bool:
		return bool(cint(frappe.db.get_value("EV Owner", owner_id, "is_active")))

	def save_template(self, entry: WeeklyTemplateEntry) -> WeeklyTemplateEntry:
		entry.validate_for(self.get_station(entry.station_id))
		weekday = WEEKDAYS[entry.weekday]

		name = frappe.db.get_value(
			"Station Schedule",
			{"station": entry.station_id, "weekday": weekday},
			"name"
		)
		if name:
			doc = frappe.get_doc("Station Schedule", name)
		else:
			doc = frappe.new_doc("Station Schedule")
			doc.station = entry.station_id
			doc.weekday = weekday

		doc.set("windows", [row_from_window(window) for window in entry.windows])
		doc.save(ignore_permissions=True)
		return entry

	def clear_template(self, station_id: str, weekday: int) -> None:
		name = frappe.db.get_value(
			"Station Schedule",
			{"station": station_id, "weekday": WEEKDAYS[weekday]},
			"name"
		)
		if name:
			frappe.delete_doc("Station Schedule", name, ignore_permissions=True)

	def save_exception(self, exception: ScheduleException) -> ScheduleException:
		exception.validate_for(self.get_station(exception.station_id))

		name = frappe.db.get_value(
			"Schedule Exception",
			{"station": exception.station_id, "date": exception.date},
			"name"
		)
		if name:
			doc = frappe.get_doc("Schedule Exception", name)
		else:
			doc = frappe.new_doc("Schedule Exception")
			doc.station = exception.station_id
			doc.date = exception.date

		doc.note = exception.note
		doc.set("windows", [row_from_window(window) for window in exception.windows])
		doc.save(ignore_permissions=True)
		return exception

	def set_station_status(self, station_id: str, status: StationStatus) -> Station:
		station = self.get_station(station_id)
		frappe.db.set_value("Charging Station", station_id, "status", StationStatus(status).value)
		return station.with_status(status)


# ===== BOOKING STORE =====

class FrappeBookingStore(BookingStore):
	"""
	Station Booking persistence.

	A transaction locks the Charging Station rows (SELECT ... FOR UPDATE,
	in name order) and commits on exit, or rolls back on error.
	"""

	def __init__(self, directory: ScheduleDirectory):
		self.directory = directory
		self._stations: Dict[str, Station] = {}
		self._depth = 0

	def _station(self, station_id: str) -> Station:
		station = self._stations.get(station_id)
		if station is None:
			station = self._stations[station_id] = self.directory.get_station(station_id)
		return station

	@contextmanager
	def transaction(self, *station_ids: str) -> Iterator[None]:
		for station_id in sorted(set(station_ids)):
			frappe.db.sql(
				"SELECT name FROM `tabCharging Station` WHERE name = %s FOR UPDATE",
				station_id
			)

		self._depth += 1
		try:
			yield
		except Exception:
			self._depth -= 1
			if not self._depth:
				frappe.db.rollback()
			raise
		else:
			self._depth -= 1
			if not self._depth:
				frappe.db.commit()

	def new_id(self) -> str:
		return make_autoname(BOOKING_NAMING_SERIES, "Station Booking")

	def get(self, booking_id: str) -> Optional[Booking]:
		row = frappe.db.get_value("Station Booking", booking_id, BOOKING_FIELDS, as_dict=True)
		if not row:
			return None
		return booking_from_row(self._station(row.station), row)

	def overlapping(
		self,
		station_id: str,
		slot_id: str,
		start: datetime,
		end: datetime,
		exclude_booking: Optional[str] = None
	) -> List[Booking]:
		if start >= end:
			return []

		station = self._station(station_id)

		# Condición de overlap: starts_at < end AND ends_at > start
		filters = {
			"station": station_id,
			"slot_id": slot_id,
			"status": ["in", [status.value for status in ACTIVE_STATUSES]],
			"starts_at": ["<", to_station_wall_time(station, end)],
			"ends_at": [">", to_station_wall_time(station, start)],
		}
		if exclude_booking:
			filters["name"] = ["!=", exclude_booking]

		rows = frappe.get_all(
			"Station Booking",
			filters=filters,
			fields=BOOKING_FIELDS,
			order_by="starts_at asc"
		)
		return [booking_from_row(station, row) for row in rows]

	def insert(self, booking: Booking) -> Booking:
		doc = frappe.get_doc({
			"doctype": "Station Booking",
			**row_from_booking(self._station(booking.station_id), booking)
		})
		doc.flags.from_booking_engine = True
		doc.insert(ignore_permissions=True, set_name=booking.id)
		return booking

	def update(self, booking: Booking) -> Booking:
		if not frappe.db.exists("Station Booking", booking.id):
			raise NotFoundError("Station Booking", booking.id)

		doc = frappe.get_doc("Station Booking", booking.id)
		doc.update(row_from_booking(self._station(booking.station_id), booking))
		doc.flags.from_booking_engine = True
		doc.save(ignore_permissions=True)
		return booking

	def delete(self, booking_id: str) -> None:
		if not frappe.db.exists("Station Booking", booking_id):
			raise NotFoundError("Station Booking", booking_id)
		frappe.delete_doc("Station Booking", booking_id, ignore_permissions=True)

	def query(self, filters: Optional[BookingQuery] = None) -> List[Booking]:
		filters = filters or BookingQuery()

		db_filters = {}
		if filters.station_id:
			db_filters["station"] = filters.station_id
		if filters.owner_id:
			db_filters["ev_owner"] = filters.owner_id
		if filters.status:
			db_filters["status"] = getattr(filters.status, "value", filters.status)
		if filters.slot_type:
			db_filters["slot_type"] = getattr(filters.slot_type, "value", filters.slot_type)

		rows = frappe.get_all(
			"Station Booking",
			filters=db_filters,
			fields=BOOKING_FIELDS,
			order_by="starts_at asc, name asc"
		)

		# date bounds are instants; stored wall times differ per station
		bookings = [booking_from_row(self._station(row.station), row) for row in rows]
		return sorted(
			(b for b in bookings if matches(b, filters)),
			key=lambda b: (b.starts_at, b.id)
		)


def get_booking_service() -> BookingService:
	"""Service wired to the Frappe DocTypes, EV Charging Settings and the app log."""
	directory = FrappeScheduleDirectory()
	return BookingService(
		directory,
		FrappeBookingStore(directory),
		policy=get_policy(),
		logger=frappe.logger("ev_charging")
	)


def cancel_upcoming_bookings(station_id: str) -> None:
	"""Background job run when a station is deactivated from its form."""
	service = get_booking_service()
	cancelled = service.lifecycle.cancel_station_bookings(station_id)
	service.logger.info(f"Station {station_id} deactivated: {len(cancelled)} bookings cancelled")
