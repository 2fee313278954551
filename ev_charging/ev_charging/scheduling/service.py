"""
Booking Service

Entry point used by the API layer. Wraps the resolver, the allocator and
the lifecycle behind the operations the operator console calls:
- check_availability / get_effective_availability
- create_booking (retries once on a concurrent claim)
- modify_booking, approve, complete, cancel, delete_booking
- list_bookings, dashboard_stats
- set_station_status (deactivation cancels upcoming bookings)
- apply_schedule_preset, weekly_capacity, save_exception
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from .availability import build_preset, daily_capacity, resolve, resolve_range, weekly_slot_hours
from .directory import ScheduleDirectory
from .errors import NotFoundError, SlotConflictError, StationClosedError
from .lifecycle import STATION_DEACTIVATED_REASON, BookingLifecycle
from .models import (
	Booking,
	BookingStatus,
	ScheduleException,
	SlotType,
	StationStatus,
	TimeWindow,
	Window,
	coerce_slot_type,
)
from .rules import BookingPolicy
from .store import BookingQuery, BookingStore


NO_SLOTS_MESSAGE = "No slots available"


class BookingService:
	"""Availability queries and booking commands over one directory and store."""

	def __init__(
		self,
		directory: ScheduleDirectory,
		store: BookingStore,
		clock: Any = None,
		policy: Optional[BookingPolicy] = None,
		logger: Optional[logging.Logger] = None
	):
		self.directory = directory
		self.store = store
		self.logger = logger or logging.getLogger(__name__)
		self.lifecycle = BookingLifecycle(directory, store, clock=clock, policy=policy, logger=self.logger)
		self.allocator = self.lifecycle.allocator
		self.clock = self.lifecycle.clock

	# ===== QUERIES =====

	def check_availability(
		self,
		station_id: str,
		target_date: date,
		window: TimeWindow,
		slot_type: SlotType,
		owner_id: Optional[str] = None
	) -> Dict[str, Any]:
		"""
		Verifica disponibilidad de slots para un rango del día.

		Returns:
			dict: {
				"is_available": bool,
				"available_slot_ids": ["AC-1", ...],
				"message": str
			}
		"""
		station = self.directory.get_station(station_id)
		if owner_id and not self.directory.is_active_owner(owner_id):
			raise NotFoundError("EV Owner", owner_id)

		slot_type = coerce_slot_type(slot_type)
		if not station.is_active:
			return {
				"is_available": False,
				"available_slot_ids": [],
				"message": f"Station {station.id} is deactivated"
			}

		slot_ids = self.allocator.find_available(station, target_date, window, slot_type)
		if not slot_ids:
			message = f"{NO_SLOTS_MESSAGE}: no {slot_type.value} slots at {station.id} on {target_date.isoformat()} {window.label()}"
		else:
			message = f"{len(slot_ids)} {slot_type.value} slot(s) available"

		return {
			"is_available": bool(slot_ids),
			"available_slot_ids": slot_ids,
			"message": message
		}

	def get_effective_availability(
		self,
		station_id: str,
		start_date: date,
		end_date: date
	) -> Dict[str, List[Window]]:
		return resolve_range(self.directory, station_id, start_date, end_date)

	def get_booking(self, booking_id: str) -> Booking:
		return self.store.require(booking_id)

	def list_bookings(
		self,
		date_from: Optional[datetime] = None,
		date_to: Optional[datetime] = None,
		status: Optional[BookingStatus] = None,
		station_id: Optional[str] = None,
		owner_id: Optional[str] = None,
		slot_type: Optional[SlotType] = None
	) -> List[Booking]:
		"""Bookings ordered by start; `date_to` is exclusive."""
		return self.store.query(BookingQuery(
			station_id=station_id,
			owner_id=owner_id,
			status=BookingStatus(status) if status else None,
			slot_type=coerce_slot_type(slot_type) if slot_type else None,
			starts_from=date_from,
			starts_before=date_to
		))

	def dashboard_stats(self, today: Optional[date] = None) -> Dict[str, Any]:
		"""
		KPIs of the operator dashboard.

		same_day_capacity.total counts the slots opened today across active
		stations; booked counts today's bookings that are not cancelled.
		"""
		now = self.clock.now()
		stations = self.directory.list_stations()
		bookings = self.store.query()

		total = 0
		booked = 0
		for station in stations:
			local_today = today or now.astimezone(station.tz).date()
			if station.is_active:
				total += daily_capacity(resolve(self.directory, station, local_today))
			booked += sum(
				1 for b in bookings
				if b.station_id == station.id
				and b.status != BookingStatus.CANCELLED
				and b.starts_at.astimezone(station.tz).date() == local_today
			)

		return {
			"pending_reservations": sum(1 for b in bookings if b.status == BookingStatus.PENDING),
			"approved_future_reservations": sum(
				1 for b in bookings if b.status == BookingStatus.APPROVED and b.starts_at > now
			),
			"active_stations": sum(1 for s in stations if s.is_active),
			"deactivated_stations": sum(1 for s in stations if not s.is_active),
			"same_day_capacity": {"total": total, "booked": booked},
		}

	# ===== COMMANDS =====

	def create_booking(
		self,
		owner_id: str,
		station_id: str,
		slot_type: SlotType,
		starts_at: datetime,
		ends_at: datetime,
		notes: Optional[str] = None,
		slot_id: Optional[str] = None,
		auto_approve: bool = False,
		created_by: Optional[str] = None
	) -> Dict[str, Any]:
		"""
		Crea un booking.

		Si otro booking reclama el slot entre la propuesta y el commit, se
		reintenta una vez con candidatos nuevos; si vuelve a fallar se reporta
		"No slots available". Un slot pedido explícitamente no se reintenta.

		Returns:
			dict: {"booking": Booking, "message": str}
		"""
		attempts = 1 if slot_id else 2
		for attempt in range(1, attempts + 1):
			try:
				booking = self.lifecycle.create(
					owner_id,
					station_id,
					slot_type,
					starts_at,
					ends_at,
					slot_id=slot_id,
					notes=notes,
					auto_approve=auto_approve,
					created_by=created_by
				)
				break
			except SlotConflictError as e:
				self.logger.warning("create_booking attempt %d lost a race: %s", attempt, e)
				if attempt == attempts:
					raise StationClosedError(f"{NO_SLOTS_MESSAGE}: {e}") from e

		return {
			"booking": booking,
			"message": f"Booking {booking.id} created for {booking.slot_id} ({booking.status.value})"
		}

	def modify_booking(self, booking_id: str, **changes: Any) -> Booking:
		return self.lifecycle.modify(booking_id, **changes)

	def approve(self, booking_id: str) -> Booking:
		return self.lifecycle.approve(booking_id)

	def complete(self, booking_id: str) -> Booking:
		return self.lifecycle.complete(booking_id)

	def cancel(self, booking_id: str, reason: str) -> Booking:
		return self.lifecycle.cancel(booking_id, reason)

	def delete_booking(self, booking_id: str) -> Booking:
		return self.lifecycle.delete(booking_id)

	def set_station_status(self, station_id: str, status: StationStatus) -> Dict[str, Any]:
		"""
		Activates or deactivates a station.

		Deactivation cancels the station's upcoming PENDING/APPROVED bookings.

		Returns:
			dict: {"station": Station, "cancelled_bookings": [Booking, ...]}
		"""
		status = StationStatus(status)
		cancelled = []

		# claims re-read the status under this lock
		with self.store.transaction(station_id):
			station = self.directory.set_station_status(station_id, status)
			if status == StationStatus.DEACTIVATED:
				cancelled = self.lifecycle.cancel_station_bookings(station_id, STATION_DEACTIVATED_REASON)

		self.logger.info("Station %s is now %s", station_id, status.value)
		return {"station": station, "cancelled_bookings": cancelled}


	# ===== SCHEDULES =====

	def apply_schedule_preset(self, station_id: str, preset: str) -> Dict[str, Any]:
		"""
		Replaces the weekly template of a station with a preset.

		Weekdays outside the preset are cleared (closed).

		Returns:
			dict: {"templates": [WeeklyTemplateEntry, ...], "weekly_slot_hours": float}
		"""
		station = self.directory.get_station(station_id)
		entries = build_preset(station, preset)
		by_weekday = {entry.weekday: entry for entry in entries}

		for weekday in range(7):
			entry = by_weekday.get(weekday)
			if entry is None:
				self.directory.clear_template(station.id, weekday)
			else:
				self.directory.save_template(entry)

		self.logger.info("Applied schedule preset %s to station %s", preset, station.id)
		return {"templates": entries, "weekly_slot_hours": weekly_slot_hours(entries)}

	def weekly_capacity(self, station_id: str) -> Dict[str, Any]:
		"""Weekly template of a station and its slot-hours per week."""
		station = self.directory.get_station(station_id)
		entries = self.directory.get_templates(station.id)
		return {"templates": entries, "weekly_slot_hours": weekly_slot_hours(entries)}

	def save_exception(
		self,
		station_id: str,
		day: date,
		windows: Sequence[Window] = (),
		note: Optional[str] = None
	) -> ScheduleException:
		"""
		Stores the exception of a station for a date, replacing any previous one.

		No windows means the station is closed that day. Existing bookings
		are left as they are.
		"""
		station = self.directory.get_station(station_id)
		exception = ScheduleException(station.id, day, tuple(windows), note)
		self.directory.save_exception(exception)

		self.logger.info(
			"Schedule exception for %s on %s: %s",
			station.id, day.isoformat(),
			"closed" if exception.is_closed else ", ".join(w.label() for w in exception.windows)
		)
		return exception
