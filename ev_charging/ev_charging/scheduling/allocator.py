"""
Slot Allocator

Two-phase slot allocation:
1. find_available: proposes free slot ids for a station, date, range and type
2. claim / swap: atomically commits a booking after re-checking overlaps

The set of free slots can change between both phases; claim and swap
detect that and raise SlotConflictError.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from .availability import find_containing_window, resolve
from .directory import ScheduleDirectory
from .errors import InvalidTransitionError, SlotConflictError, StationClosedError
from .models import Booking, SlotType, Station, TimeWindow, coerce_slot_type, sort_slot_ids
from .overlap import check_overlap
from .store import BookingStore


class SlotAllocator:
	"""Finds and claims slots against a directory and a booking store."""

	def __init__(
		self,
		directory: ScheduleDirectory,
		store: BookingStore,
		logger: Optional[logging.Logger] = None
	):
		self.directory = directory
		self.store = store
		self.logger = logger or logging.getLogger(__name__)

	def find_available(
		self,
		station: Station,
		target_date: date,
		window: TimeWindow,
		slot_type: SlotType,
		exclude_booking: Optional[str] = None
	) -> List[str]:
		"""
		Slot ids free for `window` (minute-of-day) on `target_date`.

		Args:
			station: estación
			target_date: fecha local de la estación
			window: rango solicitado [start, end) en minutos del día
			slot_type: AC o DC
			exclude_booking: booking ignorado en el chequeo de overlaps

		Returns:
			list[str]: candidatos en orden ascendente de índice ("AC-1", "AC-2", ...)
		"""
		start, end = station.local_bounds(target_date, window)
		return self._candidates(station, target_date, start, end, slot_type, exclude_booking)

	def find_available_between(
		self,
		station: Station,
		starts_at: datetime,
		ends_at: datetime,
		slot_type: SlotType,
		exclude_booking: Optional[str] = None
	) -> List[str]:
		"""Same as find_available, for a concrete datetime range."""
		target_date, start, end = station.local_range(starts_at, ends_at)
		return self._candidates(station, target_date, start, end, slot_type, exclude_booking)

	def _candidates(
		self,
		station: Station,
		target_date: date,
		start: datetime,
		end: datetime,
		slot_type: SlotType,
		exclude_booking: Optional[str]
	) -> List[str]:
		slot_type = coerce_slot_type(slot_type)

		# 1. Disponibilidad efectiva del día
		windows = resolve(self.directory, station, target_date)

		# 2. Una sola ventana debe contener todo el rango
		window = find_containing_window(windows, station, target_date, start, end)
		if window is None:
			return []

		# 3. Excluir slots con bookings que se solapan
		free = [
			slot_id
			for slot_id in window.slots_of(slot_type)
			if not self.store.overlapping(station.id, slot_id, start, end, exclude_booking=exclude_booking)
		]

		return sort_slot_ids(free)

	def claim(self, booking: Booking) -> Booking:
		"""
		Commits a new booking for its slot and time range.

		Raises:
			StationClosedError: if the station was deactivated since the slot was proposed
			SlotConflictError: if the slot was taken since it was proposed
		"""
		with self.store.transaction(booking.station_id):
			self._ensure_station_open(booking.station_id)
			self._ensure_free(booking)
			self.store.insert(booking)

		self.logger.info(
			"Claimed %s %s for %s (%s - %s)",
			booking.station_id, booking.slot_id, booking.id,
			booking.starts_at.isoformat(), booking.ends_at.isoformat()
		)
		return booking

	def swap(
		self,
		current: Booking,
		changes: Dict[str, Any],
		guard: Optional[Callable[[Booking], None]] = None
	) -> Booking:
		"""
		Moves a booking to a new slot/range in one atomic step.

		The new version is built from the stored booking, so a status or
		notes change committed meanwhile is kept. The old claim is released
		only if the new one succeeds; on conflict the stored booking is left
		untouched.

		Args:
			current: version the changes were computed from
			changes: fields to replace (station_id, slot_type, slot_id, starts_at, ends_at, notes, updated_at)
			guard: re-checked against the stored booking under the lock

		Raises:
			SlotConflictError: if the new slot/range is taken or the booking was moved meanwhile
			StationClosedError: if the target station was deactivated
			InvalidTransitionError: if the booking stopped holding its slot meanwhile
		"""
		target_station = changes.get("station_id", current.station_id)

		with self.store.transaction(current.station_id, target_station):
			stored = self.store.require(current.id)
			if not stored.holds_slot:
				raise InvalidTransitionError(
					f"Booking {current.id} is {stored.status.value} and no longer holds a slot",
					rule="terminal_state"
				)
			if guard is not None:
				guard(stored)
			if (stored.station_id, stored.slot_id, stored.starts_at, stored.ends_at) != (
				current.station_id, current.slot_id, current.starts_at, current.ends_at
			):
				raise SlotConflictError(
					current.station_id,
					current.slot_id,
					message=f"Booking {current.id} was moved by another request; reload it and retry"
				)

			replacement = replace(stored, **changes)
			self._ensure_station_open(replacement.station_id)
			self._ensure_free(replacement, exclude_booking=current.id)
			self.store.update(replacement)

		self.logger.info(
			"Moved %s from %s %s to %s %s (%s - %s)",
			current.id, current.station_id, current.slot_id,
			replacement.station_id, replacement.slot_id,
			replacement.starts_at.isoformat(), replacement.ends_at.isoformat()
		)
		return replacement

	def _ensure_station_open(self, station_id: str) -> None:
		# status is read under the station lock; deactivation writes it under the same lock
		if not self.directory.get_station(station_id).is_active:
			raise StationClosedError(f"Station {station_id} is deactivated and not accepting bookings")

	def _ensure_free(self, booking: Booking, exclude_booking: Optional[str] = None) -> None:
		result = check_overlap(
			self.store,
			booking.station_id,
			booking.slot_id,
			booking.starts_at,
			booking.ends_at,
			exclude_booking=exclude_booking
		)
		if result["has_overlap"]:
			self.logger.warning(
				"Conflict claiming %s %s for %s: held by %s",
				booking.station_id, booking.slot_id, booking.id,
				", ".join(result["overlapping_bookings"])
			)
			raise SlotConflictError(
				booking.station_id,
				booking.slot_id,
				conflicting=result["overlapping_bookings"][0]
			)
