"""
Booking Lifecycle

State machine and temporal guards of a Station Booking:

	PENDING  -> APPROVED | CANCELLED
	APPROVED -> COMPLETED | CANCELLED
	COMPLETED, CANCELLED: terminal

- create: claim a slot; start within the creation horizon
- modify: only PENDING/APPROVED and at least 12h before start; new slot is
  claimed before the old one is released
- approve / complete: no temporal restriction
- cancel: PENDING/APPROVED, at least 12h before start, reason required
- delete: only terminal bookings
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from .allocator import SlotAllocator
from .directory import ScheduleDirectory
from .errors import (
	InvalidTransitionError,
	NotFoundError,
	ScheduleValidationError,
	SlotConflictError,
	StationClosedError,
)
from .models import (
	ACTIVE_STATUSES,
	Booking,
	BookingStatus,
	SlotType,
	Station,
	coerce_slot_type,
	parse_slot_id,
)
from .rules import (
	BookingPolicy,
	SystemClock,
	ensure_meets_modification_cutoff,
	ensure_within_creation_horizon,
)
from .store import BookingQuery, BookingStore


ALLOWED_TRANSITIONS = {
	BookingStatus.PENDING: (BookingStatus.APPROVED, BookingStatus.CANCELLED),
	BookingStatus.APPROVED: (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
	BookingStatus.COMPLETED: (),
	BookingStatus.CANCELLED: (),
}

STATION_DEACTIVATED_REASON = "Station deactivated"


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
	"""
	Raises:
		InvalidTransitionError: rule "terminal_state" or "invalid_transition"
	"""
	if target in ALLOWED_TRANSITIONS[current]:
		return

	if not ALLOWED_TRANSITIONS[current]:
		raise InvalidTransitionError(
			f"Booking is {current.value} and cannot change status",
			rule="terminal_state"
		)
	raise InvalidTransitionError(
		f"Cannot move a {current.value} booking to {target.value}",
		rule="invalid_transition"
	)


class BookingLifecycle:
	"""The only component that mutates the committed-booking set."""

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
		self.clock = clock or SystemClock()
		self.policy = policy or BookingPolicy()
		self.logger = logger or logging.getLogger(__name__)
		self.allocator = SlotAllocator(directory, store, logger=self.logger)

	# ===== CREATE =====

	def create(
		self,
		owner_id: str,
		station_id: str,
		slot_type: SlotType,
		starts_at: datetime,
		ends_at: datetime,
		slot_id: Optional[str] = None,
		notes: Optional[str] = None,
		auto_approve: bool = False,
		created_by: Optional[str] = None
	) -> Booking:
		"""
		Crea un booking reclamando un slot.

		Flujo:
		1. Validar estación, owner y rango (antes de tocar estado compartido)
		2. Validar horizonte de creación (now < start <= now + 7d)
		3. Proponer candidatos (find_available)
		4. Reclamar el slot solicitado o el de menor índice

		Raises:
			ScheduleValidationError, NotFoundError, InvalidTransitionError,
			StationClosedError, SlotConflictError
		"""
		station = self.directory.get_station(station_id)
		self._ensure_owner(owner_id)
		slot_type = coerce_slot_type(slot_type)
		_, start, end = station.local_range(starts_at, ends_at)
		if slot_id is not None:
			self._ensure_slot_of(station, slot_id, slot_type)

		now = self.clock.now()
		ensure_within_creation_horizon(start, now, self.policy.creation_horizon)
		self._ensure_station_active(station)

		candidates = self.allocator.find_available_between(station, start, end, slot_type)
		chosen = self._choose_slot(station, candidates, slot_type, start, end, slot_id)

		booking = Booking(
			id=self.store.new_id(),
			owner_id=owner_id,
			station_id=station.id,
			slot_type=slot_type,
			slot_id=chosen,
			starts_at=start,
			ends_at=end,
			status=BookingStatus.APPROVED if auto_approve else BookingStatus.PENDING,
			created_at=now,
			updated_at=now,
			notes=notes,
			created_by=created_by
		)
		return self.allocator.claim(booking)

	# ===== MODIFY =====

	def modify(
		self,
		booking_id: str,
		station_id: Optional[str] = None,
		slot_type: Optional[SlotType] = None,
		slot_id: Optional[str] = None,
		starts_at: Optional[datetime] = None,
		ends_at: Optional[datetime] = None,
		notes: Optional[str] = None
	) -> Booking:
		"""
		Modifica estación/slot/horario/notas de un booking activo.

		Si cambia el horario, la estación o el slot, se re-ejecuta
		find_available y el nuevo slot se reclama en la misma operación
		atómica que libera el anterior. Ante conflicto, el booking original
		queda intacto.
		"""
		current = self.store.require(booking_id)
		now = self.clock.now()
		self._ensure_modifiable(current, now, "modified")

		moves = any(v is not None for v in (station_id, slot_type, slot_id, starts_at, ends_at))
		if not moves:
			if notes is None:
				return current
			return self._update_in_place(booking_id, "modified", lambda b: {"notes": notes})

		station = self.directory.get_station(station_id or current.station_id)
		if slot_type is not None:
			new_type = coerce_slot_type(slot_type)
		elif slot_id is not None:
			new_type = parse_slot_id(slot_id)[0]
		else:
			new_type = current.slot_type
		if slot_id is not None:
			self._ensure_slot_of(station, slot_id, new_type)

		_, start, end = station.local_range(
			starts_at if starts_at is not None else current.starts_at,
			ends_at if ends_at is not None else current.ends_at
		)
		if start != current.starts_at:
			ensure_within_creation_horizon(start, now, self.policy.creation_horizon)
		self._ensure_station_active(station)

		candidates = self.allocator.find_available_between(
			station, start, end, new_type, exclude_booking=current.id
		)
		if slot_id is None and station.id == current.station_id and current.slot_id in candidates:
			# keep the slot the owner already has when it still fits
			slot_id = current.slot_id
		chosen = self._choose_slot(station, candidates, new_type, start, end, slot_id, current.id)

		changes = {
			"station_id": station.id,
			"slot_type": new_type,
			"slot_id": chosen,
			"starts_at": start,
			"ends_at": end,
			"updated_at": now,
		}
		if notes is not None:
			changes["notes"] = notes

		# status and cutoff are re-checked on the stored version under the lock
		return self.allocator.swap(
			current,
			changes,
			guard=lambda stored: self._ensure_modifiable(stored, now, "modified")
		)

	# ===== TRANSITIONS =====

	def approve(self, booking_id: str) -> Booking:
		return self._transition(booking_id, BookingStatus.APPROVED)

	def complete(self, booking_id: str) -> Booking:
		return self._transition(booking_id, BookingStatus.COMPLETED)

	def cancel(self, booking_id: str, reason: str) -> Booking:
		"""
		Cancela un booking liberando su slot.

		Raises:
			ScheduleValidationError: si no hay motivo
			InvalidTransitionError: si es terminal o faltan menos de 12h
		"""
		reason = (reason or "").strip()
		if not reason:
			raise ScheduleValidationError("A cancellation reason is required")

		def guard(booking: Booking, now: datetime) -> None:
			ensure_meets_modification_cutoff(
				booking.starts_at, now, "cancelled", self.policy.modification_cutoff
			)

		return self._transition(
			booking_id,
			BookingStatus.CANCELLED,
			guard=guard,
			changes={"cancel_reason": reason}
		)

	def delete(self, booking_id: str) -> Booking:
		"""Permanently removes a COMPLETED or CANCELLED booking."""
		with self._locked(booking_id) as booking:
			if not booking.is_terminal:
				raise InvalidTransitionError(
					"Only completed or cancelled bookings can be permanently deleted",
					rule="not_terminal"
				)
			self.store.delete(booking.id)

		self.logger.info("Deleted booking %s (%s)", booking.id, booking.status.value)
		return booking

	def cancel_station_bookings(self, station_id: str, reason: str = STATION_DEACTIVATED_REASON) -> List[Booking]:
		"""
		Cancels every not-yet-started PENDING/APPROVED booking of a station.

		System action used on station deactivation; not subject to the
		modification cutoff.
		"""
		now = self.clock.now()
		cancelled = []

		with self.store.transaction(station_id):
			for status in ACTIVE_STATUSES:
				for booking in self.store.query(BookingQuery(station_id=station_id, status=status)):
					if booking.starts_at <= now:
						continue
					updated = replace(
						booking,
						status=BookingStatus.CANCELLED,
						cancel_reason=reason,
						updated_at=now
					)
					self.store.update(updated)
					cancelled.append(updated)

		if cancelled:
			self.logger.info("Cancelled %d bookings of station %s: %s", len(cancelled), station_id, reason)
		return cancelled

	# ===== HELPERS =====

	@contextmanager
	def _locked(self, booking_id: str) -> Iterator[Booking]:
		"""Holds the station lock of a booking and yields its current version."""
		while True:
			station_id = self.store.require(booking_id).station_id
			with self.store.transaction(station_id):
				booking = self.store.require(booking_id)
				if booking.station_id != station_id:
					# moved to another station meanwhile
					continue
				yield booking
				return

	def _transition(
		self,
		booking_id: str,
		target: BookingStatus,
		guard: Any = None,
		changes: Optional[Dict[str, Any]] = None
	) -> Booking:
		now = self.clock.now()
		with self._locked(booking_id) as booking:
			ensure_transition(booking.status, target)
			if guard is not None:
				guard(booking, now)
			updated = replace(booking, status=target, updated_at=now, **(changes or {}))
			self.store.update(updated)

		self.logger.info("Booking %s: %s -> %s", booking_id, booking.status.value, target.value)
		return updated

	def _update_in_place(self, booking_id: str, action: str, changes: Any) -> Booking:
		now = self.clock.now()
		with self._locked(booking_id) as booking:
			self._ensure_modifiable(booking, now, action)
			updated = replace(booking, updated_at=now, **changes(booking))
			self.store.update(updated)
		return updated

	def _ensure_modifiable(self, booking: Booking, now: datetime, action: str) -> None:
		if booking.status not in ACTIVE_STATUSES:
			raise InvalidTransitionError(
				f"Booking is {booking.status.value} and cannot be {action}",
				rule="terminal_state"
			)
		ensure_meets_modification_cutoff(
			booking.starts_at, now, action, self.policy.modification_cutoff
		)

	def _ensure_owner(self, owner_id: str) -> None:
		if not owner_id:
			raise ScheduleValidationError("Owner is required")
		if not self.directory.is_active_owner(owner_id):
			raise NotFoundError("EV Owner", owner_id)

	@staticmethod
	def _ensure_station_active(station: Station) -> None:
		if not station.is_active:
			raise StationClosedError(f"Station {station.id} is deactivated and not accepting bookings")

	@staticmethod
	def _ensure_slot_of(station: Station, slot_id: str, slot_type: SlotType) -> None:
		requested_type, _ = parse_slot_id(slot_id)
		if requested_type != slot_type:
			raise ScheduleValidationError(f"Slot {slot_id} is not a {slot_type.value} slot")
		if not station.has_slot(slot_id):
			raise ScheduleValidationError(f"Station {station.id} has no slot {slot_id}")

	def _choose_slot(
		self,
		station: Station,
		candidates: List[str],
		slot_type: SlotType,
		start: datetime,
		end: datetime,
		slot_id: Optional[str],
		exclude_booking: Optional[str] = None
	) -> str:
		if slot_id is None:
			if not candidates:
				raise StationClosedError(
					f"No {slot_type.value} slots available at station {station.id} "
					f"for {start.strftime('%Y-%m-%d %H:%M')}-{end.strftime('%H:%M')}"
				)
			return candidates[0]

		if slot_id in candidates:
			return slot_id

		if self.store.overlapping(station.id, slot_id, start, end, exclude_booking=exclude_booking):
			raise SlotConflictError(station.id, slot_id)
		raise StationClosedError(
			f"Slot {slot_id} is not open at station {station.id} "
			f"for {start.strftime('%Y-%m-%d %H:%M')}-{end.strftime('%H:%M')}"
		)
