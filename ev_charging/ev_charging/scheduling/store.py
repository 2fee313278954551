"""
Booking Store

Committed-booking set of the engine, keyed by (station, slot) with
range queries over time.

Writes (insert/update/delete) are only accepted inside
`transaction(*station_ids)`, which serialises every claim and lifecycle
transition of those stations. Reads never block: the per-slot index is
copy-on-write, so a reader always sees a consistent snapshot.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from bisect import bisect_left
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from .errors import NotFoundError
from .models import Booking, BookingStatus, SlotType


class BookingQuery(NamedTuple):
	"""Filters for listing bookings. None means "any"."""

	station_id: Optional[str] = None
	owner_id: Optional[str] = None
	status: Optional[BookingStatus] = None
	slot_type: Optional[SlotType] = None
	starts_from: Optional[datetime] = None
	starts_before: Optional[datetime] = None


class BookingStore(ABC):
	"""Persistence boundary for bookings."""

	@abstractmethod
	def transaction(self, *station_ids: str):
		"""Context manager holding the write lock of the given stations."""
		pass

	@abstractmethod
	def new_id(self) -> str:
		pass

	@abstractmethod
	def get(self, booking_id: str) -> Optional[Booking]:
		pass

	@abstractmethod
	def overlapping(
		self,
		station_id: str,
		slot_id: str,
		start: datetime,
		end: datetime,
		exclude_booking: Optional[str] = None
	) -> List[Booking]:
		"""Slot-holding bookings of (station, slot) that overlap [start, end)."""
		pass

	@abstractmethod
	def insert(self, booking: Booking) -> Booking:
		pass

	@abstractmethod
	def update(self, booking: Booking) -> Booking:
		pass

	@abstractmethod
	def delete(self, booking_id: str) -> None:
		pass

	@abstractmethod
	def query(self, filters: Optional[BookingQuery] = None) -> List[Booking]:
		pass

	def require(self, booking_id: str) -> Booking:
		booking = self.get(booking_id)
		if booking is None:
			raise NotFoundError("Station Booking", booking_id)
		return booking


def matches(booking: Booking, filters: BookingQuery) -> bool:
	if filters.station_id and booking.station_id != filters.station_id:
		return False
	if filters.owner_id and booking.owner_id != filters.owner_id:
		return False
	if filters.status and booking.status != BookingStatus(filters.status):
		return False
	if filters.slot_type and booking.slot_type != SlotType(filters.slot_type):
		return False
	if filters.starts_from and booking.starts_at < filters.starts_from:
		return False
	if filters.starts_before and booking.starts_at >= filters.starts_before:
		return False
	return True


class _SlotIndex(NamedTuple):
	starts: Tuple[datetime, ...]
	entries: Tuple[Tuple[datetime, datetime, str], ...]


_EMPTY_INDEX = _SlotIndex((), ())


class InMemoryBookingStore(BookingStore):
	"""
	Thread-safe in-memory store.

	Each (station, slot) keeps its slot-holding bookings sorted by start.
	Because those bookings never overlap, their ends are sorted too, so a
	range query is a bisect plus a short backwards scan.
	"""

	def __init__(self, prefix: str = "BK"):
		self._prefix = prefix
		self._counter = itertools.count(1)
		self._bookings: Dict[str, Booking] = {}
		self._index: Dict[Tuple[str, str], _SlotIndex] = {}
		self._locks: Dict[str, threading.RLock] = {}
		self._locks_guard = threading.Lock()
		self._held = threading.local()

	# ===== LOCKING =====

	def _lock_for(self, station_id: str) -> threading.RLock:
		with self._locks_guard:
			lock = self._locks.get(station_id)
			if lock is None:
				lock = self._locks[station_id] = threading.RLock()
			return lock

	def _held_counts(self) -> Dict[str, int]:
		counts = getattr(self._held, "counts", None)
		if counts is None:
			counts = self._held.counts = {}
		return counts

	@contextmanager
	def transaction(self, *station_ids: str) -> Iterator[None]:
		# sorted acquisition keeps two-station moves deadlock free
		ordered = sorted(set(station_ids))
		locks = [self._lock_for(station_id) for station_id in ordered]
		counts = self._held_counts()
		acquired = []
		try:
			for station_id, lock in zip(ordered, locks):
				lock.acquire()
				acquired.append((station_id, lock))
				counts[station_id] = counts.get(station_id, 0) + 1
			yield
		finally:
			for station_id, lock in reversed(acquired):
				counts[station_id] -= 1
				if not counts[station_id]:
					del counts[station_id]
				lock.release()

	def _require_lock(self, station_id: str) -> None:
		if station_id not in self._held_counts():
			raise RuntimeError(f"Write to station {station_id} outside of a transaction")

	# ===== READS =====

	def new_id(self) -> str:
		return f"{self._prefix}-{next(self._counter):05d}"

	def get(self, booking_id: str) -> Optional[Booking]:
		return self._bookings.get(booking_id)

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

		index = self._index.get((station_id, slot_id), _EMPTY_INDEX)
		# every entry before `position` starts before `end`
		position = bisect_left(index.starts, end)

		found = []
		for entry_start, entry_end, booking_id in reversed(index.entries[:position]):
			if entry_end <= start:
				break
			if booking_id != exclude_booking:
				found.append(self._bookings[booking_id])

		found.reverse()
		return found

	def query(self, filters: Optional[BookingQuery] = None) -> List[Booking]:
		filters = filters or BookingQuery()
		bookings = [b for b in list(self._bookings.values()) if matches(b, filters)]
		return sorted(bookings, key=lambda b: (b.starts_at, b.id))

	# ===== WRITES =====

	def insert(self, booking: Booking) -> Booking:
		self._require_lock(booking.station_id)
		if booking.id in self._bookings:
			raise ValueError(f"Booking {booking.id} already exists")
		self._bookings[booking.id] = booking
		if booking.holds_slot:
			self._index_add(booking)
		return booking

	def update(self, booking: Booking) -> Booking:
		previous = self._bookings.get(booking.id)
		if previous is None:
			raise NotFoundError("Station Booking", booking.id)
		self._require_lock(previous.station_id)
		self._require_lock(booking.station_id)

		if previous.holds_slot:
			self._index_remove(previous)
		self._bookings[booking.id] = booking
		if booking.holds_slot:
			self._index_add(booking)
		return booking

	def delete(self, booking_id: str) -> None:
		previous = self._bookings.get(booking_id)
		if previous is None:
			raise NotFoundError("Station Booking", booking_id)
		self._require_lock(previous.station_id)
		if previous.holds_slot:
			self._index_remove(previous)
		del self._bookings[booking_id]

	def _index_add(self, booking: Booking) -> None:
		key = booking.slot_key
		current = self._index.get(key, _EMPTY_INDEX)
		position = bisect_left(current.starts, booking.starts_at)
		entry = (booking.starts_at, booking.ends_at, booking.id)
		self._index[key] = _SlotIndex(
			current.starts[:position] + (booking.starts_at,) + current.starts[position:],
			current.entries[:position] + (entry,) + current.entries[position:],
		)

	def _index_remove(self, booking: Booking) -> None:
		key = booking.slot_key
		current = self._index.get(key, _EMPTY_INDEX)
		entries = tuple(e for e in current.entries if e[2] != booking.id)
		self._index[key] = _SlotIndex(tuple(e[0] for e in entries), entries)

	def slot_entries(self, station_id: str, slot_id: str) -> Sequence[Tuple[datetime, datetime, str]]:
		"""Snapshot of the index of one slot, ordered by start."""
		return self._index.get((station_id, slot_id), _EMPTY_INDEX).entries
