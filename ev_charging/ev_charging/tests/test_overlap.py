"""
Tests for scheduling/overlap.py

Tests half-open interval overlap and per-slot conflict detection.
"""

import unittest
from datetime import timedelta

from ev_charging.ev_charging.scheduling.models import Booking, BookingStatus
from ev_charging.ev_charging.scheduling.overlap import check_overlap, intervals_overlap
from ev_charging.ev_charging.scheduling.store import InMemoryBookingStore

from ev_charging.ev_charging.tests.factories import MONDAY, OWNER, STATION, at


class TestIntervalsOverlap(unittest.TestCase):
	"""Tests for intervals_overlap."""

	def test_partial_overlap(self):
		self.assertTrue(intervals_overlap(
			at(MONDAY, 9), at(MONDAY, 10), at(MONDAY, 9, 30), at(MONDAY, 10, 30)
		))

	def test_containment(self):
		self.assertTrue(intervals_overlap(
			at(MONDAY, 9), at(MONDAY, 12), at(MONDAY, 10), at(MONDAY, 11)
		))

	def test_adjacent_intervals_do_not_overlap(self):
		self.assertFalse(intervals_overlap(
			at(MONDAY, 9), at(MONDAY, 10), at(MONDAY, 10), at(MONDAY, 11)
		))

	def test_symmetry(self):
		pairs = [
			(at(MONDAY, 9), at(MONDAY, 10), at(MONDAY, 9, 30), at(MONDAY, 11)),
			(at(MONDAY, 9), at(MONDAY, 10), at(MONDAY, 10), at(MONDAY, 11)),
			(at(MONDAY, 8), at(MONDAY, 12), at(MONDAY, 9), at(MONDAY, 10)),
			(at(MONDAY, 8), at(MONDAY, 9), at(MONDAY, 11), at(MONDAY, 12)),
		]
		for a_start, a_end, b_start, b_end in pairs:
			self.assertEqual(
				intervals_overlap(a_start, a_end, b_start, b_end),
				intervals_overlap(b_start, b_end, a_start, a_end)
			)

	def test_zero_width_never_overlaps(self):
		point = at(MONDAY, 9, 30)
		self.assertFalse(intervals_overlap(point, point, at(MONDAY, 9), at(MONDAY, 10)))
		self.assertFalse(intervals_overlap(at(MONDAY, 9), at(MONDAY, 10), point, point))


class TestCheckOverlap(unittest.TestCase):
	"""Tests for check_overlap against the in-memory store."""

	def setUp(self):
		self.store = InMemoryBookingStore()

	def _insert(self, slot_id, start, end, status=BookingStatus.APPROVED):
		booking = Booking(
			id=self.store.new_id(),
			owner_id=OWNER,
			station_id=STATION,
			slot_type=slot_id.split("-")[0],
			slot_id=slot_id,
			starts_at=start,
			ends_at=end,
			status=status
		)
		with self.store.transaction(STATION):
			self.store.insert(booking)
		return booking

	def test_no_overlap(self):
		result = check_overlap(self.store, STATION, "AC-1", at(MONDAY, 9), at(MONDAY, 10))

		self.assertFalse(result["has_overlap"])
		self.assertEqual(result["overlapping_bookings"], [])

	def test_overlap_on_same_slot(self):
		booking = self._insert("AC-1", at(MONDAY, 9), at(MONDAY, 10))

		result = check_overlap(self.store, STATION, "AC-1", at(MONDAY, 9, 30), at(MONDAY, 10, 30))

		self.assertTrue(result["has_overlap"])
		self.assertEqual(result["overlapping_bookings"], [booking.id])

	def test_other_slot_is_free(self):
		self._insert("AC-1", at(MONDAY, 9), at(MONDAY, 10))

		result = check_overlap(self.store, STATION, "AC-2", at(MONDAY, 9), at(MONDAY, 10))

		self.assertFalse(result["has_overlap"])

	def test_cancelled_and_completed_bookings_do_not_block(self):
		self._insert("AC-1", at(MONDAY, 9), at(MONDAY, 10), status=BookingStatus.CANCELLED)
		self._insert("AC-1", at(MONDAY, 9), at(MONDAY, 10), status=BookingStatus.COMPLETED)

		result = check_overlap(self.store, STATION, "AC-1", at(MONDAY, 9), at(MONDAY, 10))

		self.assertFalse(result["has_overlap"])

	def test_pending_booking_blocks(self):
		self._insert("DC-1", at(MONDAY, 9), at(MONDAY, 10), status=BookingStatus.PENDING)

		result = check_overlap(self.store, STATION, "DC-1", at(MONDAY, 9, 59), at(MONDAY, 11))

		self.assertTrue(result["has_overlap"])

	def test_exclude_booking(self):
		booking = self._insert("AC-1", at(MONDAY, 9), at(MONDAY, 10))

		result = check_overlap(
			self.store, STATION, "AC-1", at(MONDAY, 9), at(MONDAY, 10),
			exclude_booking=booking.id
		)

		self.assertFalse(result["has_overlap"])

	def test_adjacent_booking_is_free(self):
		self._insert("AC-1", at(MONDAY, 9), at(MONDAY, 10))

		result = check_overlap(
			self.store, STATION, "AC-1", at(MONDAY, 10), at(MONDAY, 10) + timedelta(hours=1)
		)

		self.assertFalse(result["has_overlap"])


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
