"""
Tests for scheduling/service.py

Tests the service facade used by the API: availability checks, creation
retry, listings, dashboard stats, station status and schedules.
"""

import unittest
from datetime import timedelta
from unittest.mock import patch

from ev_charging.ev_charging.scheduling.errors import (
	NotFoundError,
	ScheduleValidationError,
	SlotConflictError,
	StationClosedError,
)
from ev_charging.ev_charging.scheduling.models import (
	BookingStatus,
	ScheduleException,
	StationStatus,
	TimeWindow,
	Window,
)

from ev_charging.ev_charging.tests.factories import (
	INACTIVE_OWNER,
	MONDAY,
	OTHER_OWNER,
	OWNER,
	SATURDAY,
	STATION,
	SUNDAY,
	TUESDAY,
	at,
	make_service,
)


class TestCheckAvailability(unittest.TestCase):

	def setUp(self):
		self.service = make_service(ac=2, dc=1)

	def test_available(self):
		result = self.service.check_availability(STATION, MONDAY, TimeWindow.parse("09:00", "10:00"), "AC")

		self.assertTrue(result["is_available"])
		self.assertEqual(result["available_slot_ids"], ["AC-1", "AC-2"])

	def test_closed_exception_scenario(self):
		self.service.save_exception(STATION, MONDAY, (), note="Feriado")

		result = self.service.check_availability(STATION, MONDAY, TimeWindow.parse("10:00", "11:00"), "AC")

		self.assertFalse(result["is_available"])
		self.assertEqual(result["available_slot_ids"], [])
		self.assertIn("No slots available", result["message"])

		with self.assertRaises(StationClosedError):
			self.service.create_booking(OWNER, STATION, "AC", at(MONDAY, 10), at(MONDAY, 11))

	def test_deactivated_station(self):
		self.service.directory.set_station_status(STATION, StationStatus.DEACTIVATED)

		result = self.service.check_availability(STATION, MONDAY, TimeWindow.parse("09:00", "10:00"), "AC")

		self.assertFalse(result["is_available"])
		self.assertIn("deactivated", result["message"])

	def test_unknown_owner(self):
		with self.assertRaises(NotFoundError):
			self.service.check_availability(
				STATION, MONDAY, TimeWindow.parse("09:00", "10:00"), "AC", owner_id=INACTIVE_OWNER
			)

	def test_invalid_slot_type(self):
		with self.assertRaises(ScheduleValidationError):
			self.service.check_availability(STATION, MONDAY, TimeWindow.parse("09:00", "10:00"), "XX")


class TestCreateBooking(unittest.TestCase):

	def setUp(self):
		self.service = make_service(ac=2, dc=1)

	def test_result(self):
		result = self.service.create_booking(OWNER, STATION, "DC", at(MONDAY, 9), at(MONDAY, 10))

		self.assertEqual(result["booking"].slot_id, "DC-1")
		self.assertIn("DC-1", result["message"])

	def test_retries_once_after_lost_race(self):
		claim = self.service.allocator.claim
		calls = []

		def flaky_claim(booking):
			calls.append(booking.slot_id)
			if len(calls) == 1:
				raise SlotConflictError(STATION, booking.slot_id)
			return claim(booking)

		with patch.object(self.service.allocator, "claim", side_effect=flaky_claim):
			result = self.service.create_booking(OWNER, STATION, "AC", at(MONDAY, 9), at(MONDAY, 10))

		self.assertEqual(len(calls), 2)
		self.assertEqual(result["booking"].slot_id, "AC-1")

	def test_second_conflict_reports_no_slots(self):
		def always_conflict(booking):
			raise SlotConflictError(STATION, booking.slot_id)

		with patch.object(self.service.allocator, "claim", side_effect=always_conflict) as claim:
			with self.assertRaises(StationClosedError) as ctx:
				self.service.create_booking(OWNER, STATION, "AC", at(MONDAY, 9), at(MONDAY, 10))

		self.assertEqual(claim.call_count, 2)
		self.assertIn("No slots available", str(ctx.exception))

	def test_explicit_slot_is_not_retried(self):
		def always_conflict(booking):
			raise SlotConflictError(STATION, booking.slot_id)

		with patch.object(self.service.allocator, "claim", side_effect=always_conflict) as claim:
			with self.assertRaises(StationClosedError):
				self.service.create_booking(OWNER, STATION, "AC", at(MONDAY, 9), at(MONDAY, 10), slot_id="AC-2")

		self.assertEqual(claim.call_count, 1)


class TestListingsAndStats(unittest.TestCase):

	def setUp(self):
		self.service = make_service(ac=2, dc=1)
		create = self.service.create_booking
		self.pending = create(OWNER, STATION, "AC", at(MONDAY, 9), at(MONDAY, 10))["booking"]
		self.approved = create(OTHER_OWNER, STATION, "DC", at(MONDAY, 11), at(MONDAY, 12), auto_approve=True)["booking"]
		self.tuesday = create(OWNER, STATION, "AC", at(TUESDAY, 9), at(TUESDAY, 10))["booking"]
		self.today = create(OWNER, STATION, "AC", at(SATURDAY, 15), at(SATURDAY, 16))["booking"]
		self.service.cancel(self.tuesday.id, "No puede asistir")

	def test_list_all_ordered_by_start(self):
		ids = [b.id for b in self.service.list_bookings()]

		self.assertEqual(ids, [self.today.id, self.pending.id, self.approved.id, self.tuesday.id])

	def test_filters(self):
		self.assertEqual(
			[b.id for b in self.service.list_bookings(status="CANCELLED")],
			[self.tuesday.id]
		)
		self.assertEqual(
			[b.id for b in self.service.list_bookings(owner_id=OTHER_OWNER)],
			[self.approved.id]
		)
		self.assertEqual(
			[b.id for b in self.service.list_bookings(slot_type="DC")],
			[self.approved.id]
		)
		self.assertEqual(
			[b.id for b in self.service.list_bookings(date_from=at(MONDAY, 0), date_to=at(TUESDAY, 0))],
			[self.pending.id, self.approved.id]
		)
		self.assertEqual(self.service.list_bookings(station_id="ST-OTRA"), [])

	def test_dashboard_stats(self):
		stats = self.service.dashboard_stats()

		self.assertEqual(stats["pending_reservations"], 2)
		self.assertEqual(stats["approved_future_reservations"], 1)
		self.assertEqual(stats["active_stations"], 1)
		self.assertEqual(stats["deactivated_stations"], 0)
		# Saturday 09:00-18:00 with 3 slots; one booking today
		self.assertEqual(stats["same_day_capacity"], {"total": 3, "booked": 1})

	def test_dashboard_stats_for_other_day(self):
		stats = self.service.dashboard_stats(today=MONDAY)

		self.assertEqual(stats["same_day_capacity"], {"total": 3, "booked": 2})

	def test_get_booking(self):
		self.assertEqual(self.service.get_booking(self.pending.id), self.pending)

		with self.assertRaises(NotFoundError):
			self.service.get_booking("BK-99999")

	def test_delete_booking(self):
		self.service.delete_booking(self.tuesday.id)

		self.assertEqual(len(self.service.list_bookings()), 3)


class TestStationsAndSchedules(unittest.TestCase):

	def setUp(self):
		self.service = make_service(ac=2, dc=1)

	def test_deactivation_cascade(self):
		booking = self.service.create_booking(OWNER, STATION, "AC", at(MONDAY, 9), at(MONDAY, 10))["booking"]

		result = self.service.set_station_status(STATION, "DEACTIVATED")

		self.assertFalse(result["station"].is_active)
		self.assertEqual([b.id for b in result["cancelled_bookings"]], [booking.id])
		self.assertEqual(self.service.get_booking(booking.id).status, BookingStatus.CANCELLED)
		self.assertEqual(self.service.dashboard_stats()["deactivated_stations"], 1)

	def test_reactivation_cancels_nothing(self):
		self.service.set_station_status(STATION, StationStatus.DEACTIVATED)

		result = self.service.set_station_status(STATION, StationStatus.ACTIVE)

		self.assertTrue(result["station"].is_active)
		self.assertEqual(result["cancelled_bookings"], [])

	def test_apply_preset_clears_other_days(self):
		result = self.service.apply_schedule_preset(STATION, "weekend")

		self.assertEqual(result["weekly_slot_hours"], 72.0)
		days = self.service.get_effective_availability(STATION, SATURDAY, SATURDAY + timedelta(days=7))
		self.assertEqual(sorted(days), ["2026-01-17", "2026-01-18", "2026-01-24"])

	def test_weekly_capacity(self):
		# every day 09:00-18:00 with 3 slots
		self.assertEqual(self.service.weekly_capacity(STATION)["weekly_slot_hours"], 189.0)

	def test_save_exception_replaces_previous(self):
		self.service.save_exception(STATION, SUNDAY, ())
		exception = self.service.save_exception(STATION, SUNDAY, (Window(10 * 60, 12 * 60, ("DC-1",)),), "Solo DC")

		self.assertFalse(exception.is_closed)
		windows = self.service.get_effective_availability(STATION, SUNDAY, SUNDAY)["2026-01-18"]
		self.assertEqual(windows[0].slot_ids, ("DC-1",))

	def test_save_exception_unknown_station(self):
		with self.assertRaises(NotFoundError):
			self.service.save_exception("ST-NOPE", SUNDAY, ())


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
