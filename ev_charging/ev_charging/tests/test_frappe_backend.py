"""
Tests for scheduling/frappe_backend.py

Covers the row <-> engine conversions and the store/settings glue with
the Frappe ORM mocked out. No site is required.
"""

import logging
import unittest
from datetime import date, datetime, time, timedelta
from unittest.mock import MagicMock, patch

import frappe
import pytz

from ev_charging.ev_charging.scheduling import frappe_backend
from ev_charging.ev_charging.scheduling.errors import NotFoundError, ScheduleValidationError
from ev_charging.ev_charging.scheduling.frappe_backend import (
	FrappeBookingStore,
	FrappeScheduleDirectory,
	booking_from_row,
	get_policy,
	row_from_booking,
	row_from_window,
	split_slot_ids,
	station_from_row,
	to_minutes,
	to_station_wall_time,
	window_from_row,
	windows_from_rows,
)
from ev_charging.ev_charging.scheduling.models import Booking, Station, Window
from ev_charging.ev_charging.scheduling.rules import CREATION_HORIZON, MODIFICATION_CUTOFF, BookingPolicy


def make_station(timezone="America/Bogota"):
	return Station("ST-NORTE", 2, 1, timezone=timezone)


def booking_row(**overrides):
	row = frappe._dict(
		name="BK-00001",
		ev_owner="EVO-00001",
		station="ST-NORTE",
		slot_type="AC",
		slot_id="AC-1",
		starts_at=datetime(2026, 1, 19, 9, 0),
		ends_at=datetime(2026, 1, 19, 10, 0),
		status="PENDING",
		cancel_reason=None,
		notes="Carga rápida",
		booked_by="Administrator",
		creation=datetime(2026, 1, 17, 8, 0),
		modified=datetime(2026, 1, 17, 8, 0),
	)
	row.update(overrides)
	return row


class TestConversions(unittest.TestCase):

	def test_to_minutes(self):
		self.assertEqual(to_minutes(timedelta(hours=9, minutes=30)), 570)
		self.assertEqual(to_minutes(time(13, 15)), 795)
		self.assertEqual(to_minutes("08:00:00"), 480)
		self.assertEqual(to_minutes("24:00"), 1440)

		with self.assertRaises(ScheduleValidationError):
			to_minutes(None)

	def test_split_slot_ids(self):
		self.assertEqual(split_slot_ids("AC-1, AC-2\nDC-1"), ["AC-1", "AC-2", "DC-1"])
		self.assertEqual(split_slot_ids(" , "), [])
		self.assertEqual(split_slot_ids(None), [])

	def test_window_from_row_with_slot_ids(self):
		row = frappe._dict(start_time=timedelta(hours=9), end_time=timedelta(hours=12), slot_ids="DC-1, AC-2")

		window = window_from_row(make_station(), row)

		self.assertEqual((window.start, window.end), (540, 720))
		self.assertEqual(window.slot_ids, ("AC-2", "DC-1"))

	def test_window_from_row_with_count(self):
		row = frappe._dict(start_time="09:00:00", end_time="12:00:00", slot_ids="", slot_count=3)

		self.assertEqual(window_from_row(make_station(), row).slot_ids, ("AC-1", "AC-2", "DC-1"))

	def test_window_from_row_without_slots(self):
		row = frappe._dict(start_time="09:00:00", end_time="12:00:00", slot_ids=None, slot_count=0)

		self.assertEqual(window_from_row(make_station(), row).capacity, 0)

	def test_window_from_row_unknown_slot(self):
		row = frappe._dict(start_time="09:00:00", end_time="12:00:00", slot_ids="AC-3")

		with self.assertRaises(ScheduleValidationError):
			window_from_row(make_station(), row)

	def test_windows_from_rows_sorted_and_checked(self):
		station = make_station()
		rows = [
			frappe._dict(start_time="13:00:00", end_time="18:00:00", slot_count=1),
			frappe._dict(start_time="09:00:00", end_time="12:00:00", slot_count=2),
		]

		windows = windows_from_rows(station, rows)
		self.assertEqual([w.label() for w in windows], ["09:00-12:00", "13:00-18:00"])

		rows.append(frappe._dict(start_time="11:00:00", end_time="14:00:00", slot_count=1))
		with self.assertRaises(ScheduleValidationError):
			windows_from_rows(station, rows)

	def test_row_from_window(self):
		row = row_from_window(Window(540, 1440, ("AC-1", "DC-1")))

		self.assertEqual(row, {
			"start_time": "09:00:00",
			"end_time": "24:00:00",
			"slot_ids": "AC-1, DC-1",
			"slot_count": 2,
		})

	def test_station_from_row(self):
		row = frappe._dict(
			name="ST-NORTE",
			station_name="Norte",
			ac_slot_count=2,
			dc_slot_count="1",
			status="DEACTIVATED",
			timezone="America/Bogota",
		)

		station = station_from_row(row)

		self.assertEqual(station.slot_ids, ["AC-1", "AC-2", "DC-1"])
		self.assertFalse(station.is_active)
		self.assertEqual(station.name, "Norte")

	@patch.object(frappe_backend, "get_system_timezone", return_value="UTC")
	def test_booking_from_row(self, _tz):
		booking = booking_from_row(make_station(), booking_row())

		bogota = pytz.timezone("America/Bogota")
		self.assertEqual(booking.starts_at, bogota.localize(datetime(2026, 1, 19, 9, 0)))
		self.assertEqual(booking.created_at, pytz.UTC.localize(datetime(2026, 1, 17, 8, 0)))
		self.assertEqual(booking.created_by, "Administrator")

	def test_row_from_booking_uses_station_wall_time(self):
		station = make_station()
		booking = Booking(
			"BK-00001", "EVO-00001", "ST-NORTE", "AC", "AC-1",
			pytz.UTC.localize(datetime(2026, 1, 19, 14, 0)),
			pytz.UTC.localize(datetime(2026, 1, 19, 15, 0)),
		)

		row = row_from_booking(station, booking)

		# Bogota is UTC-5
		self.assertEqual(row["starts_at"], datetime(2026, 1, 19, 9, 0))
		self.assertEqual(row["ends_at"], datetime(2026, 1, 19, 10, 0))
		self.assertEqual(row["status"], "PENDING")
		self.assertEqual(to_station_wall_time(station, datetime(2026, 1, 19, 9, 0)), datetime(2026, 1, 19, 9, 0))


class TestSettings(unittest.TestCase):

	@patch.object(frappe, "get_cached_doc")
	def test_policy_from_settings(self, get_cached_doc):
		get_cached_doc.return_value = frappe._dict(creation_horizon_days=14, modification_cutoff_hours=2.5)

		policy = get_policy()

		self.assertEqual(policy.creation_horizon, timedelta(days=14))
		self.assertEqual(policy.modification_cutoff, timedelta(hours=2.5))

	@patch.object(frappe, "get_cached_doc")
	def test_policy_defaults(self, get_cached_doc):
		get_cached_doc.return_value = frappe._dict(creation_horizon_days=0, modification_cutoff_hours=None)

		policy = get_policy()

		self.assertEqual(policy.creation_horizon, CREATION_HORIZON)
		self.assertEqual(policy.modification_cutoff, MODIFICATION_CUTOFF)


class TestServiceFactory(unittest.TestCase):

	@patch.object(frappe_backend, "get_policy", return_value=BookingPolicy())
	@patch.object(frappe, "logger")
	def test_engine_logs_to_app_logger(self, app_logger, _policy):
		app_logger.return_value = logging.getLogger("ev_charging-test-site")

		service = frappe_backend.get_booking_service()

		app_logger.assert_called_once_with("ev_charging")
		self.assertIs(service.logger, app_logger.return_value)
		self.assertIs(service.lifecycle.logger, app_logger.return_value)
		self.assertIs(service.allocator.logger, app_logger.return_value)


class TestFrappeBookingStore(unittest.TestCase):

	def setUp(self):
		self.directory = MagicMock(spec=FrappeScheduleDirectory)
		self.directory.get_station.return_value = make_station()
		self.store = FrappeBookingStore(self.directory)

	@patch.object(frappe, "get_all", return_value=[])
	def test_overlapping_filters(self, get_all):
		start = pytz.UTC.localize(datetime(2026, 1, 19, 14, 0))

		self.store.overlapping("ST-NORTE", "AC-1", start, start + timedelta(hours=1), exclude_booking="BK-00002")

		filters = get_all.call_args.kwargs["filters"]
		self.assertEqual(filters["status"], ["in", ["PENDING", "APPROVED"]])
		self.assertEqual(filters["starts_at"], ["<", datetime(2026, 1, 19, 10, 0)])
		self.assertEqual(filters["ends_at"], [">", datetime(2026, 1, 19, 9, 0)])
		self.assertEqual(filters["name"], ["!=", "BK-00002"])

	def test_empty_range_never_overlaps(self):
		start = pytz.UTC.localize(datetime(2026, 1, 19, 14, 0))

		self.assertEqual(self.store.overlapping("ST-NORTE", "AC-1", start, start), [])

	@patch.object(frappe_backend, "get_system_timezone", return_value="UTC")
	@patch.object(frappe, "get_all")
	def test_query_filters_in_python(self, get_all, _tz):
		get_all.return_value = [
			booking_row(name="BK-00002", starts_at=datetime(2026, 1, 20, 9, 0), ends_at=datetime(2026, 1, 20, 10, 0)),
			booking_row(),
		]

		bookings = self.store.query(frappe_backend.BookingQuery(
			status="PENDING",
			starts_before=pytz.UTC.localize(datetime(2026, 1, 20, 0, 0))
		))

		self.assertEqual([b.id for b in bookings], ["BK-00001"])
		self.assertEqual(get_all.call_args.kwargs["filters"], {"status": "PENDING"})
		self.directory.get_station.assert_called_once_with("ST-NORTE")

	@patch.object(frappe, "db")
	def test_transaction_commits_once(self, db):
		with self.store.transaction("ST-SUR", "ST-NORTE"):
			with self.store.transaction("ST-NORTE"):
				pass
			db.commit.assert_not_called()

		db.commit.assert_called_once_with()
		locked = [c.args[1] for c in db.sql.call_args_list]
		self.assertEqual(locked, ["ST-NORTE", "ST-SUR", "ST-NORTE"])

	@patch.object(frappe, "db")
	def test_transaction_rolls_back(self, db):
		with self.assertRaises(ScheduleValidationError):
			with self.store.transaction("ST-NORTE"):
				raise ScheduleValidationError("boom")

		db.rollback.assert_called_once_with()
		db.commit.assert_not_called()

	@patch.object(frappe, "db")
	def test_delete_missing(self, db):
		db.exists.return_value = None

		with self.assertRaises(NotFoundError):
			self.store.delete("BK-99999")


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
