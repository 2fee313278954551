"""
Tests for the DocType controllers

Controller methods are called on plain frappe._dict documents with the
ORM patched, so the rules can be checked without a site.
"""

import unittest
from datetime import datetime
from unittest.mock import patch

import frappe

from ev_charging.ev_charging.doctype.charging_station.charging_station import ChargingStation
from ev_charging.ev_charging.doctype.ev_charging_settings.ev_charging_settings import EVChargingSettings
from ev_charging.ev_charging.doctype.schedule_exception.schedule_exception import ScheduleException
from ev_charging.ev_charging.doctype.station_booking.station_booking import StationBooking
from ev_charging.ev_charging.doctype.station_schedule.station_schedule import StationSchedule
from ev_charging.ev_charging.scheduling.models import Station


DOCTYPE_MODULES = [
	"ev_charging.ev_charging.doctype.charging_station.charging_station",
	"ev_charging.ev_charging.doctype.ev_charging_settings.ev_charging_settings",
	"ev_charging.ev_charging.doctype.schedule_exception.schedule_exception",
	"ev_charging.ev_charging.doctype.station_booking.station_booking",
	"ev_charging.ev_charging.doctype.station_schedule.station_schedule",
]


def fake_throw(msg, exc=frappe.ValidationError, *args, **kwargs):
	raise exc(msg)


class DocTypeTestCase(unittest.TestCase):

	def setUp(self):
		patches = [patch.object(frappe, "throw", side_effect=fake_throw)]
		patches += [patch(f"{module}._", side_effect=lambda msg: msg) for module in DOCTYPE_MODULES]
		for p in patches:
			p.start()
			self.addCleanup(p.stop)


class TestChargingStation(DocTypeTestCase):

	def test_slot_counts(self):
		ChargingStation._validate_slot_counts(frappe._dict(ac_slot_count=2, dc_slot_count=0))

		with self.assertRaises(frappe.ValidationError):
			ChargingStation._validate_slot_counts(frappe._dict(ac_slot_count=0, dc_slot_count=0))

		with self.assertRaises(frappe.ValidationError):
			ChargingStation._validate_slot_counts(frappe._dict(ac_slot_count=-1, dc_slot_count=2))

	def test_timezone(self):
		ChargingStation._validate_timezone(frappe._dict(timezone="America/Bogota"))

		with self.assertRaises(frappe.ValidationError):
			ChargingStation._validate_timezone(frappe._dict(timezone="Mars/Olympus"))

	@patch("ev_charging.ev_charging.doctype.charging_station.charging_station.now_datetime")
	@patch.object(frappe, "get_all")
	def test_cannot_remove_held_slot(self, get_all, now_datetime):
		now_datetime.return_value = datetime(2026, 1, 17, 8, 0)
		get_all.return_value = [frappe._dict(name="BK-00003", slot_id="AC-2")]
		doc = frappe._dict(name="ST-NORTE", ac_slot_count=2, dc_slot_count=1, is_new=lambda: False)

		ChargingStation._validate_slot_reduction(doc)

		doc.ac_slot_count = 1
		with self.assertRaises(frappe.ValidationError):
			ChargingStation._validate_slot_reduction(doc)

	@patch.object(frappe, "get_all")
	def test_cannot_remove_slot_used_by_schedule(self, get_all):
		windows = {
			"Station Schedule": [frappe._dict(parent="ST-NORTE-Monday", slot_ids="AC-1, AC-3", slot_count=2)],
			"Schedule Exception": [frappe._dict(parent="a1b2c3", slot_ids=None, slot_count=4)],
		}

		def fake_get_all(doctype, filters=None, **kwargs):
			if doctype == "Schedule Window":
				return windows[filters["parenttype"]]
			return ["ST-NORTE-Monday"] if doctype == "Station Schedule" else ["a1b2c3"]

		get_all.side_effect = fake_get_all
		doc = frappe._dict(name="ST-NORTE", ac_slot_count=3, dc_slot_count=1, is_new=lambda: False)

		ChargingStation._validate_schedule_slots(doc)

		doc.ac_slot_count = 2
		with self.assertRaises(frappe.ValidationError) as ctx:
			ChargingStation._validate_schedule_slots(doc)
		self.assertIn("AC-3", str(ctx.exception))

		windows["Station Schedule"] = [frappe._dict(parent="ST-NORTE-Monday", slot_ids="AC-1, DC-1", slot_count=2)]
		with self.assertRaises(frappe.ValidationError) as ctx:
			ChargingStation._validate_schedule_slots(doc)
		self.assertIn("opens 4 slots", str(ctx.exception))

		doc.ac_slot_count = 3
		ChargingStation._validate_schedule_slots(doc)

	@patch.object(frappe, "enqueue")
	def test_deactivation_enqueues_cancellation(self, enqueue):
		doc = frappe._dict(name="ST-NORTE", status="DEACTIVATED", has_value_changed=lambda field: True)

		ChargingStation.on_update(doc)

		enqueue.assert_called_once()
		self.assertEqual(
			enqueue.call_args.args[0],
			"ev_charging.ev_charging.scheduling.frappe_backend.cancel_upcoming_bookings"
		)
		self.assertEqual(enqueue.call_args.kwargs["station_id"], "ST-NORTE")

	@patch.object(frappe, "enqueue")
	def test_activation_enqueues_nothing(self, enqueue):
		doc = frappe._dict(name="ST-NORTE", status="ACTIVE", has_value_changed=lambda field: True)

		ChargingStation.on_update(doc)

		enqueue.assert_not_called()


class TestStationBooking(DocTypeTestCase):

	def test_only_engine_writes(self):
		with self.assertRaises(frappe.PermissionError):
			StationBooking._validate_engine_write(frappe._dict(flags=frappe._dict()))

		StationBooking._validate_engine_write(frappe._dict(flags=frappe._dict(from_booking_engine=True)))

	def test_datetime_consistency(self):
		with self.assertRaises(frappe.ValidationError):
			StationBooking._validate_datetime_consistency(frappe._dict(
				starts_at="2026-01-19 10:00:00", ends_at="2026-01-19 10:00:00"
			))

		with self.assertRaises(frappe.ValidationError):
			StationBooking._validate_datetime_consistency(frappe._dict(starts_at=None, ends_at=None))

	def test_delete_only_terminal(self):
		with self.assertRaises(frappe.ValidationError):
			StationBooking.on_trash(frappe._dict(status="APPROVED"))

		StationBooking.on_trash(frappe._dict(status="CANCELLED"))
		StationBooking.on_trash(frappe._dict(status="COMPLETED"))


class TestSchedules(DocTypeTestCase):

	@patch("ev_charging.ev_charging.doctype.station_schedule.station_schedule.FrappeScheduleDirectory")
	def test_overlapping_windows(self, directory):
		directory.return_value.get_station.return_value = Station("ST-NORTE", 2, 1)
		doc = frappe._dict(station="ST-NORTE", windows=[
			frappe._dict(start_time="09:00:00", end_time="12:00:00", slot_count=2),
			frappe._dict(start_time="11:00:00", end_time="13:00:00", slot_ids="DC-1"),
		])

		with self.assertRaises(frappe.ValidationError):
			StationSchedule._validate_windows(doc)

		doc.windows[1].start_time = "12:00:00"
		StationSchedule._validate_windows(doc)

	@patch.object(frappe, "db")
	def test_unique_weekday(self, db):
		db.exists.return_value = "ST-NORTE-Monday"
		doc = frappe._dict(station="ST-NORTE", weekday="Monday", is_new=lambda: True)

		with self.assertRaises(frappe.DuplicateEntryError):
			StationSchedule._validate_unique_weekday(doc)

	@patch.object(frappe, "logger")
	@patch.object(frappe, "delete_doc")
	@patch.object(frappe, "get_all", return_value=["a1b2c3"])
	def test_latest_exception_replaces_previous(self, get_all, delete_doc, logger):
		ScheduleException._replace_existing(frappe._dict(station="ST-NORTE", date="2026-01-19"))

		delete_doc.assert_called_once_with("Schedule Exception", "a1b2c3", ignore_permissions=True)
		logger.return_value.info.assert_called_once()


class TestSettings(DocTypeTestCase):

	def test_limits_must_be_positive(self):
		with self.assertRaises(frappe.ValidationError):
			EVChargingSettings.validate(frappe._dict(creation_horizon_days=0, modification_cutoff_hours=12))

		with self.assertRaises(frappe.ValidationError):
			EVChargingSettings.validate(frappe._dict(creation_horizon_days=7, modification_cutoff_hours=0))

		with self.assertRaises(frappe.ValidationError):
			EVChargingSettings.validate(frappe._dict(
				creation_horizon_days=7, modification_cutoff_hours=12, default_timezone="Mars/Olympus"
			))

		EVChargingSettings.validate(frappe._dict(
			creation_horizon_days=7, modification_cutoff_hours=0.5, default_timezone="America/Bogota"
		))


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
