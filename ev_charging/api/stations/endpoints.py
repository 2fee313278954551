"""
Station API Endpoints

Whitelisted functions for station status and schedules:
- effective availability over a date range
- activation / deactivation (deactivation cancels upcoming bookings)
- weekly schedule presets and weekly slot-hours
- date exceptions (closures or replacement windows)
"""

from typing import Any, Dict, List, Optional

import frappe
from frappe import _
from frappe.utils import cint, getdate

from ev_charging.ev_charging.scheduling.availability import PRESETS, build_window
from ev_charging.ev_charging.scheduling.frappe_backend import WEEKDAYS, get_booking_service
from ev_charging.ev_charging.scheduling.models import Station, StationStatus, WeeklyTemplateEntry

from ev_charging.api.shared import (
    api_errors,
    parse_json_list,
    sanitize_string,
    validate_choice,
    validate_date_string,
    validate_docname,
    validate_time_string,
)


STATION_STATUSES = [status.value for status in StationStatus]


@frappe.whitelist(methods=['GET'])
def get_stations(status: Optional[str] = None) -> List[Dict[str, Any]]:
	"""Charging Stations, optionally filtered by status (ACTIVE / DEACTIVATED)."""
	if status:
		status = validate_choice(status, STATION_STATUSES, "status")

	with api_errors("get_stations"):
		stations = get_booking_service().directory.list_stations()
		return [_station_dict(s) for s in stations if not status or s.status.value == status]


@frappe.whitelist(methods=['GET'])
def get_effective_availability(station: str, from_date: str, to_date: str) -> Dict[str, List[Dict[str, Any]]]:
	"""
	Disponibilidad efectiva por día (plantilla semanal + excepciones).

	Returns:
		dict: {
			"2026-01-19": [
				{"start": "09:00", "end": "18:00", "slot_ids": ["AC-1", "AC-2"], "capacity": 2}
			],
			...
		}
		Los días sin ventanas con slots no aparecen.
	"""
	station = validate_docname(station, "station")
	start_date = getdate(validate_date_string(from_date, "from_date"))
	end_date = getdate(validate_date_string(to_date, "to_date"))

	with api_errors("get_effective_availability"):
		days = get_booking_service().get_effective_availability(station, start_date, end_date)
		return {
			day: [window.as_dict() for window in windows]
			for day, windows in days.items()
		}


@frappe.whitelist(methods=['POST'])
def set_station_status(station: str, status: str) -> Dict[str, Any]:
	"""
	Activa o desactiva una estación.

	Al desactivar se cancelan sus bookings PENDING/APPROVED que aún no
	comenzaron, con motivo "Station deactivated".
	"""
	station = validate_docname(station, "station")
	status = validate_choice(status, STATION_STATUSES, "status")

	with api_errors("set_station_status"):
		result = get_booking_service().set_station_status(station, status)
		cancelled = [booking.id for booking in result["cancelled_bookings"]]

		return {
			"station": _station_dict(result["station"]),
			"cancelled_bookings": cancelled,
			"message": _(f"Station {station} is now {status}; {len(cancelled)} bookings cancelled")
		}


@frappe.whitelist(methods=['GET'])
def get_schedule_presets() -> List[Dict[str, Any]]:
	return [
		{
			"preset": key,
			"label": config["label"],
			"description": config["description"],
			"weekdays": [WEEKDAYS[weekday] for weekday in config["weekdays"]],
			"start": config["start"],
			"end": config["end"],
		}
		for key, config in PRESETS.items()
	]


@frappe.whitelist(methods=['POST'])
def apply_schedule_preset(station: str, preset: str) -> Dict[str, Any]:
	"""
	Reemplaza la plantilla semanal de la estación con un preset
	("business", "24x7" o "weekend"). Cada ventana abre todos los slots.
	"""
	station = validate_docname(station, "station")
	preset = validate_choice(preset, [key.upper() for key in PRESETS], "preset").lower()

	with api_errors("apply_schedule_preset"):
		result = get_booking_service().apply_schedule_preset(station, preset)
		return {
			"templates": [_template_dict(entry) for entry in result["templates"]],
			"weekly_slot_hours": result["weekly_slot_hours"],
		}


@frappe.whitelist(methods=['GET'])
def get_weekly_capacity(station: str) -> Dict[str, Any]:
	"""
	Plantilla semanal y slot-hours por semana (horas x slots de cada ventana).
	"""
	station = validate_docname(station, "station")

	with api_errors("get_weekly_capacity"):
		result = get_booking_service().weekly_capacity(station)
		return {
			"templates": [_template_dict(entry) for entry in result["templates"]],
			"weekly_slot_hours": result["weekly_slot_hours"],
		}


@frappe.whitelist(methods=['POST'])
def save_schedule_exception(
	station: str,
	date: str,
	windows: Any = None,
	note: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Guarda la excepción de una fecha, reemplazando la anterior.

	Args:
		station: Charging Station
		date: fecha (YYYY-MM-DD)
		windows: lista JSON de {"start": "HH:MM", "end": "HH:MM",
			"slot_ids": [...]} o {"start", "end", "capacity"}; vacía = cerrado
		note: nota opcional
	"""
	station = validate_docname(station, "station")
	day = getdate(validate_date_string(date, "date"))
	rows = parse_json_list(windows, "windows")

	for idx, row in enumerate(rows, 1):
		if not isinstance(row, dict):
			frappe.throw(_(f"Window {idx} must be an object"), frappe.ValidationError)
		validate_time_string(row.get("start"), f"windows[{idx}].start")
		validate_time_string(row.get("end"), f"windows[{idx}].end")

	with api_errors("save_schedule_exception"):
		service = get_booking_service()
		station_record = service.directory.get_station(station)
		built = [
			build_window(
				station_record,
				row["start"],
				row["end"],
				slot_ids=row.get("slot_ids"),
				capacity=cint(row["capacity"]) if row.get("capacity") is not None else None
			)
			for row in rows
		]
		exception = service.save_exception(station, day, built, sanitize_string(note))

		return {
			"station": station,
			"date": day.isoformat(),
			"is_closed": exception.is_closed,
			"windows": [window.as_dict() for window in exception.windows],
			"note": exception.note,
		}


def _station_dict(station: Station) -> Dict[str, Any]:
	return {
		"name": station.id,
		"station_name": station.name,
		"status": station.status.value,
		"timezone": station.timezone,
		"ac_slot_count": station.ac_slot_count,
		"dc_slot_count": station.dc_slot_count,
		"slot_ids": station.slot_ids,
	}


def _template_dict(entry: WeeklyTemplateEntry) -> Dict[str, Any]:
	return {
		"weekday": WEEKDAYS[entry.weekday],
		"windows": [window.as_dict() for window in entry.windows],
	}
