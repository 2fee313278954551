"""
Booking API Endpoints

Whitelisted functions for the operator console and integrations.
Dates are YYYY-MM-DD, datetimes YYYY-MM-DD HH:MM:SS in the station's
local time, window bounds HH:MM.

Engine errors are mapped to Frappe exceptions by api_errors; a request
that finds no free slot is reported as a result, not as an error.
"""

from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional

import frappe
from frappe import _
from frappe.utils import cint, get_datetime, getdate

from ev_charging.ev_charging.scheduling.errors import StationClosedError
from ev_charging.ev_charging.scheduling.frappe_backend import get_booking_service, get_default_timezone
from ev_charging.ev_charging.scheduling.models import BookingStatus, SlotType, TimeWindow, get_timezone

from ev_charging.api.shared import (
    api_errors,
    sanitize_string,
    validate_choice,
    validate_date_string,
    validate_datetime_string,
    validate_docname,
    validate_time_string,
)


SLOT_TYPES = [slot_type.value for slot_type in SlotType]
BOOKING_STATUSES = [status.value for status in BookingStatus]


@frappe.whitelist(methods=['GET'])
def check_availability(
	station: str,
	date: str,
	start_time: str,
	end_time: str,
	slot_type: str,
	ev_owner: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Verifica si hay slots libres de un tipo para un rango del día.

	Args:
		station: nombre del Charging Station
		date: fecha (YYYY-MM-DD)
		start_time: inicio (HH:MM)
		end_time: fin (HH:MM)
		slot_type: "AC" o "DC"
		ev_owner: EV Owner que consulta (opcional, debe existir y estar activo)

	Returns:
		dict: {
			"is_available": bool,
			"available_slot_ids": ["AC-1", "AC-2"],
			"message": str
		}

	Example:
		```javascript
		frappe.call({
			method: "ev_charging.api.bookings.check_availability",
			args: {
				station: "ST-NORTE",
				date: "2026-01-19",
				start_time: "09:00",
				end_time: "10:00",
				slot_type: "AC"
			}
		});
		```
	"""
	station = validate_docname(station, "station")
	target_date = getdate(validate_date_string(date, "date"))
	start_time = validate_time_string(start_time, "start_time")
	end_time = validate_time_string(end_time, "end_time")
	slot_type = validate_choice(slot_type, SLOT_TYPES, "slot_type")
	if ev_owner:
		ev_owner = validate_docname(ev_owner, "ev_owner")

	with api_errors("check_availability"):
		window = TimeWindow.parse(start_time, end_time)
		return get_booking_service().check_availability(
			station, target_date, window, slot_type, owner_id=ev_owner
		)


@frappe.whitelist(methods=['POST'])
def create_booking(
	ev_owner: str,
	station: str,
	slot_type: str,
	starts_at: str,
	ends_at: str,
	notes: Optional[str] = None,
	slot_id: Optional[str] = None,
	auto_approve: Any = 0
) -> Dict[str, Any]:
	"""
	Crea un Station Booking reclamando un slot.

	Si no se indica slot_id se asigna el slot libre de menor índice.
	El booking queda PENDING salvo auto_approve.

	Returns:
		dict: {
			"success": bool,
			"booking": dict | None,
			"message": str
		}
	"""
	ev_owner = validate_docname(ev_owner, "ev_owner")
	station = validate_docname(station, "station")
	slot_type = validate_choice(slot_type, SLOT_TYPES, "slot_type")
	start = get_datetime(validate_datetime_string(starts_at, "starts_at"))
	end = get_datetime(validate_datetime_string(ends_at, "ends_at"))
	if slot_id:
		slot_id = str(slot_id).strip().upper()

	with api_errors("create_booking"):
		try:
			result = get_booking_service().create_booking(
				ev_owner,
				station,
				slot_type,
				start,
				end,
				notes=sanitize_string(notes),
				slot_id=slot_id or None,
				auto_approve=bool(cint(auto_approve)),
				created_by=frappe.session.user
			)
		except StationClosedError as e:
			return {"success": False, "booking": None, "message": str(e)}

		return {
			"success": True,
			"booking": result["booking"].as_dict(),
			"message": result["message"]
		}


@frappe.whitelist(methods=['POST'])
def modify_booking(
	booking: str,
	station: Optional[str] = None,
	slot_type: Optional[str] = None,
	slot_id: Optional[str] = None,
	starts_at: Optional[str] = None,
	ends_at: Optional[str] = None,
	notes: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Modifica estación, slot, horario o notas de un booking PENDING/APPROVED.

	Solo se permite hasta 12 horas antes del inicio. Si el nuevo slot no
	está libre, el booking original no cambia.
	"""
	booking = validate_docname(booking, "booking")
	changes = {}
	if station:
		changes["station_id"] = validate_docname(station, "station")
	if slot_type:
		changes["slot_type"] = validate_choice(slot_type, SLOT_TYPES, "slot_type")
	if slot_id:
		changes["slot_id"] = str(slot_id).strip().upper()
	if starts_at:
		changes["starts_at"] = get_datetime(validate_datetime_string(starts_at, "starts_at"))
	if ends_at:
		changes["ends_at"] = get_datetime(validate_datetime_string(ends_at, "ends_at"))
	if notes is not None:
		changes["notes"] = sanitize_string(notes) or ""

	with api_errors("modify_booking"):
		updated = get_booking_service().modify_booking(booking, **changes)
		return updated.as_dict()


@frappe.whitelist(methods=['POST'])
def approve_booking(booking: str) -> Dict[str, Any]:
	"""PENDING -> APPROVED."""
	booking = validate_docname(booking, "booking")

	with api_errors("approve_booking"):
		updated = get_booking_service().approve(booking)
		return _status_result(updated, _("Booking approved"))


@frappe.whitelist(methods=['POST'])
def complete_booking(booking: str) -> Dict[str, Any]:
	"""APPROVED -> COMPLETED."""
	booking = validate_docname(booking, "booking")

	with api_errors("complete_booking"):
		updated = get_booking_service().complete(booking)
		return _status_result(updated, _("Booking completed"))


@frappe.whitelist(methods=['POST'])
def cancel_booking(booking: str, reason: str) -> Dict[str, Any]:
	"""
	Cancela un booking PENDING/APPROVED y libera su slot.

	Requiere motivo y al menos 12 horas de anticipación.
	"""
	booking = validate_docname(booking, "booking")
	reason = sanitize_string(reason)
	if not reason:
		frappe.throw(_("reason is required"), frappe.ValidationError)

	with api_errors("cancel_booking"):
		updated = get_booking_service().cancel(booking, reason)
		return _status_result(updated, _("Booking cancelled"))


@frappe.whitelist(methods=['POST'])
def delete_booking(booking: str) -> Dict[str, Any]:
	"""Elimina permanentemente un booking COMPLETED o CANCELLED."""
	booking = validate_docname(booking, "booking")

	with api_errors("delete_booking"):
		deleted = get_booking_service().delete_booking(booking)
		return {"success": True, "booking": deleted.id, "message": _("Booking deleted")}


@frappe.whitelist(methods=['GET'])
def get_booking(booking: str) -> Dict[str, Any]:
	booking = validate_docname(booking, "booking")

	with api_errors("get_booking"):
		return get_booking_service().get_booking(booking).as_dict()


@frappe.whitelist(methods=['GET'])
def list_bookings(
	date_from: Optional[str] = None,
	date_to: Optional[str] = None,
	status: Optional[str] = None,
	station: Optional[str] = None,
	ev_owner: Optional[str] = None,
	slot_type: Optional[str] = None
) -> List[Dict[str, Any]]:
	"""
	Lista bookings ordenados por inicio.

	Args:
		date_from: primer día incluido (YYYY-MM-DD)
		date_to: último día incluido (YYYY-MM-DD)
		status: PENDING, APPROVED, COMPLETED o CANCELLED
		station: Charging Station
		ev_owner: EV Owner
		slot_type: AC o DC

	Los días se interpretan en la zona horaria por defecto de EV Charging Settings.
	"""
	filters = {}
	if status:
		filters["status"] = validate_choice(status, BOOKING_STATUSES, "status")
	if slot_type:
		filters["slot_type"] = validate_choice(slot_type, SLOT_TYPES, "slot_type")
	if station:
		filters["station_id"] = validate_docname(station, "station")
	if ev_owner:
		filters["owner_id"] = validate_docname(ev_owner, "ev_owner")

	if date_from or date_to:
		tz = get_timezone(get_default_timezone())
		if date_from:
			day = getdate(validate_date_string(date_from, "date_from"))
			filters["date_from"] = tz.localize(datetime.combine(day, time()))
		if date_to:
			day = getdate(validate_date_string(date_to, "date_to"))
			filters["date_to"] = tz.localize(datetime.combine(day + timedelta(days=1), time()))

	with api_errors("list_bookings"):
		bookings = get_booking_service().list_bookings(**filters)
		return [booking.as_dict() for booking in bookings]


@frappe.whitelist(methods=['GET'])
def get_dashboard_stats() -> Dict[str, Any]:
	"""
	KPIs del dashboard de operador.

	Returns:
		dict: {
			"pending_reservations": int,
			"approved_future_reservations": int,
			"active_stations": int,
			"deactivated_stations": int,
			"same_day_capacity": {"total": int, "booked": int}
		}
	"""
	with api_errors("get_dashboard_stats"):
		return get_booking_service().dashboard_stats()


def _status_result(booking, message: str) -> Dict[str, Any]:
	return {
		"success": True,
		"booking": booking.as_dict(),
		"message": message
	}
