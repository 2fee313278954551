# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Charging Station DocType

Estación de carga con un número fijo de slots AC y DC.
Los slots se identifican como AC-1..AC-n y DC-1..DC-m.
"""

import frappe
import pytz
from frappe import _
from frappe.model.document import Document
from frappe.utils import cint, now_datetime

from ev_charging.ev_charging.scheduling.frappe_backend import split_slot_ids
from ev_charging.ev_charging.scheduling.models import ACTIVE_STATUSES, StationStatus, parse_slot_id


class ChargingStation(Document):
	"""
	Charging Station with slot and timezone validation.

	Validations:
	- slot counts >= 0 and at least one slot
	- timezone must be a valid IANA name
	- slot counts cannot drop below a slot held by an upcoming booking
	  or listed in a schedule or exception window
	"""

	def validate(self) -> None:
		self._validate_slot_counts()
		self._validate_timezone()
		self._validate_slot_reduction()
		self._validate_schedule_slots()

	def on_update(self) -> None:
		"""Al desactivar desde el formulario, cancela los bookings futuros."""
		if self.has_value_changed("status") and self.status == StationStatus.DEACTIVATED.value:
			frappe.enqueue(
				"ev_charging.ev_charging.scheduling.frappe_backend.cancel_upcoming_bookings",
				station_id=self.name,
				queue="default",
				enqueue_after_commit=True,
			)

	def _validate_slot_counts(self) -> None:
		ac = cint(self.ac_slot_count)
		dc = cint(self.dc_slot_count)

		if ac < 0 or dc < 0:
			frappe.throw(_("Slot counts must not be negative"), frappe.ValidationError)

		if ac == 0 and dc == 0:
			frappe.throw(_("A station needs at least one AC or DC slot"), frappe.ValidationError)

	def _validate_timezone(self) -> None:
		if self.timezone and self.timezone not in pytz.all_timezones_set:
			frappe.throw(_(f"Unknown timezone '{self.timezone}'"), frappe.ValidationError)

	def _validate_slot_reduction(self) -> None:
		"""
		No permite eliminar slots que tienen bookings activos futuros.
		"""
		if self.is_new():
			return

		bookings = frappe.get_all(
			"Station Booking",
			filters={
				"station": self.name,
				"status": ["in", [status.value for status in ACTIVE_STATUSES]],
				"ends_at": [">", now_datetime()],
			},
			fields=["name", "slot_id"]
		)

		limits = {"AC": cint(self.ac_slot_count), "DC": cint(self.dc_slot_count)}
		for booking in bookings:
			slot_type, index = parse_slot_id(booking.slot_id)
			if index > limits[slot_type.value]:
				frappe.throw(
					_(f"Slot {booking.slot_id} is held by booking {booking.name}; cancel it before removing the slot"),
					frappe.ValidationError
				)

	def _validate_schedule_slots(self) -> None:
		"""
		No permite eliminar slots usados por ventanas de Station Schedule o
		Schedule Exception (slot_ids explícitos o slot_count mayor al total).
		"""
		if self.is_new():
			return

		limits = {"AC": cint(self.ac_slot_count), "DC": cint(self.dc_slot_count)}
		total = limits["AC"] + limits["DC"]

		for parenttype in ("Station Schedule", "Schedule Exception"):
			parents = frappe.get_all(parenttype, filters={"station": self.name}, pluck="name")
			if not parents:
				continue

			rows = frappe.get_all(
				"Schedule Window",
				filters={"parenttype": parenttype, "parent": ["in", parents]},
				fields=["parent", "slot_ids", "slot_count"],
				parent_doctype=parenttype
			)
			for row in rows:
				slot_ids = split_slot_ids(row.slot_ids)
				for slot_id in slot_ids:
					slot_type, index = parse_slot_id(slot_id)
					if index > limits[slot_type.value]:
						frappe.throw(
							_(f"Slot {slot_id} is used by {parenttype} {row.parent}; update it before removing the slot"),
							frappe.ValidationError
						)
				if not slot_ids and cint(row.slot_count) > total:
					frappe.throw(
						_(f"{parenttype} {row.parent} opens {cint(row.slot_count)} slots; the station would only have {total}"),
						frappe.ValidationError
					)
