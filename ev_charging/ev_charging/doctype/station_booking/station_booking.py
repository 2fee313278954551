# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Station Booking DocType

Reserva de un slot de una estación. Los bookings se crean y modifican
solo a través del motor de reservas (ev_charging.api.bookings), que
garantiza la exclusión de overlaps por slot.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import get_datetime

from ev_charging.ev_charging.scheduling.models import TERMINAL_STATUSES, BookingStatus


class StationBooking(Document):
	def validate(self) -> None:
		"""
		Validación antes de guardar.

		1. Solo el motor de reservas puede escribir
		2. starts_at < ends_at
		"""
		self._validate_engine_write()
		self._validate_datetime_consistency()

	def on_trash(self) -> None:
		"""Solo se eliminan bookings COMPLETED o CANCELLED."""
		if BookingStatus(self.status) not in TERMINAL_STATUSES:
			frappe.throw(
				_("Only completed or cancelled bookings can be permanently deleted"),
				frappe.ValidationError
			)

	def _validate_engine_write(self) -> None:
		if not self.flags.from_booking_engine:
			frappe.throw(
				_("Station Bookings are managed through the booking API"),
				frappe.PermissionError
			)

	def _validate_datetime_consistency(self) -> None:
		if not self.starts_at or not self.ends_at:
			frappe.throw(_("Starts At y Ends At son requeridos"))

		if get_datetime(self.starts_at) >= get_datetime(self.ends_at):
			frappe.throw(_("Starts At debe ser menor que Ends At"))
