# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Schedule Exception DocType

Reemplazo completo de la plantilla semanal para una fecha:
- Sin ventanas: estación cerrada todo el día
- Con ventanas: solo esas ventanas aplican ese día

Única por (station, date); guardar una nueva reemplaza la anterior.
"""

import frappe
from frappe import _
from frappe.model.document import Document

from ev_charging.ev_charging.scheduling.errors import SchedulingError
from ev_charging.ev_charging.scheduling.frappe_backend import FrappeScheduleDirectory, windows_from_rows


class ScheduleException(Document):
	def validate(self) -> None:
		self._validate_required_fields()
		self._validate_windows()

	def before_insert(self) -> None:
		self._replace_existing()

	def _validate_required_fields(self) -> None:
		if not self.station:
			frappe.throw(_("Station es requerido"))
		if not self.date:
			frappe.throw(_("Date es requerido"))

	def _validate_windows(self) -> None:
		try:
			station = FrappeScheduleDirectory().get_station(self.station)
			windows_from_rows(station, self.windows)
		except SchedulingError as e:
			frappe.throw(_(str(e)), frappe.ValidationError)

	def _replace_existing(self) -> None:
		"""La última excepción guardada para (station, date) gana."""
		existing = frappe.get_all(
			"Schedule Exception",
			filters={"station": self.station, "date": self.date},
			pluck="name"
		)
		for name in existing:
			frappe.delete_doc("Schedule Exception", name, ignore_permissions=True)

		if existing:
			frappe.logger().info(
				f"Schedule Exception for {self.station} on {self.date} replaced: {', '.join(existing)}"
			)
