# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Station Schedule DocType

Plantilla semanal de una estación: ventanas con slots para un día de la
semana. Única por (station, weekday).
"""

import frappe
from frappe import _
from frappe.model.document import Document

from ev_charging.ev_charging.scheduling.errors import SchedulingError
from ev_charging.ev_charging.scheduling.frappe_backend import FrappeScheduleDirectory, windows_from_rows


class StationSchedule(Document):
	"""
	Validations:
	- station and weekday required
	- one schedule per station and weekday
	- each window: start < end, known slots, no slot listed twice
	- no overlapping windows
	"""

	def validate(self) -> None:
		self._validate_required_fields()
		self._validate_unique_weekday()
		self._validate_windows()

	def _validate_required_fields(self) -> None:
		if not self.station:
			frappe.throw(_("Station es requerido"))
		if not self.weekday:
			frappe.throw(_("Weekday es requerido"))

	def _validate_unique_weekday(self) -> None:
		filters = {"station": self.station, "weekday": self.weekday}
		if not self.is_new():
			filters["name"] = ["!=", self.name]

		if frappe.db.exists("Station Schedule", filters):
			frappe.throw(
				_(f"{self.station} already has a schedule for {self.weekday}"),
				frappe.DuplicateEntryError
			)

	def _validate_windows(self) -> None:
		try:
			station = FrappeScheduleDirectory().get_station(self.station)
			windows_from_rows(station, self.windows)
		except SchedulingError as e:
			frappe.throw(_(str(e)), frappe.ValidationError)
