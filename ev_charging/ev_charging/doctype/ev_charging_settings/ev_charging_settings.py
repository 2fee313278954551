# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
EV Charging Settings

Límites del ciclo de vida de los bookings:
- creation_horizon_days: máximo de días de anticipación (default 7)
- modification_cutoff_hours: horas mínimas antes del inicio para
  modificar o cancelar (default 12)
"""

import frappe
import pytz
from frappe import _
from frappe.model.document import Document
from frappe.utils import cint, flt


class EVChargingSettings(Document):
	def validate(self) -> None:
		if cint(self.creation_horizon_days) <= 0:
			frappe.throw(_("Creation Horizon debe ser mayor que 0"))

		if flt(self.modification_cutoff_hours) <= 0:
			frappe.throw(_("Modification Cutoff debe ser mayor que 0"))

		if self.default_timezone and self.default_timezone not in pytz.all_timezones_set:
			frappe.throw(_(f"Unknown timezone '{self.default_timezone}'"))

	def on_update(self) -> None:
		frappe.clear_document_cache("EV Charging Settings", "EV Charging Settings")
