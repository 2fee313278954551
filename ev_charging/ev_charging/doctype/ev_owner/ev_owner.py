# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import validate_email_address


class EVOwner(Document):
	def validate(self) -> None:
		if not (self.owner_name or "").strip():
			frappe.throw(_("Owner Name es requerido"))

		if self.email:
			validate_email_address(self.email, throw=True)
