"""
API Error Mapping

Translates engine errors into Frappe exceptions:
- NotFoundError -> frappe.DoesNotExistError
- ScheduleValidationError, InvalidTransitionError, StationClosedError,
  SlotConflictError -> frappe.ValidationError
Unexpected errors are logged with frappe.log_error before failing.
"""

from contextlib import contextmanager
from typing import Iterator

import frappe
from frappe import _

from ev_charging.ev_charging.scheduling.errors import NotFoundError, SchedulingError


def throw_scheduling_error(error: SchedulingError) -> None:
	if isinstance(error, NotFoundError):
		frappe.throw(_(str(error)), frappe.DoesNotExistError)
	frappe.throw(_(str(error)), frappe.ValidationError)


@contextmanager
def api_errors(title: str) -> Iterator[None]:
	"""
	Envuelve un endpoint:
	1. Errores del motor -> frappe.throw con el tipo correspondiente
	2. Errores de Frappe (validación, permisos) -> se propagan tal cual
	3. Cualquier otro -> frappe.log_error + ValidationError genérico
	"""
	try:
		yield
	except SchedulingError as e:
		throw_scheduling_error(e)
	except (frappe.ValidationError, frappe.PermissionError):
		raise
	except Exception as e:
		frappe.log_error(f"Error in {title}: {str(e)}", "EV Charging API")
		frappe.throw(_(f"Error in {title}: {str(e)}"))
