"""
Scheduling Errors

Error kinds raised by the availability and booking engine:
- ScheduleValidationError: malformed input, rejected before touching state
- NotFoundError: unknown station, booking or owner
- StationClosedError: no effective availability for the requested range
- SlotConflictError: slot claimed concurrently
- InvalidTransitionError: illegal lifecycle move or temporal rule violated
"""

from typing import Optional


class SchedulingError(Exception):
	"""Base class for every engine error."""
	pass


class ScheduleValidationError(SchedulingError):
	"""Input is malformed (bad window, non-positive capacity, start >= end)."""
	pass


class NotFoundError(SchedulingError):
	"""A station, booking or owner does not exist."""

	def __init__(self, entity: str, name: str):
		self.entity = entity
		self.name = name
		super().__init__(f"{entity} '{name}' not found")


class StationClosedError(SchedulingError):
	"""No slots available for the requested station, date and range."""
	pass


class SlotConflictError(SchedulingError):
	"""Another booking was committed for the same slot and time range."""

	def __init__(
		self,
		station_id: str,
		slot_id: str,
		conflicting: Optional[str] = None,
		message: Optional[str] = None
	):
		self.station_id = station_id
		self.slot_id = slot_id
		self.conflicting = conflicting
		if message is None:
			message = f"Slot {slot_id} at station {station_id} is already booked"
			if conflicting:
				message += f" by {conflicting}"
		super().__init__(message)


class InvalidTransitionError(SchedulingError):
	"""
	Lifecycle move not permitted.

	`rule` names the violated rule, e.g. "terminal_state",
	"creation_horizon", "modification_cutoff".
	"""

	def __init__(self, message: str, rule: str):
		self.rule = rule
		super().__init__(message)
