"""
Overlap Detection Service

Detects scheduling conflicts between bookings of the same slot:
- Half-open interval test [start, end)
- Only PENDING and APPROVED bookings hold a slot
- Optional exclusion of the booking being modified
"""

from datetime import datetime
from typing import Any, Dict, Optional


def intervals_overlap(
	a_start: datetime,
	a_end: datetime,
	b_start: datetime,
	b_end: datetime
) -> bool:
	"""
	Half-open interval overlap: a.start < b.end AND b.start < a.end.

	Symmetric in its arguments. A zero-width (or inverted) interval never
	overlaps anything, and adjacent intervals (a.end == b.start) do not overlap.
	"""
	if a_start >= a_end or b_start >= b_end:
		return False
	return a_start < b_end and b_start < a_end


def check_overlap(
	store: Any,
	station_id: str,
	slot_id: str,
	start_datetime: datetime,
	end_datetime: datetime,
	exclude_booking: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Detecta overlaps con bookings existentes de un slot.

	Args:
		store: BookingStore a consultar
		station_id: id de la estación
		slot_id: identificador del slot ("AC-1", "DC-2", ...)
		start_datetime: inicio del rango a validar
		end_datetime: fin del rango a validar
		exclude_booking: id del booking a excluir (para modificaciones)

	Returns:
		dict: {
			"has_overlap": bool,
			"overlapping_bookings": [list of booking ids]
		}
	"""
	overlapping = store.overlapping(
		station_id,
		slot_id,
		start_datetime,
		end_datetime,
		exclude_booking=exclude_booking
	)
	names = [booking.id for booking in overlapping]

	return {
		"has_overlap": bool(names),
		"overlapping_bookings": names
	}
