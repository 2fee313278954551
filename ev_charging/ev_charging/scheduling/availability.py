"""
Availability Service

Resolves the effective availability of a Charging Station for a date,
considering:
- Weekly templates (per weekday windows with slots)
- Schedule Exceptions (date-specific, all-or-nothing replacement)
- Station status (deactivated stations have no availability)

Also provides the schedule presets offered to operators and the weekly
slot-hours figure used for utilisation.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

from .directory import ScheduleDirectory
from .errors import ScheduleValidationError
from .models import (
	Station,
	WeeklyTemplateEntry,
	Window,
	parse_hhmm,
	weekday_of,
)


def resolve(
	directory: ScheduleDirectory,
	station: Union[Station, str],
	target_date: date
) -> List[Window]:
	"""
	Obtiene la disponibilidad efectiva de una estación para un día.

	Args:
		directory: fuente de templates y excepciones
		station: Station o id de la estación
		target_date: fecha (date object)

	Returns:
		list[Window]: ventanas ordenadas por start (vacía = cerrado)

	Algoritmo:
		1. Si la estación está desactivada, retornar vacío
		2. Si existe una excepción para (station, date), retornar sus
		   ventanas tal cual (vacía = cerrado todo el día)
		3. Si no, buscar el template del weekday (Sunday = 0)
		4. Sin template para ese día = cerrado
	"""
	if isinstance(station, str):
		station = directory.get_station(station)

	if not station.is_active:
		return []

	exception = directory.get_exception(station.id, target_date)
	if exception is not None:
		return list(exception.windows)

	entry = directory.get_template(station.id, weekday_of(target_date))
	if entry is None:
		return []

	return list(entry.windows)


def resolve_range(
	directory: ScheduleDirectory,
	station: Union[Station, str],
	start_date: date,
	end_date: date
) -> Dict[str, List[Window]]:
	"""
	Obtiene disponibilidad efectiva para un rango de fechas.

	Returns:
		dict: {
			"2026-01-15": [Window, ...],
			...
		}
		Solo incluye los días con al menos una ventana con capacidad.
	"""
	if start_date > end_date:
		raise ScheduleValidationError("from_date must be on or before to_date")

	if isinstance(station, str):
		station = directory.get_station(station)

	result = {}
	current_date = start_date

	while current_date <= end_date:
		windows = [w for w in resolve(directory, station, current_date) if w.capacity]
		if windows:
			result[current_date.isoformat()] = windows
		current_date += timedelta(days=1)

	return result


def find_containing_window(
	windows: List[Window],
	station: Station,
	target_date: date,
	start: datetime,
	end: datetime
) -> Optional[Window]:
	"""
	Returns the single window whose interval fully contains [start, end).

	A request straddling two adjacent or separated windows is not contained
	by either and yields None. Windows without slots are ignored.
	"""
	for window in windows:
		if not window.capacity:
			continue
		window_start, window_end = station.local_bounds(target_date, window)
		if window_start <= start and end <= window_end:
			return window
	return None


def build_window(
	station: Station,
	start: str,
	end: str,
	slot_ids: Optional[List[str]] = None,
	capacity: Optional[int] = None
) -> Window:
	"""
	Builds a window from "HH:MM" bounds and either explicit slot ids or a
	slot count (lowest-numbered slots first).

	Raises:
		ScheduleValidationError: bad bounds, unknown slots or non-positive capacity
	"""
	if slot_ids:
		window = Window(parse_hhmm(start), parse_hhmm(end), tuple(slot_ids))
		window.validate_for(station)
		return window

	if capacity is None:
		return Window(parse_hhmm(start), parse_hhmm(end), ())

	return Window.from_capacity(station, parse_hhmm(start), parse_hhmm(end), capacity)


# ===== PRESETS =====

PRESETS = {
	"business": {
		"label": "Business Hours",
		"description": "Monday-Friday 9AM-6PM",
		"weekdays": (1, 2, 3, 4, 5),
		"start": "09:00",
		"end": "18:00",
	},
	"24x7": {
		"label": "24/7 Operations",
		"description": "Always available",
		"weekdays": (0, 1, 2, 3, 4, 5, 6),
		"start": "00:00",
		"end": "23:59",
	},
	"weekend": {
		"label": "Weekends Only",
		"description": "Saturday-Sunday only",
		"weekdays": (0, 6),
		"start": "08:00",
		"end": "20:00",
	},
}


def build_preset(station: Station, preset: str) -> List[WeeklyTemplateEntry]:
	"""
	Builds the weekly template entries of a preset.

	Every window carries all slots of the station.

	Raises:
		ScheduleValidationError: if the preset is unknown
	"""
	config = PRESETS.get(preset)
	if config is None:
		raise ScheduleValidationError(
			f"Unknown schedule preset '{preset}'. Use one of: {', '.join(sorted(PRESETS))}"
		)

	window = Window(
		parse_hhmm(config["start"]),
		parse_hhmm(config["end"]),
		tuple(station.slot_ids)
	)
	return [
		WeeklyTemplateEntry(station.id, weekday, (window,))
		for weekday in config["weekdays"]
	]


def weekly_slot_hours(entries: List[WeeklyTemplateEntry]) -> float:
	"""Sum over all windows of hours x capacity."""
	total_minutes = sum(
		window.duration_minutes * window.capacity
		for entry in entries
		for window in entry.windows
	)
	return round(total_minutes / 60.0, 2)


def daily_capacity(windows: List[Window]) -> int:
	"""Number of slots opened during the day (each slot counted once per window)."""
	return sum(window.capacity for window in windows)

