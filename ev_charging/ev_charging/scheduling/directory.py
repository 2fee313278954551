"""
Schedule Directory

Source of stations, weekly templates, schedule exceptions and owner
identity for the engine. `ScheduleDirectory` is the interface; the
in-memory implementation backs tests and embedded use, the Frappe
implementation lives in frappe_backend.py.
"""

import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional, Tuple

from .errors import NotFoundError
from .models import (
	ScheduleException,
	Station,
	StationStatus,
	WeeklyTemplateEntry,
)


class ScheduleDirectory(ABC):
	"""Read/write access to station schedule data."""

	@abstractmethod
	def get_station(self, station_id: str) -> Station:
		"""
		Returns the station.

		Raises:
			NotFoundError: if the station does not exist
		"""
		pass

	@abstractmethod
	def list_stations(self) -> List[Station]:
		pass

	@abstractmethod
	def get_template(self, station_id: str, weekday: int) -> Optional[WeeklyTemplateEntry]:
		"""Template entry for a weekday (Sunday = 0), None when closed."""
		pass

	@abstractmethod
	def get_exception(self, station_id: str, day: date) -> Optional[ScheduleException]:
		pass

	@abstractmethod
	def is_active_owner(self, owner_id: str) -> bool:
		pass

	@abstractmethod
	def save_template(self, entry: WeeklyTemplateEntry) -> WeeklyTemplateEntry:
		"""Creates or replaces the entry for (station, weekday)."""
		pass

	@abstractmethod
	def clear_template(self, station_id: str, weekday: int) -> None:
		"""Removes the entry for (station, weekday); the station is closed that day."""
		pass

	@abstractmethod
	def save_exception(self, exception: ScheduleException) -> ScheduleException:
		"""Creates or replaces the exception for (station, date). Latest write wins."""
		pass

	@abstractmethod
	def set_station_status(self, station_id: str, status: StationStatus) -> Station:
		pass

	def get_templates(self, station_id: str) -> List[WeeklyTemplateEntry]:
		entries = [self.get_template(station_id, weekday) for weekday in range(7)]
		return [entry for entry in entries if entry is not None]


class InMemoryScheduleDirectory(ScheduleDirectory):
	"""Dictionary-backed directory."""

	def __init__(self):
		self._lock = threading.Lock()
		self._stations: Dict[str, Station] = {}
		self._templates: Dict[Tuple[str, int], WeeklyTemplateEntry] = {}
		self._exceptions: Dict[Tuple[str, date], ScheduleException] = {}
		self._owners: Dict[str, bool] = {}

	def add_station(self, station: Station) -> Station:
		with self._lock:
			self._stations[station.id] = station
		return station

	def add_owner(self, owner_id: str, active: bool = True) -> None:
		with self._lock:
			self._owners[owner_id] = active

	def get_station(self, station_id: str) -> Station:
		station = self._stations.get(station_id)
		if station is None:
			raise NotFoundError("Charging Station", station_id)
		return station

	def list_stations(self) -> List[Station]:
		return sorted(self._stations.values(), key=lambda s: s.id)

	def get_template(self, station_id: str, weekday: int) -> Optional[WeeklyTemplateEntry]:
		return self._templates.get((station_id, weekday))

	def get_exception(self, station_id: str, day: date) -> Optional[ScheduleException]:
		return self._exceptions.get((station_id, day))

	def is_active_owner(self, owner_id: str) -> bool:
		return self._owners.get(owner_id, False)

	def save_template(self, entry: WeeklyTemplateEntry) -> WeeklyTemplateEntry:
		entry.validate_for(self.get_station(entry.station_id))
		with self._lock:
			self._templates[(entry.station_id, entry.weekday)] = entry
		return entry

	def clear_template(self, station_id: str, weekday: int) -> None:
		with self._lock:
			self._templates.pop((station_id, weekday), None)

	def save_exception(self, exception: ScheduleException) -> ScheduleException:
		exception.validate_for(self.get_station(exception.station_id))
		with self._lock:
			self._exceptions[(exception.station_id, exception.date)] = exception
		return exception

	def remove_exception(self, station_id: str, day: date) -> None:
		with self._lock:
			self._exceptions.pop((station_id, day), None)

	def set_station_status(self, station_id: str, status: StationStatus) -> Station:
		with self._lock:
			station = self.get_station(station_id).with_status(status)
			self._stations[station_id] = station
		return station
