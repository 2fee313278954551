"""
Stations domain API.

Usage:
    frappe.call("ev_charging.api.stations.get_effective_availability", ...)
"""

from .endpoints import (
    apply_schedule_preset,
    get_effective_availability,
    get_schedule_presets,
    get_stations,
    get_weekly_capacity,
    save_schedule_exception,
    set_station_status,
)

__all__ = [
    "apply_schedule_preset",
    "get_effective_availability",
    "get_schedule_presets",
    "get_stations",
    "get_weekly_capacity",
    "save_schedule_exception",
    "set_station_status",
]
