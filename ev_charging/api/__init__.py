"""
EV Charging API

Structure:
    api/
    ├── __init__.py      # This file
    ├── bookings/        # Availability checks and booking lifecycle
    ├── stations/        # Station status, schedules and presets
    └── shared/          # Validators and engine error mapping

Usage:
    frappe.call("ev_charging.api.bookings.create_booking", ...)
    frappe.call("ev_charging.api.stations.set_station_status", ...)

All endpoints delegate to the BookingService built by
ev_charging.ev_charging.scheduling.frappe_backend.get_booking_service.
"""

from . import bookings
from . import shared
from . import stations

__all__ = [
    "bookings",
    "shared",
    "stations",
]
