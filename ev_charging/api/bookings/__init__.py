"""
Bookings domain API.

Usage:
    frappe.call("ev_charging.api.bookings.create_booking", ...)
"""

from .endpoints import (
    approve_booking,
    cancel_booking,
    check_availability,
    complete_booking,
    create_booking,
    delete_booking,
    get_booking,
    get_dashboard_stats,
    list_bookings,
    modify_booking,
)

__all__ = [
    "approve_booking",
    "cancel_booking",
    "check_availability",
    "complete_booking",
    "create_booking",
    "delete_booking",
    "get_booking",
    "get_dashboard_stats",
    "list_bookings",
    "modify_booking",
]
