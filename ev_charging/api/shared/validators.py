"""
Booking API Validators

Input validation for the ev_charging endpoints. Every validator raises
frappe.ValidationError through frappe.throw.
"""

import json
import re
from typing import Any, List, Optional

import frappe
from frappe import _


def validate_date_string(date_str: str, field_name: str = "date") -> str:
    """
    Validate date string format (YYYY-MM-DD).

    Args:
        date_str: Date string to validate
        field_name: Name of field for error messages

    Returns:
        str: Validated date string

    Raises:
        frappe.ValidationError: If date format is invalid
    """
    if not date_str:
        frappe.throw(_(f"{field_name} is required"), frappe.ValidationError)

    date_str = str(date_str).strip()

    if not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        frappe.throw(
            _(f"Invalid {field_name} format. Use YYYY-MM-DD"), frappe.ValidationError
        )

    return date_str


def validate_datetime_string(datetime_str: str, field_name: str = "datetime") -> str:
    """
    Validate datetime string format (YYYY-MM-DD HH:MM[:SS]).

    The value is read as wall time of the station.

    Raises:
        frappe.ValidationError: If datetime format is invalid
    """
    if not datetime_str:
        frappe.throw(_(f"{field_name} is required"), frappe.ValidationError)

    datetime_str = str(datetime_str).strip()

    if not re.match(r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}(:\d{2})?$", datetime_str):
        frappe.throw(
            _(f"Invalid {field_name} format. Use YYYY-MM-DD HH:MM:SS"),
            frappe.ValidationError,
        )

    return datetime_str


def validate_time_string(time_str: str, field_name: str = "time") -> str:
    """
    Validate time of day (HH:MM). 24:00 is accepted as end of day.

    Raises:
        frappe.ValidationError: If time format is invalid
    """
    if not time_str:
        frappe.throw(_(f"{field_name} is required"), frappe.ValidationError)

    time_str = str(time_str).strip()

    if not re.match(r"^([01]\d|2[0-3]):[0-5]\d$|^24:00$", time_str):
        frappe.throw(_(f"Invalid {field_name} format. Use HH:MM"), frappe.ValidationError)

    return time_str


def validate_docname(name: str, field_name: str = "name") -> str:
    """
    Validate a document name (ID).

    Ensures the name is not too long and doesn't contain injection patterns.

    Raises:
        frappe.ValidationError: If name is invalid
    """
    if not name:
        frappe.throw(_(f"{field_name} is required"), frappe.ValidationError)

    name = str(name).strip()

    if len(name) > 140:
        frappe.throw(_(f"{field_name} is too long"), frappe.ValidationError)

    # Block obvious injection attempts
    dangerous_patterns = [
        r"<script",
        r"javascript:",
        r"onclick",
        r"onerror",
        r"SELECT\s+",
        r"INSERT\s+",
        r"UPDATE\s+",
        r"DELETE\s+",
        r"DROP\s+",
        r"UNION\s+",
        r"--",
        r";",
    ]

    for pattern in dangerous_patterns:
        if re.search(pattern, name, re.IGNORECASE):
            frappe.throw(_(f"Invalid {field_name}"), frappe.ValidationError)

    return name


def validate_choice(value: str, choices: List[str], field_name: str) -> str:
    """Validate that `value` is one of `choices` (case-insensitive, returned upper-cased)."""
    if not value:
        frappe.throw(_(f"{field_name} is required"), frappe.ValidationError)

    value = str(value).strip().upper()
    if value not in choices:
        frappe.throw(
            _(f"Invalid {field_name} '{value}'. Use one of: {', '.join(choices)}"),
            frappe.ValidationError,
        )

    return value


def sanitize_string(value: Optional[str], max_length: int = 1000) -> Optional[str]:
    """
    Strip markup from free text (notes, reasons) and cap its length.

    Returns None for empty input.
    """
    if value is None:
        return None

    value = re.sub(r"<[^>]*>", "", str(value)).strip()
    if not value:
        return None

    return value[:max_length]


def parse_json_list(value: Any, field_name: str) -> List[Any]:
    """Accept a list or its JSON text, as sent by frappe.call."""
    if value is None or value == "":
        return []

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            frappe.throw(_(f"{field_name} must be a JSON list"), frappe.ValidationError)

    if not isinstance(value, list):
        frappe.throw(_(f"{field_name} must be a list"), frappe.ValidationError)

    return value
