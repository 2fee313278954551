"""
Shared utilities for the EV Charging API.

Input validators and the mapping of engine errors to Frappe exceptions.
"""

from .errors import api_errors, throw_scheduling_error
from .validators import (
    parse_json_list,
    sanitize_string,
    validate_choice,
    validate_date_string,
    validate_datetime_string,
    validate_docname,
    validate_time_string,
)

__all__ = [
    "api_errors",
    "throw_scheduling_error",
    "parse_json_list",
    "sanitize_string",
    "validate_choice",
    "validate_date_string",
    "validate_datetime_string",
    "validate_docname",
    "validate_time_string",
]
