"""
Scheduling Services Module

Core availability and booking engine for charging stations:
- Data model and errors (models.py, errors.py)
- Effective availability and presets (availability.py)
- Overlap detection (overlap.py)
- Temporal rules and clocks (rules.py)
- Slot allocation (allocator.py)
- Booking lifecycle (lifecycle.py)
- Service facade used by the API (service.py)
- Storage: in-memory (directory.py, store.py) and Frappe (frappe_backend.py)
"""
