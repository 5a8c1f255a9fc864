"""
Service layer for the spreadsheet import system.

This package contains framework-agnostic business logic that can be used
by CLI, API, or background workers.
"""

__version__ = "1.0.0"
