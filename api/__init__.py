"""
FastAPI application for the spreadsheet import system.

This package contains the REST API and WebSocket server for validating,
importing and exporting spreadsheet records.
"""

__version__ = "1.0.0"
