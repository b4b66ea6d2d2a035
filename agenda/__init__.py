"""Availability and booking engine for single-owner appointment schedules."""

__version__ = "0.1.0"
