"""Disaster relief reporting web app."""

__version__ = "0.1.0"
