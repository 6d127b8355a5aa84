"""Benefit application and approval engine for a corporate mutual-aid program."""

__version__ = "1.0.0"
