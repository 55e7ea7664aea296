"""Mentor matching for the crypto mentorship marketplace."""

__version__ = "0.1.0"
