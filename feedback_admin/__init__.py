"""Feedback collection and administrator authentication API."""
__version__ = "0.1.0"
