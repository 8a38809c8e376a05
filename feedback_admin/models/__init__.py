"""
SQLAlchemy ORM models.

This module exports all database models and the declarative base.
Import models from this module to ensure they're registered with SQLAlchemy.
"""

from feedback_admin.models.base import Base, TimestampMixin, UnicodeJSON, UUIDMixin
from feedback_admin.models.admin import Admin
from feedback_admin.models.otp_token import OtpToken, OTP_CONTEXTS
from feedback_admin.models.admin_session import AdminSession
from feedback_admin.models.feedback import Feedback, FEEDBACK_FIELDS

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "UnicodeJSON",
    # Models
    "Admin",
    "OtpToken",
    "OTP_CONTEXTS",
    "AdminSession",
    "Feedback",
    "FEEDBACK_FIELDS",
]
