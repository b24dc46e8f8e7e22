"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows about them before
tables are created, and so other modules can import from crm.models directly.
"""

from crm.models.user import User, UserRole  # noqa: F401
