"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows about every table before create_all() runs
  2. Other modules can import from invoice_api.models directly
"""

from invoice_api.models.user import User, UserRole, Department  # noqa: F401
