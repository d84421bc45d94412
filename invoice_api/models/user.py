"""
User model — the credential store record.

Each User is a login identity (email + hashed password) with a role that
drives authorization and a department used for reporting and scoping.

Roles (closed set, no hierarchy between them):
  - ADMIN: full access, bypasses ownership checks
  - ACCOUNTANT: works with invoices
  - VIEWER: read-only; the default for self-registration

The password column only ever holds the output of security.hash_password().
Hashing is done explicitly by the auth service before the row is written —
there are no ORM hooks that transform values behind the caller's back.

Users are never hard-deleted. Setting is_active=False is the only removal
path, and it takes effect on the next authenticated request.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum, Integer
from sqlalchemy.orm import Mapped, mapped_column, validates

from invoice_api.database import Base


class UserRole(str, enum.Enum):
    """
    Role a user holds within the invoicing system.

    Inherits from str so the enum value serializes naturally to JSON
    and can be stored as a simple string in the database.
    """
    ADMIN = "admin"
    ACCOUNTANT = "accountant"
    VIEWER = "viewer"


class Department(str, enum.Enum):
    FINANCE = "finance"
    SALES = "sales"
    OPERATIONS = "operations"
    MANAGEMENT = "management"


def normalize_email(email: str) -> str:
    """Emails are compared case-insensitively, so they're stored lowercased."""
    return email.strip().lower()


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Login identifier, unique and indexed. The constraint is the final
    # arbiter when two registrations race on the same address
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # validate_strings makes the Enum type reject unknown values on write
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e], validate_strings=True),
        default=UserRole.VIEWER,
        nullable=False,
    )

    department: Mapped[Department] = mapped_column(
        Enum(Department, values_callable=lambda e: [m.value for m in e], validate_strings=True),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return normalize_email(value)

    @validates("role")
    def _validate_role(self, key: str, value) -> UserRole:
        return UserRole(value)

    @validates("department")
    def _validate_department(self, key: str, value) -> Department:
        return Department(value)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
