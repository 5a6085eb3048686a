"""Account, role and permission models.

Each role carries a fixed permission set. Endpoints check permissions,
never role names.
"""

import re
from datetime import datetime
from enum import Enum

from pydantic import EmailStr, Field, field_validator, model_validator

from .base import CamelModel, Zone
from .reports import utcnow

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")


def clean_phone(value: str) -> str:
    value = value.strip()
    if not PHONE_PATTERN.match(value):
        raise ValueError("Please enter a valid phone number")
    return value


class Role(str, Enum):
    """Account roles."""

    CITIZEN = "citizen"
    WORKER = "worker"
    ADMIN = "admin"


class Permission(str, Enum):
    """Capabilities granted to roles."""

    SUBMIT_REPORT = "submit_report"
    VIEW_OWN_REPORTS = "view_own_reports"
    VIEW_ASSIGNED_REPORTS = "view_assigned_reports"
    VIEW_ALL_REPORTS = "view_all_reports"
    ASSIGN_REPORT = "assign_report"
    START_JOB = "start_job"
    COMPLETE_JOB = "complete_job"
    DELETE_REPORT = "delete_report"
    EXPORT_REPORTS = "export_reports"
    VIEW_ANALYTICS = "view_analytics"
    VIEW_WORKERS = "view_workers"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.CITIZEN: frozenset({
        Permission.SUBMIT_REPORT,
        Permission.VIEW_OWN_REPORTS,
    }),
    Role.WORKER: frozenset({
        Permission.SUBMIT_REPORT,
        Permission.VIEW_OWN_REPORTS,
        Permission.VIEW_ASSIGNED_REPORTS,
        Permission.START_JOB,
        Permission.COMPLETE_JOB,
    }),
    Role.ADMIN: frozenset({
        Permission.SUBMIT_REPORT,
        Permission.VIEW_OWN_REPORTS,
        Permission.VIEW_ALL_REPORTS,
        Permission.ASSIGN_REPORT,
        Permission.DELETE_REPORT,
        Permission.EXPORT_REPORTS,
        Permission.VIEW_ANALYTICS,
        Permission.VIEW_WORKERS,
    }),
}


class User(CamelModel):
    """Public view of an account."""

    id: str
    name: str
    email: str
    phone: str
    role: Role

    @property
    def permissions(self) -> frozenset[Permission]:
        return ROLE_PERMISSIONS[self.role]

    def can(self, permission: Permission) -> bool:
        """Check whether this user's role grants ``permission``."""
        return permission in self.permissions

    def has_role(self, role: Role) -> bool:
        return self.role == role


class UserAccount(User):
    """Stored account, including credentials."""

    password_hash: str = Field(..., exclude=True, repr=False)
    created_at: datetime = Field(default_factory=utcnow)

    def public(self) -> User:
        return User(id=self.id, name=self.name, email=self.email, phone=self.phone, role=self.role)


class RegisterRequest(CamelModel):
    """Self-registration payload."""

    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str
    role: Role = Role.CITIZEN
    zone: Zone | None = Field(default=None, description="Required for worker accounts")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return clean_phone(value)

    @model_validator(mode="after")
    def worker_needs_zone(self) -> "RegisterRequest":
        if self.role == Role.WORKER and self.zone is None:
            raise ValueError("Zone is required for worker accounts")
        return self


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class ProfileUpdate(CamelModel):
    """Fields an account holder may change; omitted fields stay as they are."""

    name: str | None = Field(default=None, max_length=50)
    phone: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Name cannot be blank")
        return value

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        return None if value is None else clean_phone(value)

    @property
    def is_empty(self) -> bool:
        return self.name is None and self.phone is None


class PasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class AuthResult(CamelModel):
    """Token plus the account it was issued for."""

    token: str
    user: User
