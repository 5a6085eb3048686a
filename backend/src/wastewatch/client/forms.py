"""Client-side form models.

Validation here runs before any request is sent; a failing form raises
``pydantic.ValidationError`` and nothing reaches the network.
"""

from pydantic import EmailStr, Field, field_validator, model_validator

from ..models.base import CamelModel, Zone
from ..models.users import PHONE_PATTERN, RegisterRequest, Role


class RegistrationForm(CamelModel):
    """Sign-up form with password confirmation."""

    name: str = Field(..., max_length=50)
    email: EmailStr
    phone: str
    password: str
    confirm_password: str
    role: Role = Role.CITIZEN
    zone: Zone | None = None

    @field_validator("name", "phone", "password", "confirm_password", mode="before")
    @classmethod
    def required(cls, value, info):
        if value is None or (isinstance(value, str) and not value.strip()):
            label = info.field_name.replace("_", " ").capitalize()
            raise ValueError(f"{label} is required")
        return value

    @field_validator("name", "phone")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        if not PHONE_PATTERN.match(value):
            raise ValueError("Please enter a valid phone number")
        return value

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters")
        return value

    @model_validator(mode="after")
    def passwords_match(self) -> "RegistrationForm":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        if self.role == Role.WORKER and self.zone is None:
            raise ValueError("Zone is required for worker accounts")
        return self

    def to_request(self) -> RegisterRequest:
        return RegisterRequest(
            name=self.name,
            email=self.email,
            phone=self.phone,
            password=self.password,
            role=self.role,
            zone=self.zone,
        )
