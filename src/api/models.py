"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.domain.ports import Account, AccountKind


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    name: str = Field(..., min_length=1, max_length=50, description="Display name")
    # Plain string: the registration pipeline reports its own rejection reasons
    email: str = Field(..., max_length=254, description="Gmail or ProtonMail address")
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")
    account_kind: AccountKind = Field(..., description="freelancer or employer")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        """Trim surrounding whitespace so a blank name fails min_length."""
        return value.strip() if isinstance(value, str) else value


class LoginRequest(BaseModel):
    """Request model for login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class VerifyCodeRequest(BaseModel):
    """Request model for verification by emailed code."""

    email: EmailStr
    code: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^\d{6}$",
        description="6-digit verification code",
    )


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=8, description="New password (min 8 characters)")


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, description="New password (min 8 characters)")


class AccountResponse(BaseModel):
    """Public view of an account."""

    id: UUID
    name: str
    email: str
    account_kind: AccountKind
    is_verified: bool

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            account_kind=account.kind,
            is_verified=account.is_verified,
        )


class SessionResponse(BaseModel):
    """Response carrying a session token and the account it belongs to."""

    message: str
    token: str
    user: AccountResponse


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
