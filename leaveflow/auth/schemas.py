"""Auth Pydantic schemas for request / response validation."""


import uuid
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
)

from leaveflow.common.constants import PASSWORD_MIN_LENGTH, UserRole
from leaveflow.common.responses import JsonDecimal


# ── Requests ────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    password_confirmation: str
    role: UserRole = UserRole.general

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("The password confirmation does not match.")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# ── Responses ───────────────────────────────────────────────────────

class UserInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    annual_leave_entitlement: JsonDecimal


class TokenResponse(BaseModel):
    user: UserInfo
    token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
