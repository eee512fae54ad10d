from pydantic import BaseModel, EmailStr, Field, field_validator

from typing import Any, Dict, Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class GoogleAuthRequest(BaseModel):
    token: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refreshToken: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    refreshToken: Optional[str] = None


class ApiResponse(BaseModel):
    """Envelope shared by every endpoint."""
    success: bool = True
    message: str
    data: Optional[Dict[str, Any]] = None
