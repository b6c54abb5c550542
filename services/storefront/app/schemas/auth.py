"""
Storefront — Auth schemas
"""
from pydantic import BaseModel, Field

from app.schemas.kantin import KantinPublic


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255, examples=["kantin@unpas.ac.id"])
    password: str = Field(..., min_length=1, max_length=128)


class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    role: str
    subject: str
    kantin: KantinPublic | None = None


class SessionResponse(BaseModel):
    role: str
    subject: str
    name: str = ""
    kantin_id: str | None = None
    expires_in: int
