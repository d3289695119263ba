from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict
from typing import Optional


class HealthResponse(BaseModel):
    status: str = "ok"
    app: str
    env: str


# --- Auth & users ---
class LoginRequest(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = "user"


class AddUserRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = Field(default=None, description="Free-form role label; defaults to 'user'")


class UpdatePasswordRequest(BaseModel):
    userId: int
    newPassword: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    identifier: str = Field(description="Username or e-mail address")


class ResetPasswordRequest(BaseModel):
    token: str
    password: str = Field(min_length=1)


class SuccessResponse(BaseModel):
    success: bool = True


class MessageResponse(BaseModel):
    message: str


# --- Plot records ---
class SearchRequest(BaseModel):
    # Plot and sector numbers may arrive as JSON numbers
    model_config = ConfigDict(coerce_numbers_to_str=True)

    node: Optional[str] = None
    sector: Optional[str] = None
    block: Optional[str] = None
    plot: Optional[str] = None


class SummaryRowOut(BaseModel):
    category: str
    area: float
    additionalCount: float
    percent: float
