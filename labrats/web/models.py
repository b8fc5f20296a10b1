from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from labrats.dashboard.modal import CloseReason


class LoginRequest(BaseModel):
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=4096)


class SignupRequest(BaseModel):
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=4096)
    confirm_password: Optional[str] = Field(default=None, max_length=4096)


class AuthResponse(BaseModel):
    ok: bool
    alert: Optional[str] = None
    redirect: Optional[str] = None
    email: Optional[str] = None


class LabSelectRequest(BaseModel):
    name: str = Field(min_length=1, max_length=512)


class ModalCloseRequest(BaseModel):
    reason: CloseReason = CloseReason.CLOSE_BUTTON


class CompanionEndedRequest(BaseModel):
    play_id: str = Field(min_length=1, max_length=64)
    failed: bool = False
    reason: str = Field(default="", max_length=500)


class CompanionEndedResponse(BaseModel):
    applied: bool
    bouncing: bool
