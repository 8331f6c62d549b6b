"""Pydantic schemas for admin authentication routes."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AdminUserPublic(BaseModel):
    id: int
    osu_id: int = Field(..., description="osu! user id")
    username: str
    last_login_at: Optional[datetime] = None


class AdminSessionResponse(BaseModel):
    user: AdminUserPublic


class LoginPageResponse(BaseModel):
    login_url: str
    error: Optional[str] = Field(default=None, description="Coarse failure category from the last attempt")
    message: Optional[str] = None
    oauth_configured: bool = True
