"""Schemas related to request authentication."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthenticatedUser(BaseModel):
    """Subset of the Supabase Auth user object the API relies on."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Supabase user identifier.")
    email: Optional[str] = Field(None, description="Primary email, when known.")
    role: Optional[str] = Field(None, description="Auth role claim (e.g. authenticated).")


__all__ = ["AuthenticatedUser"]
