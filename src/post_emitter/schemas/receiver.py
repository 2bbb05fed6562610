"""Receiver-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ReceiverCreate(BaseModel):
    """Schema for registering a new receiver."""

    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=500)
    auth_token: str | None = Field(None, description="Plaintext bearer token")
    status: Literal["active", "inactive"] = "active"


class ReceiverUpdate(BaseModel):
    """Schema for editing a receiver.

    An empty or missing ``auth_token`` keeps the token already stored.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    url: str | None = Field(None, min_length=1, max_length=500)
    auth_token: str | None = None
    status: Literal["active", "inactive"] | None = None


class ReceiverResponse(BaseModel):
    """Receiver information returned by the API; the token is never echoed."""

    id: int
    name: str
    url: str
    status: str
    has_token: bool
    created_at: datetime
    updated_at: datetime
