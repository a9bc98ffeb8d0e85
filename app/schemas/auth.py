"""Schemas related to OAuth flows."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by Yandex OAuth.")
    state: str = Field(..., description="Opaque state token issued when starting OAuth.")


class ConnectionStatus(BaseModel):
    """Whether a usable Yandex credential is available."""

    connected: bool
    expires_at: Optional[datetime] = None
    subject_id: Optional[str] = None
    token_scope: Optional[Literal["shared", "user"]] = None


__all__ = ["ConnectionStatus", "OAuthCallbackPayload"]
