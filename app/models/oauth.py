"""
Domain models for OAuth credential persistence.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Credential(BaseModel):
    """One Yandex OAuth credential as kept in the token store."""

    subject_id: str = Field(..., description="Identifier of the user who connected the account.")
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    scope: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    version: int = Field(0, description="Incremented on every write; guards refresh races.")

    def is_expired(
        self, now: Optional[datetime] = None, leeway: timedelta = timedelta(0)
    ) -> bool:
        """Return True when the access token must be considered stale.

        A credential without a known expiry is treated as expired.
        """
        if self.expires_at is None:
            return True
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        current = now or _utcnow()
        return expires_at <= current + leeway


__all__ = ["Credential"]
