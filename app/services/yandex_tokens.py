"""
Persistence and refresh lifecycle of Yandex OAuth credentials.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Literal, Optional

from app.clients.sqlite_store import SQLiteStore
from app.clients.yandex_oauth import (
    OAuthTokenNotFoundError,
    TokenPayload,
    YandexOAuthClient,
)
from app.models.oauth import Credential
from app.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

_SORT_KEY = "oauth#yandex"

TokenScope = Literal["shared", "user"]


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TokenStore:
    """Stores one encrypted credential record per subject.

    With ``scope="shared"`` every caller gets the most recently updated
    credential, whoever connected it. With ``scope="user"`` callers only see
    their own record.
    """

    def __init__(
        self,
        store: SQLiteStore,
        cipher: TokenCipherService,
        *,
        scope: TokenScope = "shared",
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._scope = scope

    @property
    def scope(self) -> TokenScope:
        return self._scope

    @staticmethod
    def _partition(subject_id: str) -> str:
        return f"user#{subject_id}"

    def _to_record(self, credential: Credential) -> Dict[str, Any]:
        return {
            "pk": self._partition(credential.subject_id),
            "sk": _SORT_KEY,
            "subject_id": credential.subject_id,
            "provider": "yandex",
            "access_token_encrypted": self._cipher.encrypt(credential.access_token),
            "refresh_token_encrypted": self._cipher.encrypt_optional(credential.refresh_token),
            "token_type": credential.token_type,
            "scope": credential.scope,
            "expires_at": credential.expires_at.isoformat() if credential.expires_at else None,
            "created_at": credential.created_at.isoformat(),
            "updated_at": credential.updated_at.isoformat(),
            "version": credential.version,
        }

    def _from_record(self, record: Dict[str, Any]) -> Credential:
        encrypted_access_token = record.get("access_token_encrypted")
        if not encrypted_access_token:
            raise OAuthTokenNotFoundError("Stored Yandex credential has no access token.")
        return Credential(
            subject_id=record["subject_id"],
            access_token=self._cipher.decrypt(encrypted_access_token),
            refresh_token=self._cipher.decrypt_optional(record.get("refresh_token_encrypted")),
            token_type=record.get("token_type") or "bearer",
            scope=record.get("scope"),
            expires_at=_parse_ts(record.get("expires_at")),
            created_at=_parse_ts(record.get("created_at")) or datetime.now(timezone.utc),
            updated_at=_parse_ts(record.get("updated_at")) or datetime.now(timezone.utc),
            version=int(record.get("version") or 0),
        )

    def get(self, subject_id: str) -> Optional[Credential]:
        record = self._store.get_item(
            partition_key=self._partition(subject_id), sort_key=_SORT_KEY
        )
        return self._from_record(record) if record else None

    def current(self, subject_id: Optional[str] = None) -> Credential:
        """Return the credential callers should use right now."""
        if self._scope == "user":
            if not subject_id:
                raise OAuthTokenNotFoundError(
                    "A subject is required when credentials are scoped per user."
                )
            credential = self.get(subject_id)
            if credential is None:
                raise OAuthTokenNotFoundError(f"No Yandex credential stored for {subject_id}.")
            return credential

        records = self._store.list_items_by_sort_key(sort_key=_SORT_KEY)
        if not records:
            raise OAuthTokenNotFoundError("Yandex.Disk is not connected.")
        latest = max(
            records,
            key=lambda item: _parse_ts(item.get("updated_at"))
            or datetime.min.replace(tzinfo=timezone.utc),
        )
        return self._from_record(latest)

    def save(self, credential: Credential) -> Credential:
        """Upsert ``credential``; the last writer wins."""
        existing = self._store.get_item(
            partition_key=self._partition(credential.subject_id), sort_key=_SORT_KEY
        )
        update: Dict[str, Any] = {
            "updated_at": datetime.now(timezone.utc),
            "version": int(existing.get("version") or 0) + 1 if existing else 1,
        }
        if existing and existing.get("created_at"):
            update["created_at"] = _parse_ts(existing["created_at"])
        stored = credential.model_copy(update=update)
        self._store.put_item(self._to_record(stored))
        return stored

    def compare_and_save(
        self, credential: Credential, *, expected_version: int
    ) -> Optional[Credential]:
        """Persist only if nobody wrote the record since ``expected_version``.

        Returns the stored credential, or None when another writer won.
        """
        stored = credential.model_copy(
            update={
                "updated_at": datetime.now(timezone.utc),
                "version": expected_version + 1,
            }
        )
        written = self._store.compare_and_put(
            self._to_record(stored), field="version", expected=expected_version
        )
        return stored if written else None


class TokenRefresher:
    """Exchanges refresh tokens for new access tokens when credentials expire."""

    def __init__(
        self,
        store: TokenStore,
        oauth_client: YandexOAuthClient,
        *,
        leeway: timedelta = timedelta(0),
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._leeway = leeway

    async def ensure_valid(self, credential: Credential) -> Credential:
        """Return a usable credential, refreshing it at most once.

        Raises ``OAuthTokenRefreshError`` when the token endpoint rejects the
        refresh; nothing is retried here.
        """
        if not credential.is_expired(leeway=self._leeway):
            return credential
        if not credential.refresh_token:
            logger.info(
                "Yandex credential for %s is expired but has no refresh token",
                credential.subject_id,
            )
            return credential

        refreshed_at = datetime.now(timezone.utc)
        payload = await self._oauth.refresh_token(credential.refresh_token)
        refreshed = credential.model_copy(update=self._refreshed_fields(credential, payload, refreshed_at))

        stored = self._store.compare_and_save(refreshed, expected_version=credential.version)
        if stored is not None:
            logger.info(
                "Refreshed Yandex access token for %s (expires %s)",
                stored.subject_id,
                stored.expires_at,
            )
            return stored

        latest = self._store.get(credential.subject_id)
        if latest is None:
            logger.info("No stored record for %s; saving refreshed credential", credential.subject_id)
            return self._store.save(refreshed)

        logger.warning(
            "Credential for %s changed during refresh; using the stored version",
            credential.subject_id,
        )
        return latest

    @staticmethod
    def _refreshed_fields(
        credential: Credential, payload: TokenPayload, refreshed_at: datetime
    ) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "access_token": payload.access_token,
            "token_type": payload.token_type or credential.token_type,
        }
        if payload.expires_in:
            fields["expires_at"] = refreshed_at + timedelta(seconds=payload.expires_in)
        if payload.refresh_token:
            fields["refresh_token"] = payload.refresh_token
        return fields


class YandexTokenService:
    """Single entry point for obtaining a valid access token."""

    def __init__(self, store: TokenStore, refresher: TokenRefresher) -> None:
        self._store = store
        self._refresher = refresher

    async def get_credential(self, subject_id: Optional[str] = None) -> Credential:
        credential = self._store.current(subject_id)
        return await self._refresher.ensure_valid(credential)

    def connect(self, subject_id: str, payload: TokenPayload) -> Credential:
        """Persist the result of a successful authorization-code exchange."""
        now = datetime.now(timezone.utc)
        existing = self._store.get(subject_id)
        credential = Credential(
            subject_id=subject_id,
            access_token=payload.access_token,
            refresh_token=payload.refresh_token
            or (existing.refresh_token if existing else None),
            token_type=payload.token_type or "bearer",
            scope=payload.scope,
            expires_at=now + timedelta(seconds=payload.expires_in) if payload.expires_in else None,
        )
        return self._store.save(credential)


__all__ = ["TokenRefresher", "TokenStore", "YandexTokenService"]
