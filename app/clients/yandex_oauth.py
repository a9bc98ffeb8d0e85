"""
Yandex OAuth utilities.

These helpers manage the authorization-code flow and the token refresh
lifecycle against ``oauth.yandex.com``.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, status

from app.core.config import YandexSettings
from app.utils.http import build_timeout, truncate_body

logger = logging.getLogger(__name__)


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        return json.loads(serialized)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""


class OAuthTokenRefreshError(OAuthTokenExchangeError):
    """Raised when a refresh token is rejected or the refresh call fails."""


class OAuthTokenNotFoundError(Exception):
    """Raised when no persisted Yandex credential is available."""


@dataclass(slots=True)
class TokenPayload:
    """Fields consumed from a token endpoint response."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "TokenPayload":
        expires_in = payload.get("expires_in")
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=int(expires_in) if expires_in else None,
            token_type=payload.get("token_type"),
            scope=payload.get("scope"),
        )


class YandexOAuthClient:
    """Build Yandex authorization URLs, exchange codes and refresh tokens."""

    def __init__(
        self,
        settings: YandexSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = build_timeout(
            connect=settings.connect_timeout_seconds,
            read=settings.read_timeout_seconds,
        )

    @property
    def token_url(self) -> str:
        return self._settings.token_url

    def build_authorization_url(self, state: str) -> str:
        """Construct the Yandex OAuth consent URL."""
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "scope": self._settings.scope,
            "force_confirm": "yes",
            "state": state,
        }
        return f"{self._settings.auth_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenPayload:
        """Exchange an authorization code for an access/refresh token pair."""
        response = await self._post_token_form(
            {"grant_type": "authorization_code", "code": code},
            error_cls=OAuthTokenExchangeError,
        )
        return self._parse(response, OAuthTokenExchangeError)

    async def refresh_token(self, refresh_token: str) -> TokenPayload:
        """Refresh the access token using a stored refresh token."""
        response = await self._post_token_form(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            error_cls=OAuthTokenRefreshError,
        )
        return self._parse(response, OAuthTokenRefreshError)

    async def _post_token_form(
        self, fields: Dict[str, str], *, error_cls: type[OAuthTokenExchangeError]
    ) -> httpx.Response:
        payload = {
            **fields,
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._settings.token_url, data=payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "Yandex token endpoint unreachable",
                extra={"grant_type": fields["grant_type"], "error": str(exc)},
            )
            raise error_cls(f"Token endpoint request failed: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            logger.warning(
                "Yandex token endpoint rejected %s grant with status %s",
                fields["grant_type"],
                response.status_code,
            )
            raise error_cls(truncate_body(response.text))
        return response

    @staticmethod
    def _parse(
        response: httpx.Response, error_cls: type[OAuthTokenExchangeError]
    ) -> TokenPayload:
        try:
            data = response.json()
        except ValueError as exc:
            raise error_cls("Token endpoint returned a non-JSON body.") from exc
        if not isinstance(data, dict) or not data.get("access_token"):
            raise error_cls("Incomplete token payload returned from Yandex.")
        try:
            return TokenPayload.from_response(data)
        except (TypeError, ValueError) as exc:
            raise error_cls("Malformed token payload returned from Yandex.") from exc


__all__ = [
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "OAuthTokenNotFoundError",
    "OAuthTokenRefreshError",
    "TokenPayload",
    "YandexOAuthClient",
]
