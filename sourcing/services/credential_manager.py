# sourcing/services/credential_manager.py

"""OAuth credential lifecycle for the source platform's API.

State machine::

    UNAUTHORIZED ──exchange──▶ AUTHORIZED(valid)
    AUTHORIZED(valid) ──time──▶ AUTHORIZED(expired)
    AUTHORIZED(expired) ──refresh──▶ AUTHORIZED(valid)
    any ──revoke_all──▶ UNAUTHORIZED

Concurrent callers that all see an expired token may each refresh;
the last save wins.  The platform accepts repeated refreshes within
its rotation window, so no lock is held across the network call.
"""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlencode

from curl_cffi import requests as curl_requests

from sourcing.config.settings import Settings
from sourcing.errors import (
    AuthExchangeError,
    ConfigurationError,
    CredentialError,
    NoCredentialError,
    RefreshUnavailableError,
    TransportError,
)
from sourcing.models.credential import Credential
from sourcing.storage.credential_store import CredentialRepository

logger = logging.getLogger("product_sourcing.oauth")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialManager:
    """Keeps a non-expired bearer token available to the API client."""

    def __init__(
        self,
        repository: CredentialRepository,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.settings = settings or Settings()
        missing = [
            name
            for name, value in (
                ("ALIEXPRESS_APP_KEY", self.settings.APP_KEY),
                ("ALIEXPRESS_APP_SECRET", self.settings.APP_SECRET),
                ("ALIEXPRESS_REDIRECT_URI", self.settings.REDIRECT_URI),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)

        self.repository = repository
        self._clock = clock
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    # ── Authorisation ────────────────────────────────────

    def authorize(
        self,
        redirect_target: str | None = None,
        state: str | None = None,
    ) -> str:
        """Build the consent URL the resource owner must be sent to."""
        params = {
            "response_type": "code",
            "client_id": self.settings.APP_KEY,
            "redirect_uri": redirect_target or self.settings.REDIRECT_URI,
            "force_auth": "true",
            "state": state or secrets.token_hex(16),
        }
        return f"{self.settings.AUTHORIZE_URL}?{urlencode(params)}"

    def exchange(self, code: str) -> Credential:
        """Trade a one-shot authorisation code for a stored token pair."""
        logger.info("Exchanging authorisation code for a token pair")
        payload = self._request_token({
            "grant_type": "authorization_code",
            "code": code,
        })
        credential = self._build_credential(payload)
        self.repository.save(credential)
        return credential

    def refresh(
        self, refresh_token: str, owner_id: str | None = None,
    ) -> Credential:
        """Trade a refresh token for a new, stored token pair."""
        logger.info("Refreshing expired access token")
        payload = self._request_token({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        credential = self._build_credential(
            payload,
            previous_refresh_token=refresh_token,
            previous_owner_id=owner_id,
        )
        self.repository.save(credential)
        return credential

    # ── Token access ─────────────────────────────────────

    def get_valid_token(self) -> str:
        """Return a live access token, refreshing it first when expired."""
        stored = self.repository.load_latest()
        if stored is None:
            raise NoCredentialError(
                "No credential stored; authorise the application first"
            )

        if stored.is_valid(self._clock()):
            return stored.access_token

        if not stored.refresh_token:
            raise RefreshUnavailableError(
                "Stored credential expired and has no refresh token; "
                "re-authorise the application"
            )

        refreshed = self.refresh(stored.refresh_token, stored.owner_id)
        return refreshed.access_token

    def has_valid_token(self) -> bool:
        """Return True when :meth:`get_valid_token` would succeed."""
        try:
            self.get_valid_token()
        except (CredentialError, TransportError) as exc:
            logger.info("No usable credential: %s", exc)
            return False
        return True

    def revoke_all(self) -> int:
        """Forget every stored credential (re-authorisation flows)."""
        removed = self.repository.revoke_all()
        logger.info("Revoked all credentials (%d removed)", removed)
        return removed

    def close(self) -> None:
        """Close the HTTP session and the backing store."""
        self.session.close()
        self.repository.close()

    # ── Private helpers ──────────────────────────────────

    def _request_token(self, grant: dict[str, str]) -> dict[str, Any]:
        """POST a grant to the token endpoint and return the JSON body."""
        form = {
            "app_key": self.settings.APP_KEY,
            "app_secret": self.settings.APP_SECRET,
            **grant,
        }
        try:
            resp = self.session.post(
                self.settings.TOKEN_URL,
                data=form,
                headers={
                    "Content-Type": (
                        "application/x-www-form-urlencoded;charset=utf-8"
                    ),
                },
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            raise TransportError(
                f"Token endpoint unreachable: {exc}"
            ) from exc

        if not 200 <= resp.status_code < 300:
            logger.error(
                "Token endpoint returned HTTP %d", resp.status_code,
            )
            raise AuthExchangeError(
                f"HTTP {resp.status_code}: {resp.text[:200]}"
            )

        try:
            data: dict[str, Any] = resp.json()
        except ValueError as exc:
            raise AuthExchangeError(
                "Token endpoint returned a non-JSON body"
            ) from exc

        error = data.get("error_response")
        if error:
            logger.error("Token endpoint application error: %s", error)
            raise AuthExchangeError(
                error.get("msg") or "Token exchange rejected"
            )
        if data.get("error"):
            raise AuthExchangeError(
                data.get("error_description") or str(data["error"])
            )
        if not data.get("access_token"):
            raise AuthExchangeError("No access_token in token response")
        return data

    def _build_credential(
        self,
        data: dict[str, Any],
        previous_refresh_token: str | None = None,
        previous_owner_id: str | None = None,
    ) -> Credential:
        """Turn a token response into a :class:`Credential`."""
        now = self._clock()
        try:
            expires_in = int(
                data.get("expires_in") or self.settings.DEFAULT_TOKEN_TTL
            )
            refresh_expires_in = int(
                data.get("refresh_expires_in")
                or self.settings.DEFAULT_REFRESH_TTL
            )
        except (TypeError, ValueError) as exc:
            logger.error("Unparseable expiry in token response: %s", exc)
            raise AuthExchangeError(
                f"Invalid expiry in token response: {exc}"
            ) from exc
        owner = data.get("user_id") or data.get("seller_id")
        return Credential(
            access_token=str(data["access_token"]),
            refresh_token=(
                data.get("refresh_token") or previous_refresh_token
            ),
            token_type=data.get("token_type") or "Bearer",
            expires_at=now + timedelta(seconds=expires_in),
            owner_id=str(owner) if owner else previous_owner_id,
            refresh_expires_at=now + timedelta(seconds=refresh_expires_in),
        )
