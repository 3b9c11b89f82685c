"""
Login With Amazon access-token lifecycle.

The TokenProvider owns the only copy of the bearer credential. Every caller
that needs a token receives the provider itself and calls ``ensure_token``;
there is no module-level token cache.
"""

import time
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from core.config import settings
from core.exceptions import AuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """Bearer token plus its absolute expiry (epoch milliseconds)."""

    token_value: str
    expires_at_epoch_millis: int

    def is_usable(self, now_millis: int, margin_millis: int = 0) -> bool:
        return now_millis < self.expires_at_epoch_millis - margin_millis


class TokenProvider:
    """
    Obtain and cache an access token via the refresh-token grant.

    A cached credential is returned until it expires; on a miss exactly one
    token exchange is performed. No retry is applied here, transient failures
    surface to the caller as AuthError.

    Attributes:
        token_url: Token endpoint
        refresh_margin_seconds: Treat the token as expired this many seconds early
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        token_url: Optional[str] = None,
        refresh_margin_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time
    ):
        self.client = client
        self.client_id = client_id or settings.LWA_CLIENT_ID
        self.client_secret = client_secret or settings.LWA_CLIENT_SECRET
        self.refresh_token = refresh_token or settings.LWA_REFRESH_TOKEN
        self.token_url = token_url or settings.LWA_TOKEN_URL
        self.refresh_margin_seconds = (
            settings.TOKEN_REFRESH_MARGIN_SECONDS
            if refresh_margin_seconds is None
            else refresh_margin_seconds
        )
        self._clock = clock
        self._credential: Optional[Credential] = None

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def _now_millis(self) -> int:
        return int(self._clock() * 1000)

    def invalidate(self):
        """Drop the cached credential so the next call refreshes."""
        self._credential = None

    async def ensure_token(self) -> Credential:
        """
        Return a usable credential, refreshing it if absent or expired.

        Raises:
            AuthError: If the token exchange fails for any reason
        """
        cached = self._credential
        if cached is not None and cached.is_usable(
            self._now_millis(), self.refresh_margin_seconds * 1000
        ):
            return cached

        credential = await self._exchange_refresh_token()
        # Replaced wholesale; concurrent refreshes are last-writer-wins
        self._credential = credential
        return credential

    async def _exchange_refresh_token(self) -> Credential:
        if not (self.client_id and self.client_secret and self.refresh_token):
            raise AuthError(
                "Login With Amazon credentials are not configured",
                context={"token_url": self.token_url}
            )

        logger.info("Requesting new access token")

        try:
            response = await self.client.post(
                self.token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self.refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                }
            )
        except httpx.HTTPError as e:
            raise AuthError(
                "Token exchange request failed",
                context={"token_url": self.token_url},
                original_exception=e
            )

        if not response.is_success:
            raise AuthError(
                f"Token exchange returned HTTP {response.status_code}",
                context={
                    "token_url": self.token_url,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]
                }
            )

        try:
            payload = response.json()
            access_token = payload["access_token"]
            expires_in = int(payload["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(
                "Malformed token exchange response",
                context={"token_url": self.token_url, "response_body": response.text[:500]},
                original_exception=e
            )

        if not isinstance(access_token, str) or not access_token:
            raise AuthError(
                "Token exchange response has no access token",
                context={"token_url": self.token_url}
            )

        expires_at = self._now_millis() + expires_in * 1000
        logger.info(f"Access token refreshed, valid for {expires_in} seconds")
        return Credential(token_value=access_token, expires_at_epoch_millis=expires_at)
