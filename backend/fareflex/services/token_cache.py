"""OAuth2 client-credentials token cache for the Amadeus API."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from fareflex.services.errors import AuthError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/security/oauth2/token"
DEFAULT_EXPIRES_IN = 1500


@dataclass
class Credential:
    token: str
    expires_at: float


class TokenCache:
    """
    Holds one bearer credential for the process and refreshes it on expiry.

    The cached token is reused until it is within `skew_seconds` of expiring.
    Refreshes are single-flight: concurrent callers that find the token stale
    wait for one refresh instead of each hitting the token endpoint.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        *,
        skew_seconds: float = 30,
        clock: Callable[[], float] = time.time,
    ):
        self._http = http
        self._client_id = client_id
        self._client_secret = client_secret
        self._skew = skew_seconds
        self._clock = clock
        self._credential: Credential | None = None
        self._refresh_lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        cred = self._credential
        return cred is not None and cred.expires_at - self._skew > self._clock()

    async def get_token(self) -> str:
        if self._is_fresh():
            return self._credential.token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            if not self._is_fresh():
                self._credential = await self._fetch()
            return self._credential.token

    def invalidate(self) -> None:
        self._credential = None

    async def _fetch(self) -> Credential:
        if not self._client_id or not self._client_secret:
            raise AuthError("Amadeus client id/secret are not configured")

        try:
            resp = await self._http.post(
                TOKEN_PATH,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Amadeus token request failed: {e!r}")
            raise AuthError(f"Token endpoint unreachable: {e}") from e

        if resp.status_code >= 400:
            logger.error(f"Amadeus auth failed: {resp.status_code} {resp.text[:500]}")
            raise AuthError(f"Amadeus auth failed: {resp.status_code} {resp.text[:200]}")

        try:
            data = resp.json()
            token = data["access_token"]
            expires_in = float(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError("Token response did not contain a usable access_token/expires_in") from e

        logger.info("Amadeus token refreshed")
        return Credential(token=token, expires_at=self._clock() + expires_in)
