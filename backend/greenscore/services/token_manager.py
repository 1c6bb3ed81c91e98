"""
token_manager.py

Purpose:
  Owns the single bearer token used against the SIC API and refreshes it via
  an OAuth2 client-credentials exchange.

States:
  - **Valid**: token set and `now < expiry`.
  - **Expired/Unset**: no token yet (expiry at the epoch) or past expiry.

Concurrency:
  `get_token()` holds a lock across check-and-refresh, so callers that all
  observe an expired token produce exactly one exchange; the rest wait and
  reuse the fresh token. A failed exchange leaves the previous state intact.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
from pydantic import BaseModel, ValidationError

from greenscore.errors import TokenError

logger = logging.getLogger(__name__)

GRANT_TYPE = "client_credentials"
CONTENT_TYPE = "application/x-www-form-urlencoded"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds


@dataclass(frozen=True)
class TokenConfig:
    url: str
    client_id: str
    client_secret: str

    def __repr__(self) -> str:
        return f"TokenConfig(url={self.url!r}, client_id={self.client_id!r}, client_secret='***')"


@dataclass
class TokenInfo:
    token: str = ""
    expiry: datetime = EPOCH


class TokenManager:
    def __init__(
        self,
        config: TokenConfig,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self._http = http_client or httpx.Client()
        self._owns_http = http_client is None
        self._clock = clock
        self._info = TokenInfo()
        self._lock = threading.Lock()
        self.refresh_count = 0

    @property
    def expiry(self) -> datetime:
        return self._info.expiry

    def is_expired(self) -> bool:
        return not self._info.token or self._clock() >= self._info.expiry

    def get_token(self, timeout: Optional[float] = None) -> str:
        """Returns a valid token, refreshing synchronously when expired."""
        with self._lock:
            if self.is_expired():
                self._generate_token(timeout)
            return self._info.token

    def refresh_token(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            self._generate_token(timeout)

    def _generate_token(self, timeout: Optional[float]) -> None:
        data = {
            "grant_type": GRANT_TYPE,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        kwargs = {} if timeout is None else {"timeout": timeout}
        try:
            resp = self._http.post(
                self.config.url,
                data=data,
                headers={"Content-Type": CONTENT_TYPE},
                **kwargs,
            )
        except httpx.HTTPError as e:
            logger.warning("Token exchange against %s failed: %s", self.config.url, e)
            raise TokenError(f"request failed: {e}") from e

        if resp.status_code != 200:
            logger.warning("Token exchange returned status %d", resp.status_code)
            raise TokenError(
                f"failed to generate token: status {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            token_resp = TokenResponse.model_validate_json(resp.content)
        except ValidationError as e:
            raise TokenError(f"failed to decode token response: {e}", status_code=200, body=resp.text) from e

        try:
            expiry = self._clock() + timedelta(seconds=token_resp.expires_in)
        except (OverflowError, ValueError) as e:
            raise TokenError(
                f"token expires_in out of range: {token_resp.expires_in}", status_code=200, body=resp.text
            ) from e

        self._info.token = token_resp.access_token
        self._info.expiry = expiry
        self.refresh_count += 1
        logger.info("Refreshed access token, expires at %s", self._info.expiry.isoformat())

    def close(self) -> None:
        if self._owns_http:
            self._http.close()
