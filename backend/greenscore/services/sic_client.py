"""
sic_client.py

Purpose:
  Thin authenticated client for the Sustainability Insight Center (SIC) API.

Endpoints:
  - **GET /usage-by-entity**: aggregate cost / CO2e / kWh per matched entity.
  - **GET /usage-series**: the same metrics bucketed by `interval`.

Contract:
  - One GET per call: no retries, no backoff, full body buffered.
  - `Authorization: Bearer <token>` from the shared `TokenManager`.
  - Any non-200 is a `TelemetryFetchError` carrying status + body text.
  - `timeout` (seconds) bounds both the token exchange and the GET; a
    spent budget fails before any I/O with `DeadlineExceededError`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from greenscore.errors import DeadlineExceededError, TelemetryFetchError
from greenscore.models.sic_response import UsageByEntityResponse, UsageSeriesResponse
from greenscore.services.sic_params import Params
from greenscore.services.token_manager import TokenConfig, TokenManager

logger = logging.getLogger(__name__)

API_BASE_PATH = "/sustainability-insight-ctr/v1beta1"
USAGE_BY_ENTITY = "usage-by-entity"
USAGE_SERIES = "usage-series"

R = TypeVar("R", bound=BaseModel)


@dataclass(frozen=True)
class SicClientConfig:
    hostname: str
    token: TokenConfig
    scheme: str = "https"
    default_timeout_s: float = 10.0


class SicClient:
    def __init__(
        self,
        config: SicClientConfig,
        http_client: Optional[httpx.Client] = None,
        token_manager: Optional[TokenManager] = None,
    ):
        self.config = config
        self._http = http_client or httpx.Client(timeout=config.default_timeout_s)
        self._owns_http = http_client is None
        self.token_manager = token_manager or TokenManager(config.token, http_client=self._http)

    @property
    def base_url(self) -> str:
        return f"{self.config.scheme}://{self.config.hostname}{API_BASE_PATH}"

    # -----------------------------
    # Public API
    # -----------------------------
    def get_usage_by_entity(
        self,
        start_time: str,
        end_time: str,
        params: Optional[Params] = None,
        timeout: Optional[float] = None,
    ) -> UsageByEntityResponse:
        query = [("start-time", start_time), ("end-time", end_time)]
        return self._get(USAGE_BY_ENTITY, query, params, UsageByEntityResponse, timeout)

    def get_usage_series(
        self,
        start_time: str,
        end_time: str,
        interval: str,
        params: Optional[Params] = None,
        timeout: Optional[float] = None,
    ) -> UsageSeriesResponse:
        query = [("start-time", start_time), ("end-time", end_time), ("interval", interval)]
        return self._get(USAGE_SERIES, query, params, UsageSeriesResponse, timeout)

    # -----------------------------
    # Internals
    # -----------------------------
    def _get(
        self,
        operation: str,
        query: List[Tuple[str, str]],
        params: Optional[Params],
        response_model: Type[R],
        timeout: Optional[float],
    ) -> R:
        if timeout is not None and timeout <= 0:
            raise DeadlineExceededError(operation, "scheduling cycle deadline exceeded before request")

        if params is not None:
            query = query + params.to_query_params()

        # TokenError is already a TelemetryFetchError, let it through untouched
        token = self.token_manager.get_token(timeout=timeout)

        url = f"{self.base_url}/{operation}"
        kwargs = {} if timeout is None else {"timeout": timeout}
        try:
            resp = self._http.get(
                url,
                params=query,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                **kwargs,
            )
        except httpx.TimeoutException as e:
            raise DeadlineExceededError(operation, f"request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TelemetryFetchError(operation, f"API request failed: {e}") from e

        if resp.status_code != 200:
            logger.debug("SIC %s returned %d: %s", operation, resp.status_code, resp.text)
            raise TelemetryFetchError(
                operation,
                f"API returned status {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            return response_model.model_validate_json(resp.content)
        except ValidationError as e:
            raise TelemetryFetchError(
                operation, f"failed to unmarshal response: {e}", status_code=200, body=resp.text
            ) from e

    def close(self) -> None:
        self.token_manager.close()
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "SicClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
