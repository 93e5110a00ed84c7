"""Async HTTP access to the auto-data and recommendation endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..schemas import (
    AutoDataSnapshot,
    Coordinate,
    Recommendation,
    RecommendationRequest,
    RecommendationResponse,
)


logger = logging.getLogger(__name__)

AUTO_DATA_PATH = "/api/auto-data"
RECOMMEND_PATH = "/api/recommend"


class BackendRequestError(Exception):
    """Connection failure, non-2xx status, or a body that does not parse.

    All three causes are collapsed into one category; the underlying exception
    is kept as ``__cause__``.
    """

    def __init__(self, endpoint: str, message: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(f"{endpoint}: {message}")


def build_headers() -> Dict[str, str]:
    return {"Accept": "application/json"}


class BackendClient:
    """Thin wrapper over ``httpx.AsyncClient`` that returns parsed models."""

    def __init__(
        self,
        base_url: str = "",
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers=build_headers(),
            trust_env=False,
        )

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self.url_for(path)
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise BackendRequestError(
                path,
                f"unexpected status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise BackendRequestError(path, f"request failed: {exc}") from exc
        except ValueError as exc:
            raise BackendRequestError(path, f"invalid JSON body: {exc}") from exc

    async def fetch_auto_data(self, coordinate: Coordinate) -> AutoDataSnapshot:
        params = {"lat": coordinate.latitude, "lon": coordinate.longitude}
        payload = await self._request_json("GET", AUTO_DATA_PATH, params=params)
        if not isinstance(payload, dict):
            raise BackendRequestError(AUTO_DATA_PATH, "response is not an object")
        try:
            snapshot = AutoDataSnapshot.model_validate(payload)
        except ValidationError as exc:
            raise BackendRequestError(AUTO_DATA_PATH, f"schema mismatch: {exc}") from exc
        logger.debug("auto-data sections: %s", snapshot.present_sections())
        return snapshot

    async def fetch_recommendations(
        self, request: RecommendationRequest
    ) -> List[Recommendation]:
        body = request.model_dump(mode="json")
        payload = await self._request_json("POST", RECOMMEND_PATH, json=body)
        if not isinstance(payload, dict):
            raise BackendRequestError(RECOMMEND_PATH, "response is not an object")
        try:
            parsed = RecommendationResponse.model_validate(payload)
        except ValidationError as exc:
            raise BackendRequestError(RECOMMEND_PATH, f"schema mismatch: {exc}") from exc
        return list(parsed.recommendations)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
