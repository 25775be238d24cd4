from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import ProviderAuthError, ProviderUnavailable
from .base import ProviderBusinessRecord

logger = logging.getLogger(__name__)

MAPS_LIVE_ENDPOINT = "/serp/google/maps/live/advanced"
STATUS_OK = 20000
STATUS_NO_RESULTS = 40102


def build_keyword(category: str, city: str, state: str) -> str:
    return " ".join(part.strip() for part in (category, city, state) if part and part.strip())


class DataForSEOClient:
    """DataForSEO Google Maps SERP client (live/advanced endpoint).

    One request per query triple. There are no retries: every call is
    billed, and a failure simply degrades the caller to datastore-only
    results.
    """

    provider_name = "dataforseo"

    def __init__(
        self,
        login: str,
        password: str,
        *,
        base_url: str = "https://api.dataforseo.com/v3",
        location_code: int = 2840,
        language_code: str = "en",
        depth: int = 100,
        timeout_s: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not login or not password:
            raise ProviderAuthError("DataForSEO login and password are required")
        self.location_code = location_code
        self.language_code = language_code
        self.depth = depth
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout_s)
        self._auth = httpx.BasicAuth(login, password)

    @classmethod
    def from_settings(cls, config: Settings) -> "DataForSEOClient":
        return cls(
            config.dataforseo_login,
            config.dataforseo_password,
            base_url=config.dataforseo_base_url,
            location_code=config.dataforseo_location_code,
            language_code=config.dataforseo_language_code,
            depth=config.dataforseo_depth,
            timeout_s=config.provider_timeout_seconds,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _payload(self, keyword: str) -> list[dict[str, Any]]:
        return [
            {
                "keyword": keyword,
                "location_code": self.location_code,
                "language_code": self.language_code,
                "device": "desktop",
                "os": "windows",
                "depth": self.depth,
            }
        ]

    def _post(self, keyword: str) -> dict[str, Any]:
        try:
            response = self._client.post(MAPS_LIVE_ENDPOINT, json=self._payload(keyword), auth=self._auth)
        except httpx.TimeoutException as exc:
            raise ProviderUnavailable(f"DataForSEO request timed out for {keyword!r}") from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(f"DataForSEO request failed: {exc.__class__.__name__}") from exc

        if response.status_code in (401, 403):
            raise ProviderAuthError("DataForSEO rejected the configured credentials")
        if response.status_code >= 400:
            raise ProviderUnavailable(f"DataForSEO returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderUnavailable("DataForSEO returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise ProviderUnavailable("Unexpected DataForSEO response payload")
        return payload

    @staticmethod
    def _extract_items(payload: dict[str, Any]) -> list[Any]:
        if payload.get("status_code") != STATUS_OK:
            raise ProviderUnavailable(f"DataForSEO error: {payload.get('status_message') or payload.get('status_code')}")

        tasks = payload.get("tasks") or []
        if not tasks or not isinstance(tasks[0], dict):
            return []
        task = tasks[0]
        task_status = task.get("status_code")
        if task_status == STATUS_NO_RESULTS:
            return []
        if task_status != STATUS_OK:
            raise ProviderUnavailable(f"DataForSEO task error: {task.get('status_message') or task_status}")

        results = task.get("result") or []
        if not results or not isinstance(results[0], dict):
            return []
        items = results[0].get("items") or []
        return items if isinstance(items, list) else []

    def search(self, category: str, city: str, state: str) -> list[ProviderBusinessRecord]:
        keyword = build_keyword(category, city, state)
        logger.info("Fetching businesses from DataForSEO: keyword=%r", keyword)

        raw_items = self._extract_items(self._post(keyword))
        records: list[ProviderBusinessRecord] = []
        rejected = 0
        for item in raw_items:
            if not isinstance(item, dict):
                rejected += 1
                continue
            try:
                records.append(ProviderBusinessRecord.model_validate(item))
            except ValidationError as exc:
                rejected += 1
                logger.debug("Rejected provider record %r: %s", item.get("title"), exc.errors(include_url=False))

        if not records:
            logger.warning("No usable results from DataForSEO for keyword=%r", keyword)
        logger.info("DataForSEO returned %s records (%s rejected) for keyword=%r", len(records), rejected, keyword)
        return records
