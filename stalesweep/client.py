"""Sync HTTP client for the directory devices API with retries.

Only the two calls the cleanup needs are implemented: listing devices whose
last sign-in is at or before a cutoff, and deleting a device by id.
Pagination is followed here so callers always receive the full result.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .exceptions import ValidationError, error_from_response, wrap_api_errors
from .models import DeviceRecord, parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 3
DEFAULT_PAGE_SIZE = 100

DEVICE_FIELDS = "id,displayName,approximateLastSignInDateTime,operatingSystem"


class DirectoryClient:
    """Sync wrapper around the directory /devices collection.

    Uses requests.Session with exponential backoff on throttling,
    server errors and network failures.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        page_size: int = DEFAULT_PAGE_SIZE,
        include_never_signed_in: bool = False,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._page_size = page_size
        self.include_never_signed_in = include_never_signed_in
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "User-Agent": "Stalesweep/1.0",
            }
        )

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self) -> "DirectoryClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @staticmethod
    def _retry_delay(response: Optional[requests.Response], attempt: int) -> float:
        if response is not None:
            retry_after = response.headers.get("Retry-After")
            if retry_after and retry_after.isdigit():
                return float(retry_after)
        return (2**attempt) * 0.5

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """Make a request with exponential backoff."""
        last_exception: Optional[Exception] = None
        for attempt in range(self._max_retries):
            try:
                response = self._session.request(
                    method, url, params=params, timeout=self._timeout
                )
                response.raise_for_status()
                return response

            except requests.HTTPError as exc:
                status = exc.response.status_code if exc.response is not None else 0
                retryable = status == 429 or 500 <= status < 600
                if not retryable:
                    raise error_from_response(exc.response, f"{method} {url}") from exc
                last_exception = exc
                if attempt < self._max_retries - 1:
                    wait_time = self._retry_delay(exc.response, attempt)
                    logger.warning(
                        "HTTP %d on %s %s (attempt %d/%d). Retrying in %.1fs...",
                        status,
                        method,
                        url,
                        attempt + 1,
                        self._max_retries,
                        wait_time,
                    )
                    time.sleep(wait_time)

            except (requests.Timeout, requests.ConnectionError) as exc:
                last_exception = exc
                if attempt < self._max_retries - 1:
                    wait_time = self._retry_delay(None, attempt)
                    logger.warning(
                        "Network error on %s %s (attempt %d/%d): %s. Retrying in %.1fs...",
                        method,
                        url,
                        attempt + 1,
                        self._max_retries,
                        exc,
                        wait_time,
                    )
                    time.sleep(wait_time)

        if isinstance(last_exception, requests.HTTPError) and last_exception.response is not None:
            raise error_from_response(
                last_exception.response, f"{method} {url}"
            ) from last_exception
        if last_exception:
            raise last_exception
        raise RuntimeError(f"{method} {url} failed after {self._max_retries} retries")

    def _paginate(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        url: Optional[str] = f"{self._base_url}/devices"
        page_params: Optional[Dict[str, Any]] = params

        while url:
            payload = self._request("GET", url, params=page_params).json()
            items.extend(payload.get("value", []))
            # nextLink already carries the query string
            url = payload.get("@odata.nextLink")
            page_params = None

        return items

    # -----------------------------------------------------------------------
    # Device endpoints
    # -----------------------------------------------------------------------

    @wrap_api_errors
    def list_stale(self, cutoff: str) -> List[DeviceRecord]:
        """Return devices whose last sign-in is at or before ``cutoff``."""
        cutoff_at = parse_datetime(cutoff)
        if cutoff_at is None:
            raise ValidationError("Invalid cutoff timestamp", details=repr(cutoff))

        rows = self._paginate(
            {
                "$filter": f"approximateLastSignInDateTime le {cutoff}",
                "$select": DEVICE_FIELDS,
                "$top": self._page_size,
            }
        )
        records = [DeviceRecord.from_api(row) for row in rows]
        logger.info("Directory returned %d devices inactive since %s", len(records), cutoff)

        if self.include_never_signed_in:
            seen = {record.id for record in records}
            never = [
                record
                for record in (
                    DeviceRecord.from_api(row)
                    for row in self._paginate(
                        {"$select": DEVICE_FIELDS, "$top": self._page_size}
                    )
                )
                if record.id not in seen and record.is_stale(cutoff_at)
            ]
            logger.info("Found %d more stale devices in the full listing", len(never))
            records.extend(never)

        return records

    @wrap_api_errors
    def delete(self, device_id: str) -> None:
        """Delete a device. Raises NotFoundError when it is already gone."""
        self._request("DELETE", f"{self._base_url}/devices/{device_id}")
        logger.debug("Deleted device %s", device_id)
