"""
REST API client for the alert backend.

Provides async access to the sensor catalog, threshold updates and the
filtered historical alert store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

import aiohttp

from .models import AlertRecord, Sensor

logger = logging.getLogger(__name__)


class ConsoleAPIError(Exception):
    """Non-success response or transport failure talking to the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConsoleRestClient:
    """
    Async REST client for the alert backend.

    Features:
        - Retries with exponential backoff on 5xx, timeouts and connection errors
        - No retry on 4xx (the request itself is wrong)
        - Threshold updates are attempted once

    Usage:
        async with ConsoleRestClient("http://localhost:5167") as client:
            sensors = await client.get_sensors()
            await client.update_thresholds("drill_temp1", 10.0, 80.0)
            records = await client.filter_alerts({"status": "firing"})
    """

    BASE_URL = "http://localhost:5167"
    SENSOR_PATH = "/api/Sensor"
    THRESHOLDS_PATH = "/api/Sensor/thresholds"
    ALERT_FILTER_PATH = "/api/Alert/filter"

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """
        Initialize the REST client.

        Args:
            base_url: Backend base URL
            session: Optional aiohttp session (created if not provided)
            timeout: Request timeout in seconds
            max_retries: Number of attempts for retryable requests
            retry_delay: Base delay between retries (exponential backoff)
        """
        self._base_url = (base_url or self.BASE_URL).rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "ConsoleRestClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the client session."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        retry: bool = True,
        **kwargs,
    ) -> Any:
        """
        Make an HTTP request.

        Returns:
            Parsed JSON body, the raw text when the body is not JSON, or None
            for an empty body

        Raises:
            ConsoleAPIError: On non-success responses or transport failures
            asyncio.CancelledError: When the task is cancelled (re-raised)
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True

        url = f"{self._base_url}{path}"
        attempts = self._max_retries if retry else 1
        last_error: Optional[ConsoleAPIError] = None

        for attempt in range(attempts):
            try:
                async with self._session.request(method, url, **kwargs) as response:
                    try:
                        text = await response.text()
                    except ValueError as e:
                        # UnicodeDecodeError included: body does not match its declared charset
                        raise ConsoleAPIError(
                            f"Undecodable response body from {method} {path}: {e}",
                            status_code=response.status,
                        )

                    if 400 <= response.status < 500:
                        raise ConsoleAPIError(
                            f"API error: {response.status} - {text}",
                            status_code=response.status,
                        )

                    if response.status >= 500:
                        raise ConsoleAPIError(
                            f"Server error: {response.status} - {text}",
                            status_code=response.status,
                        )

                    if not text.strip():
                        return None
                    try:
                        return await response.json(content_type=None)
                    except ValueError:
                        return text

            except ConsoleAPIError as e:
                if e.status_code and e.status_code >= 500:
                    last_error = e
                    logger.warning(
                        f"Server error {e.status_code} on {method} {path}, "
                        f"attempt {attempt + 1}/{attempts}"
                    )
                else:
                    raise

            except asyncio.TimeoutError:
                last_error = ConsoleAPIError(f"Request timed out: {method} {path}")
                logger.warning(f"Request timeout on {method} {path}, attempt {attempt + 1}/{attempts}")

            except asyncio.CancelledError:
                logger.debug("Request cancelled")
                raise

            except aiohttp.ClientError as e:
                last_error = ConsoleAPIError(str(e))
                logger.warning(f"Request failed: {e}, attempt {attempt + 1}/{attempts}")

            if attempt + 1 < attempts:
                await asyncio.sleep(self._retry_delay * (2 ** attempt))

        raise last_error or ConsoleAPIError(f"Request failed: {method} {path}")

    # =========================================================================
    # Sensor catalog
    # =========================================================================

    async def get_sensors(self) -> list[Sensor]:
        """Fetch the full sensor catalog."""
        data = await self._request("GET", self.SENSOR_PATH)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ConsoleAPIError(f"Unexpected sensor catalog payload: {str(data)[:200]}")

        sensors = []
        for item in data:
            try:
                sensors.append(Sensor.from_dict(item))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Failed to parse sensor: {e}")
        return sensors

    async def update_thresholds(
        self,
        sensor_id: str,
        min_value: float,
        max_value: float,
    ) -> Any:
        """Persist thresholds for one sensor."""
        payload = {
            "sensorId": sensor_id,
            "minValue": min_value,
            "maxValue": max_value,
        }
        return await self._request("PUT", self.THRESHOLDS_PATH, retry=False, json=payload)

    # =========================================================================
    # Alert history
    # =========================================================================

    async def filter_alerts(self, params: Optional[Mapping[str, str]] = None) -> list[AlertRecord]:
        """Fetch historical alerts matching the given (non-empty) filter params."""
        data = await self._request("GET", self.ALERT_FILTER_PATH, params=dict(params or {}))
        if data is None:
            return []
        if not isinstance(data, list):
            raise ConsoleAPIError(f"Unexpected alert log payload: {str(data)[:200]}")

        records = []
        for item in data:
            try:
                records.append(AlertRecord.from_dict(item))
            except (ValueError, TypeError) as e:
                logger.warning(f"Failed to parse alert record: {e}")
        return records
