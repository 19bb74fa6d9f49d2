"""
Historical alert log query engine.

Filtering happens server-side, paging happens client-side: search() fetches
the filtered result set once, page() slices it without touching the network.

Overlapping searches are resolved by a request token. Only the response to
the most recently issued search is applied; a slower, superseded response
is dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from alert_console.core.pagination import Page, Paginator
from alert_console.errors import QueryError

from .client import ConsoleAPIError, ConsoleRestClient
from .models import AlertFilter, AlertRecord

logger = logging.getLogger(__name__)


class AlertLogQuery:
    """
    Filtered, paginated view over the historical alert store.

    Usage:
        log = AlertLogQuery(client)
        log.set_filter(status="firing", digitalModuleId="DRILL001")
        await log.search()
        first = log.page(1)
    """

    PAGE_SIZE = 10

    def __init__(self, client: ConsoleRestClient, page_size: int = PAGE_SIZE) -> None:
        self._client = client
        self._paginator = Paginator(page_size)

        self._filter = AlertFilter()
        self._results: list[AlertRecord] = []
        self._current_page = 1
        self._loading = False
        self._last_error: Optional[QueryError] = None

        self._issued_token = 0

    @property
    def filter(self) -> AlertFilter:
        return self._filter

    @property
    def results(self) -> list[AlertRecord]:
        return list(self._results)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def last_error(self) -> Optional[QueryError]:
        return self._last_error

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def total_pages(self) -> int:
        return self._paginator.total_pages(len(self._results))

    def set_filter(self, **partial: Any) -> AlertFilter:
        """
        Merge filter fields. Accepts attribute or query parameter names.

        Raises:
            ValueError: On an unknown field
        """
        self._filter = self._filter.merge(**partial)
        return self._filter

    def clear_filter(self) -> AlertFilter:
        self._filter = AlertFilter()
        return self._filter

    async def search(self) -> bool:
        """
        Fetch the result set for the current filter.

        A failure leaves an empty result set and is logged; it is not raised.

        Returns:
            True if this search's response was applied
        """
        self._issued_token += 1
        token = self._issued_token
        params = self._filter.to_params()
        self._loading = True

        try:
            records = await self._client.filter_alerts(params)
            error = None
        except ConsoleAPIError as e:
            records = []
            error = QueryError(f"Alert log query failed: {e}")
        finally:
            # Only the latest search owns the loading flag
            if token == self._issued_token:
                self._loading = False

        if token != self._issued_token:
            logger.debug(f"Dropping superseded alert log response (token {token})")
            return False

        self._last_error = error
        self._results = list(records)
        self._current_page = 1

        if error:
            logger.error(str(error))
        else:
            logger.info(f"Alert log search returned {len(records)} records for {params or 'all'}")
        return True

    def page(self, number: int) -> Page:
        """Select and return a page of the fetched results. Never fetches."""
        self._current_page = self._paginator.clamp(number, len(self._results))
        return self.current()

    def current(self) -> Page:
        return self._paginator.slice(self._results, self._current_page)
