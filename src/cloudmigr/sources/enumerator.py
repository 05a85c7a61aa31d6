"""Page-by-page walk over a source listing."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from cloudmigr.errors import AuthError, CloudMigrError, EnumerationError
from cloudmigr.models import SourcePage

logger = logging.getLogger(__name__)

ListPage = Callable[[Optional[str]], Awaitable[SourcePage]]


class SourceEnumerator:
    """
    Yield listing pages until the provider stops returning a continuation token.

    A failing listing call ends the walk with EnumerationError; auth errors
    pass through unchanged.
    """

    def __init__(self, list_page: ListPage, *, name: str = "source") -> None:
        self._list_page = list_page
        self._name = name
        self.pages_read = 0

    async def pages(self, start_token: Optional[str] = None) -> AsyncIterator[SourcePage]:
        token = start_token
        while True:
            page = await self._fetch(token)
            self.pages_read += 1
            logger.info(f"{self._name}: page {self.pages_read} with {len(page.items)} item(s)")
            yield page

            if not page.next_page_token:
                return
            token = page.next_page_token

    async def _fetch(self, token: Optional[str]) -> SourcePage:
        try:
            return await self._list_page(token)
        except AuthError:
            raise
        except CloudMigrError as exc:
            raise EnumerationError(
                f"Listing {self._name} failed: {exc}",
                details={"page_token": token, "page": self.pages_read + 1, **exc.details},
                cause=exc,
            ) from exc
