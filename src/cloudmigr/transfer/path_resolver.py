"""Turn a source item's ancestor chain into a destination-relative path."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from cloudmigr.errors import InvalidStateError

logger = logging.getLogger(__name__)

DEFAULT_ROOT_MARKER: str = "My Drive"

ParentLookup = Callable[[str], Awaitable[tuple[str, Optional[str]]]]


class DestinationPathResolver:
    """
    Walk parents upward until the root marker (or an item without parent).

    `lookup(item_id)` returns (name, primary parent id). Results are memoized
    per instance, so siblings share their ancestors' lookups; create one
    resolver per run (or call clear()) to pick up renames.
    """

    def __init__(
        self,
        lookup: ParentLookup,
        *,
        root_marker: str = DEFAULT_ROOT_MARKER,
        memoize: bool = True,
    ) -> None:
        self._lookup = lookup
        self._root_marker = root_marker
        self._memoize = memoize
        self._memo: dict[str, tuple[str, Optional[str]]] = {}

    async def resolve_path(self, file_id: str) -> str:
        """Folder path of the item `file_id`, root-most segment first."""
        _, parent_id = await self._link(file_id)
        return await self.resolve_from_parent(parent_id)

    async def resolve_from_parent(self, parent_id: Optional[str]) -> str:
        """Folder path given the item's primary parent id ("" at root level)."""
        names: list[str] = []
        seen: set[str] = set()
        current = parent_id

        while current:
            if current in seen:
                raise InvalidStateError("Cycle in parent chain", details={"item_id": current})
            seen.add(current)

            name, parent = await self._link(current)
            if name == self._root_marker:
                break
            names.append(name)
            current = parent

        names.reverse()
        return "/".join(names)

    def clear(self) -> None:
        self._memo.clear()

    async def _link(self, item_id: str) -> tuple[str, Optional[str]]:
        if item_id in self._memo:
            return self._memo[item_id]

        link = await self._lookup(item_id)
        if self._memoize:
            self._memo[item_id] = link
        return link
