"""Decide whether a file is already present at the destination."""

from __future__ import annotations

import logging
from typing import Any

from cloudmigr.errors import AuthError, CloudMigrError, DestinationListingError, NotFoundError
from cloudmigr.util.paths import join_path

logger = logging.getLogger(__name__)


class ExistenceChecker:
    """
    Ledger first, destination listing second.

    A succeeded ledger entry is authoritative: the destination is not
    consulted even if the object was since removed there.
    """

    def __init__(self, destination: Any, ledger: Any) -> None:
        self._destination = destination
        self._ledger = ledger

    async def exists(self, filename: str, parent_path: str) -> bool:
        """
        Raises:
            AuthError: destination credentials are unusable.
            DestinationListingError: the listing failed for another reason.
        """
        if self._ledger.is_already_uploaded(join_path(parent_path, filename)):
            return True

        try:
            container_id = await self._destination.get_item_id(parent_path)
            names = await self._destination.list_child_names(container_id)
        except NotFoundError:
            return False
        except AuthError:
            raise
        except CloudMigrError as exc:
            raise DestinationListingError(
                f"Listing destination folder '{parent_path}' failed: {exc}",
                details={"parent_path": parent_path, **exc.details},
                cause=exc,
            ) from exc

        return filename in names
