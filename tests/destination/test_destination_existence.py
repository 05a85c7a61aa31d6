import unittest

from cloudmigr.destination import ExistenceChecker
from cloudmigr.errors import ApiError, AuthError, DestinationListingError, NotFoundError


class _FakeLedger:
    def __init__(self, *paths: str) -> None:
        self.paths = set(paths)

    def is_already_uploaded(self, path: str) -> bool:
        return path in self.paths


class _FakeDestination:
    def __init__(self, children=None, error=None) -> None:
        self.children = children or {}
        self.error = error
        self.calls = []

    async def get_item_id(self, parent_path):
        self.calls.append(("get_item_id", parent_path))
        if self.error is not None:
            raise self.error
        if parent_path not in self.children:
            raise NotFoundError("itemNotFound", details={"status_code": 404})
        return f"ID:{parent_path}"

    async def list_child_names(self, item_id):
        self.calls.append(("list_child_names", item_id))
        return self.children[item_id[len("ID:"):]]


class TestExistenceChecker(unittest.IsolatedAsyncioTestCase):
    async def test_ledger_hit_skips_destination(self) -> None:
        dest = _FakeDestination()
        checker = ExistenceChecker(dest, _FakeLedger("A/B/c.txt"))

        self.assertTrue(await checker.exists("c.txt", "A/B"))
        self.assertEqual(dest.calls, [])

    async def test_listing_decides_when_ledger_misses(self) -> None:
        dest = _FakeDestination({"A/B": ["c.txt", "d.txt"]})
        checker = ExistenceChecker(dest, _FakeLedger())

        self.assertTrue(await checker.exists("c.txt", "A/B"))
        self.assertFalse(await checker.exists("e.txt", "A/B"))

    async def test_name_match_is_exact(self) -> None:
        dest = _FakeDestination({"": ["Photo.JPG"]})
        checker = ExistenceChecker(dest, _FakeLedger())

        self.assertFalse(await checker.exists("photo.jpg", ""))

    async def test_missing_folder_means_absent(self) -> None:
        checker = ExistenceChecker(_FakeDestination(), _FakeLedger())
        self.assertFalse(await checker.exists("c.txt", "Nope"))

    async def test_listing_error(self) -> None:
        dest = _FakeDestination(error=ApiError("boom", details={"status_code": 500}))
        checker = ExistenceChecker(dest, _FakeLedger())

        with self.assertRaises(DestinationListingError) as ctx:
            await checker.exists("c.txt", "A")
        self.assertEqual(ctx.exception.details["parent_path"], "A")

    async def test_auth_error_propagates(self) -> None:
        checker = ExistenceChecker(_FakeDestination(error=AuthError("expired")), _FakeLedger())
        with self.assertRaises(AuthError):
            await checker.exists("c.txt", "A")


if __name__ == "__main__":
    unittest.main()
