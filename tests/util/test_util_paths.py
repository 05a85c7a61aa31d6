import unittest

from cloudmigr.util.paths import join_path, quote_path, split_path


class TestUtilPaths(unittest.TestCase):
    def test_join_path_drops_empty_segments(self) -> None:
        self.assertEqual(join_path("", "a.jpg"), "a.jpg")
        self.assertEqual(join_path("A/B/", "/c.txt"), "A/B/c.txt")
        self.assertEqual(join_path(), "")

    def test_split_path(self) -> None:
        self.assertEqual(split_path("A/B/c.txt"), ("A/B", "c.txt"))
        self.assertEqual(split_path("c.txt"), ("", "c.txt"))

    def test_quote_path_keeps_slashes(self) -> None:
        self.assertEqual(quote_path("My Files/a#1.txt"), "My%20Files/a%231.txt")
