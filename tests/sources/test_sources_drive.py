import json
import unittest
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, Mock, patch

from cloudmigr.errors import NotFoundError, RateLimitError
from cloudmigr.models import Origin
from cloudmigr.sources.drive import GoogleDriveSource, _file_dict_to_source_file, content_url_for


def _credentials(token="T"):
    credentials = Mock()
    credentials.get_access_token = AsyncMock(return_value=token)
    return credentials


def _request(result=None, side_effect=None):
    req = Mock()
    req.headers = {}
    if side_effect is not None:
        req.execute.side_effect = side_effect
    else:
        req.execute.return_value = result
    return req


def _http_error(status, reason, body=None):
    from googleapiclient.errors import HttpError

    resp = Mock()
    resp.status = status
    resp.reason = reason
    content = json.dumps(body).encode("utf-8") if body is not None else b"{}"
    return HttpError(resp=resp, content=content)


class _FakeTransport:
    def __init__(self, chunks) -> None:
        self.chunks = chunks
        self.calls = []

    @asynccontextmanager
    async def stream(self, url, *, token=None, chunk_size=1024 * 1024):
        self.calls.append((url, token))

        async def _body():
            for chunk in self.chunks:
                yield chunk

        yield _body()


class TestDriveHelpers(unittest.TestCase):
    def test_file_dict_to_source_file(self) -> None:
        data = {
            "id": "F1",
            "name": "report.pdf",
            "mimeType": "application/pdf",
            "parents": ["P1"],
            "size": "123",
            "permissions": [
                {"emailAddress": "me@example.com", "role": "owner"},
                {"emailAddress": "you@example.com", "role": "writer"},
            ],
        }
        f = _file_dict_to_source_file(data)
        self.assertEqual(f.file_id, "F1")
        self.assertEqual(f.origin, Origin.GOOGLE_DRIVE)
        self.assertEqual(f.size, 123)
        self.assertEqual(f.parents, ("P1",))
        self.assertEqual(f.owners, ("me@example.com",))
        self.assertEqual(f.content_url, content_url_for("F1"))

    def test_content_url(self) -> None:
        self.assertEqual(
            content_url_for("F1"),
            "https://www.googleapis.com/drive/v3/files/F1?alt=media&supportsAllDrives=true",
        )
        self.assertTrue(content_url_for("F1", supports_all_drives=False).endswith("?alt=media"))


class TestDriveSourceMocked(unittest.IsolatedAsyncioTestCase):
    async def test_list_page_query_and_auth_header(self) -> None:
        service = Mock()
        req = _request(
            {
                "files": [
                    {"id": "F1", "name": "a.jpg", "mimeType": "image/jpeg", "parents": ["P1"]},
                    {"id": "D1", "name": "doc", "mimeType": "application/vnd.google-apps.document"},
                ],
                "nextPageToken": "NEXT",
            }
        )
        service.files.return_value.list.return_value = req
        source = GoogleDriveSource(service, _credentials(), Mock(), page_size=10)

        page = await source.list_page("TOKEN")

        kwargs = service.files.return_value.list.call_args.kwargs
        self.assertEqual(kwargs["pageSize"], 10)
        self.assertEqual(kwargs["pageToken"], "TOKEN")
        self.assertIn("trashed=false", kwargs["q"])
        self.assertTrue(kwargs["supportsAllDrives"])
        self.assertTrue(kwargs["includeItemsFromAllDrives"])
        self.assertEqual(req.headers["authorization"], "Bearer T")
        self.assertEqual([f.file_id for f in page.items], ["F1"])
        self.assertEqual(page.next_page_token, "NEXT")

    async def test_last_page_has_no_token(self) -> None:
        service = Mock()
        service.files.return_value.list.return_value = _request({"files": []})
        source = GoogleDriveSource(service, _credentials(), Mock())

        page = await source.list_page()

        self.assertEqual(page.items, [])
        self.assertIsNone(page.next_page_token)
        self.assertNotIn("pageToken", service.files.return_value.list.call_args.kwargs)

    async def test_fetch_maps_http_404_to_not_found(self) -> None:
        service = Mock()
        service.files.return_value.get.return_value = _request(side_effect=_http_error(404, "Not Found"))
        source = GoogleDriveSource(service, _credentials(), Mock())

        with self.assertRaises(NotFoundError):
            await source.fetch("X")

    async def test_retry_on_429(self) -> None:
        err = _http_error(
            429,
            "rateLimitExceeded",
            {"error": {"message": "rate limited", "errors": [{"reason": "rateLimitExceeded"}]}},
        )
        req = _request(
            side_effect=[err, err, {"id": "F1", "name": "n", "mimeType": "text/plain", "parents": []}]
        )
        service = Mock()
        service.files.return_value.get.return_value = req
        source = GoogleDriveSource(service, _credentials(), Mock())

        with patch("time.sleep", return_value=None):
            f = await source.fetch("F1")

        self.assertEqual(f.file_id, "F1")
        self.assertEqual(req.execute.call_count, 3)

    async def test_retry_on_403_user_rate_limit(self) -> None:
        err = _http_error(
            403,
            "Forbidden",
            {"error": {"message": "User rate limit exceeded", "errors": [{"reason": "userRateLimitExceeded"}]}},
        )
        req = _request(side_effect=[err, {"id": "F1", "name": "n", "mimeType": "text/plain", "parents": []}])
        service = Mock()
        service.files.return_value.get.return_value = req
        source = GoogleDriveSource(service, _credentials(), Mock())

        with patch("time.sleep", return_value=None):
            f = await source.fetch("F1")

        self.assertEqual(f.file_id, "F1")
        self.assertEqual(req.execute.call_count, 2)

    async def test_retry_gives_up(self) -> None:
        err = _http_error(429, "rateLimitExceeded")
        req = _request(side_effect=[err, err, err, err])
        service = Mock()
        service.files.return_value.get.return_value = req
        source = GoogleDriveSource(service, _credentials(), Mock())

        with patch("time.sleep", return_value=None):
            with self.assertRaises(RateLimitError):
                await source.fetch("F1")
        self.assertEqual(req.execute.call_count, 4)

    async def test_get_parent_link(self) -> None:
        service = Mock()
        service.files.return_value.get.side_effect = [
            _request({"name": "Photos", "parents": ["ROOT"]}),
            _request({"name": "My Drive"}),
        ]
        source = GoogleDriveSource(service, _credentials(), Mock())

        self.assertEqual(await source.get_parent_link("P1"), ("Photos", "ROOT"))
        self.assertEqual(await source.get_parent_link("ROOT"), ("My Drive", None))
        self.assertEqual(service.files.return_value.get.call_args.kwargs["fields"], "name,parents")

    async def test_get_owner_email(self) -> None:
        service = Mock()
        service.about.return_value.get.return_value = _request({"user": {"emailAddress": "me@example.com"}})
        source = GoogleDriveSource(service, _credentials(), Mock())

        self.assertEqual(await source.get_owner_email(), "me@example.com")

    async def test_delete(self) -> None:
        service = Mock()
        req = _request("")
        service.files.return_value.delete.return_value = req
        source = GoogleDriveSource(service, _credentials(), Mock())

        await source.delete("F1")

        service.files.return_value.delete.assert_called_once_with(fileId="F1", supportsAllDrives=True)
        req.execute.assert_called_once()

    async def test_open_stream_uses_fresh_token(self) -> None:
        transport = _FakeTransport([b"ab", b"c"])
        source = GoogleDriveSource(Mock(), _credentials("T2"), transport)
        f = _file_dict_to_source_file({"id": "F1", "name": "a.bin", "size": "3"})

        async with source.open_stream(f) as body:
            data = b"".join([chunk async for chunk in body])

        self.assertEqual(data, b"abc")
        self.assertEqual(transport.calls, [(f.content_url, "T2")])
        self.assertEqual(await source.size_hint(f), 3)


if __name__ == "__main__":
    unittest.main()
