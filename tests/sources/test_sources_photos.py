import unittest
from unittest.mock import AsyncMock, Mock

from cloudmigr.errors import ApiError
from cloudmigr.models import Origin
from cloudmigr.sources.photos import PHOTOS_API, PHOTOS_FOLDER, GooglePhotosSource, _media_item_to_source_file


def _credentials():
    credentials = Mock()
    credentials.get_access_token = AsyncMock(return_value="T")
    return credentials


PHOTO = {
    "id": "M1",
    "filename": "IMG_0001.jpg",
    "baseUrl": "https://lh3.example/abc",
    "mimeType": "image/jpeg",
    "mediaMetadata": {"photo": {}},
}
VIDEO = {
    "id": "M2",
    "filename": "VID_0001.mp4",
    "baseUrl": "https://lh3.example/def",
    "mimeType": "video/mp4",
    "mediaMetadata": {"video": {}},
}


class TestPhotosHelpers(unittest.TestCase):
    def test_photo_and_video_download_urls(self) -> None:
        photo = _media_item_to_source_file(PHOTO)
        video = _media_item_to_source_file(VIDEO)
        self.assertEqual(photo.content_url, "https://lh3.example/abc=d")
        self.assertEqual(video.content_url, "https://lh3.example/def=dv")
        self.assertEqual(photo.origin, Origin.GOOGLE_PHOTOS)
        self.assertEqual(photo.name, "IMG_0001.jpg")

    def test_malformed_item(self) -> None:
        with self.assertRaises(ApiError):
            _media_item_to_source_file({"id": "M3"})


class TestPhotosSourceMocked(unittest.IsolatedAsyncioTestCase):
    async def test_list_page(self) -> None:
        transport = Mock()
        transport.request_json = AsyncMock(return_value={"mediaItems": [PHOTO, VIDEO], "nextPageToken": "N"})
        source = GooglePhotosSource(transport, _credentials())

        page = await source.list_page("TOKEN")

        args = transport.request_json.call_args
        self.assertEqual(args.args, ("GET", f"{PHOTOS_API}/mediaItems"))
        self.assertEqual(args.kwargs["params"], {"pageSize": "20", "pageToken": "TOKEN"})
        self.assertEqual(args.kwargs["token"], "T")
        self.assertEqual([f.file_id for f in page.items], ["M1", "M2"])
        self.assertEqual(page.next_page_token, "N")

    async def test_empty_library(self) -> None:
        transport = Mock()
        transport.request_json = AsyncMock(return_value={})
        page = await GooglePhotosSource(transport, _credentials()).list_page()

        self.assertEqual(page.items, [])
        self.assertIsNone(page.next_page_token)

    async def test_fetch_gets_fresh_base_url(self) -> None:
        transport = Mock()
        transport.request_json = AsyncMock(return_value=PHOTO)

        f = await GooglePhotosSource(transport, _credentials()).fetch("M1")

        self.assertEqual(transport.request_json.call_args.args[1], f"{PHOTOS_API}/mediaItems/M1")
        self.assertEqual(f.file_id, "M1")

    async def test_size_hint_uses_content_length(self) -> None:
        transport = Mock()
        transport.content_length = AsyncMock(return_value=2048)
        source = GooglePhotosSource(transport, _credentials())

        size = await source.size_hint(_media_item_to_source_file(PHOTO))

        self.assertEqual(size, 2048)
        transport.content_length.assert_awaited_once_with("https://lh3.example/abc=d", token="T")

    async def test_delete_is_not_supported(self) -> None:
        source = GooglePhotosSource(Mock(), _credentials())
        self.assertFalse(source.supports_delete)
        self.assertEqual(source.folder, PHOTOS_FOLDER)
        with self.assertRaises(ApiError):
            await source.delete("M1")


if __name__ == "__main__":
    unittest.main()
