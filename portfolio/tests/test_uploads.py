import os
import shutil
import tempfile
import unittest

from portfolio.errors import ValidationError
from portfolio.storage import InMemoryMediaStorage, LocalMediaStorage
from portfolio.uploads import accept_upload, format_file_size, validate_upload


class FormatFileSizeTests(unittest.TestCase):
    def test_formats_like_the_media_library(self):
        self.assertEqual(format_file_size(0), "0 Bytes")
        self.assertEqual(format_file_size(512), "512 Bytes")
        self.assertEqual(format_file_size(1024), "1 KB")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(10 * 1024 * 1024), "10 MB")
        self.assertEqual(format_file_size(3 * 1024 ** 3), "3 GB")


class ValidateUploadTests(unittest.TestCase):
    def test_accepts_allowed_types(self):
        self.assertEqual(validate_upload("Photo.JPG", "image/jpeg", 10), ".jpg")
        self.assertEqual(
            validate_upload("cv.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document", 10),
            ".docx",
        )
        self.assertEqual(validate_upload("logo.svg", "image/svg+xml; charset=utf-8", 10), ".svg")

    def test_rejects_disallowed_extension_or_mime(self):
        with self.assertRaises(ValidationError):
            validate_upload("script.exe", "application/octet-stream", 10)
        with self.assertRaises(ValidationError):
            validate_upload("photo.png", "text/html", 10)
        with self.assertRaises(ValidationError):
            validate_upload("photo", "image/png", 10)

    def test_rejects_empty_and_oversized_files(self):
        with self.assertRaises(ValidationError):
            validate_upload("photo.png", "image/png", 0)
        with self.assertRaises(ValidationError) as ctx:
            validate_upload("photo.png", "image/png", 11, max_bytes=10)
        self.assertEqual(ctx.exception.details["max_bytes"], 10)

    def test_requires_a_filename(self):
        with self.assertRaises(ValidationError):
            validate_upload("", "image/png", 10)


class AcceptUploadTests(unittest.TestCase):
    def test_stores_under_random_name(self):
        storage = InMemoryMediaStorage()
        first = accept_upload("photo.png", "image/png", b"abc", storage, uploaded_by="u1")
        second = accept_upload("photo.png", "image/png", b"abc", storage)

        self.assertNotEqual(first["filename"], second["filename"])
        self.assertTrue(first["filename"].endswith(".png"))
        self.assertEqual(first["original_name"], "photo.png")
        self.assertEqual(first["size"], "3")
        self.assertEqual(first["url"], f"/uploads/{first['filename']}")
        self.assertEqual(first["uploaded_by"], "u1")
        self.assertIn(first["filename"], storage.stored_objects)

    def test_rejected_upload_is_not_stored(self):
        storage = InMemoryMediaStorage()
        with self.assertRaises(ValidationError):
            accept_upload("virus.exe", "application/x-msdownload", b"MZ", storage)
        self.assertEqual(storage.stored_objects, {})


class LocalMediaStorageTests(unittest.TestCase):
    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.storage = LocalMediaStorage(directory=self.directory)

    def tearDown(self):
        shutil.rmtree(self.directory, ignore_errors=True)

    def test_save_and_delete(self):
        url = self.storage.save("abc.png", b"data", "image/png")
        path = os.path.join(self.directory, "abc.png")
        self.assertEqual(url, "/uploads/abc.png")
        with open(path, "rb") as f:
            self.assertEqual(f.read(), b"data")

        self.storage.delete("abc.png")
        self.assertFalse(os.path.exists(path))
        self.storage.delete("abc.png")

    def test_refuses_paths_outside_directory(self):
        with self.assertRaises(ValueError):
            self.storage.save("../escape.png", b"data", "image/png")


if __name__ == "__main__":
    unittest.main()
