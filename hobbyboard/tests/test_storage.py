import os
import re
import tempfile
import unittest
from unittest.mock import patch

from hobbyboard.errors import UploadTooLargeError, ValidationError
from hobbyboard.storage import (
    InMemoryImageStorage,
    LocalImageStorage,
    S3ImageStorage,
    unique_object_key,
)


class LocalImageStorageTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.upload_dir = os.path.join(self.tmp.name, "images", "uploads")
        self.storage = LocalImageStorage(upload_dir=self.upload_dir)

    def test_store_uses_original_filename(self):
        ref = self.storage.store(b"first", "cat.png")
        self.assertEqual(ref, "/images/uploads/cat.png")
        with open(os.path.join(self.upload_dir, "cat.png"), "rb") as f:
            self.assertEqual(f.read(), b"first")

    def test_same_name_overwrites(self):
        self.storage.store(b"first", "cat.png")
        self.storage.store(b"second", "cat.png")
        with open(os.path.join(self.upload_dir, "cat.png"), "rb") as f:
            self.assertEqual(f.read(), b"second")

    def test_directory_parts_are_dropped(self):
        ref = self.storage.store(b"x", "../../etc/evil.png")
        self.assertEqual(ref, "/images/uploads/evil.png")
        self.assertTrue(os.path.exists(os.path.join(self.upload_dir, "evil.png")))

    def test_no_size_limit(self):
        ref = self.storage.store(b"0" * (6 * 1024 * 1024), "big.bin")
        self.assertEqual(ref, "/images/uploads/big.bin")

    def test_reference_is_url_encoded(self):
        ref = self.storage.store(b"x", "my cat.png")
        self.assertEqual(ref, "/images/uploads/my%20cat.png")
        self.assertTrue(os.path.exists(os.path.join(self.upload_dir, "my cat.png")))

    def test_rejects_empty_name(self):
        with self.assertRaises(ValidationError):
            self.storage.store(b"x", "uploads/")


class S3ImageStorageTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("hobbyboard.storage.boto3.client")
        self.client_factory = patcher.start()
        self.addCleanup(patcher.stop)
        self.storage = S3ImageStorage(bucket="hobby-bucket", region="us-west-2")

    def test_client_uses_region_only(self):
        self.client_factory.assert_called_once_with("s3", region_name="us-west-2")

    def test_store_puts_object_and_returns_url(self):
        url = self.storage.store(b"img", "profile.jpg")
        kwargs = self.client_factory.return_value.put_object.call_args.kwargs
        self.assertEqual(kwargs["Bucket"], "hobby-bucket")
        self.assertEqual(kwargs["Body"], b"img")
        self.assertRegex(kwargs["Key"], r"^uploads/profile-\d+-\d+\.jpg$")
        self.assertEqual(
            url, f"https://hobby-bucket.s3.us-west-2.amazonaws.com/{kwargs['Key']}"
        )

    def test_rejects_files_over_five_mib(self):
        with self.assertRaises(UploadTooLargeError) as ctx:
            self.storage.store(b"0" * (5 * 1024 * 1024 + 1), "huge.png")
        self.assertEqual(ctx.exception.limit, 5 * 1024 * 1024)
        self.client_factory.return_value.put_object.assert_not_called()

    def test_exactly_five_mib_is_allowed(self):
        self.storage.store(b"0" * (5 * 1024 * 1024), "edge.png")
        self.client_factory.return_value.put_object.assert_called_once()

    def test_url_encodes_key(self):
        url = self.storage.store(b"x", "my photo#1.png")
        key = self.client_factory.return_value.put_object.call_args.kwargs["Key"]
        self.assertTrue(key.startswith("uploads/my photo#1-"))
        self.assertTrue(
            url.startswith(
                "https://hobby-bucket.s3.us-west-2.amazonaws.com/uploads/my%20photo%231-"
            )
        )
        self.assertNotIn(" ", url)

    def test_empty_region_uses_client_region(self):
        self.client_factory.return_value.meta.region_name = "eu-west-1"
        storage = S3ImageStorage(bucket="hobby-bucket", region="")
        self.assertTrue(
            storage.object_url("uploads/a.png").startswith(
                "https://hobby-bucket.s3.eu-west-1.amazonaws.com/"
            )
        )

    def test_missing_region_is_rejected(self):
        self.client_factory.return_value.meta.region_name = None
        with self.assertRaises(ValueError):
            S3ImageStorage(bucket="hobby-bucket", region="")


class ObjectKeyTests(unittest.TestCase):
    @patch("hobbyboard.storage.random.random", return_value=0.5)
    @patch("hobbyboard.storage.time.time", return_value=1700000000.5)
    def test_key_layout(self, _time, _random):
        self.assertEqual(
            unique_object_key("holiday photo.jpeg"),
            "uploads/holiday photo-1700000000500-500000000.jpeg",
        )

    def test_key_without_extension(self):
        self.assertTrue(re.match(r"^uploads/README-\d+-\d+$", unique_object_key("README")))


class InMemoryImageStorageTests(unittest.TestCase):
    def test_store_keeps_bytes(self):
        storage = InMemoryImageStorage()
        ref = storage.store(b"abc", "a.gif")
        self.assertEqual(ref, "https://example.test/storage/uploads/a.gif")
        self.assertEqual(storage.stored_objects["uploads/a.gif"], b"abc")


if __name__ == "__main__":
    unittest.main()
