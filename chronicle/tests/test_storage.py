import unittest
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from chronicle.errors import UpstreamError
from chronicle.storage import S3StorageClient


class S3StorageClientTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("chronicle.storage.boto3.client")
        self.mock_factory = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_client = MagicMock()
        self.mock_factory.return_value = self.mock_client
        self.storage = S3StorageClient(
            bucket="kenangan",
            endpoint="https://storage.googleapis.com",
            access_key_id="GOOG1EXAMPLE",
            secret_access_key="secret",
        )

    def test_client_points_at_endpoint(self):
        _, kwargs = self.mock_factory.call_args
        self.assertEqual(kwargs["endpoint_url"], "https://storage.googleapis.com")
        self.assertEqual(kwargs["aws_access_key_id"], "GOOG1EXAMPLE")

    def test_upload_bytes_single_put_with_content_type(self):
        self.storage.upload_bytes("profiles/1-me.png", b"png", "image/png")
        self.mock_client.put_object.assert_called_once_with(
            Bucket="kenangan",
            Key="profiles/1-me.png",
            Body=b"png",
            ContentType="image/png",
        )
        self.mock_client.create_multipart_upload.assert_not_called()

    def test_public_url(self):
        self.assertEqual(
            self.storage.public_url("profiles/1-me.png"),
            "https://storage.googleapis.com/kenangan/profiles/1-me.png",
        )

    def test_client_error_becomes_upstream_error(self):
        self.mock_client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access denied."}},
            "PutObject",
        )
        with self.assertRaises(UpstreamError) as ctx:
            self.storage.upload_bytes("profiles/1-me.png", b"png", "image/png")
        self.assertIn("Access denied.", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
