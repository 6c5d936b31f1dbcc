"""
Tests for storage connections.

boto3 is patched out; S3 responses and failures are simulated with MagicMock
and real botocore exception types.
"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from docpublisher.connections import ObjectStore, S3Connection
from docpublisher.connections.s3 import translate_error
from docpublisher.connections.storage import chunked
from docpublisher.exceptions import ConfigurationError, PermanentStoreError, TransientStoreError


def client_error(status, code, message="", headers=None, operation="PutObject"):
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status, "HTTPHeaders": headers or {}},
        },
        operation,
    )


@pytest.fixture
def conn():
    connection = S3Connection("docs", {"bucket": "docs-bucket"})
    connection._client = MagicMock()
    return connection


class TestS3ConnectionConfig:
    """Tests for S3Connection configuration and client setup."""

    def test_bucket_property(self):
        conn = S3Connection("docs", {"bucket": "my-bucket"})
        assert conn.bucket == "my-bucket"

    @pytest.mark.parametrize("config", [{}, {"bucket": ""}, {"bucket": "   "}, {"bucket": None}])
    def test_missing_bucket_rejected(self, config):
        """Test a connection cannot be built without a bucket."""
        with pytest.raises(ConfigurationError, match="requires 'bucket'"):
            S3Connection("docs", config)

    def test_region_and_endpoint(self):
        conn = S3Connection(
            "docs", {"bucket": "b", "region": "us-west-2", "endpoint_url": "http://localhost:9000"}
        )
        assert conn.region == "us-west-2"
        assert conn.endpoint_url == "http://localhost:9000"

    def test_client_lazy_initialization(self):
        """Test that the client is only built on first use."""
        conn = S3Connection("docs", {"bucket": "b"})
        assert conn._client is None

        with patch("boto3.client") as mock_boto:
            mock_boto.return_value = MagicMock()
            first = conn.client
            second = conn.client

        mock_boto.assert_called_once()
        assert first is second

    def test_client_disables_sdk_retries(self):
        conn = S3Connection("docs", {"bucket": "b", "connect_timeout": 3, "read_timeout": 7})

        with patch("boto3.client") as mock_boto:
            _ = conn.client

        args, kwargs = mock_boto.call_args
        assert args == ("s3",)
        config = kwargs["config"]
        assert isinstance(config, BotoConfig)
        assert config.retries == {"total_max_attempts": 1, "mode": "standard"}
        assert config.connect_timeout == 3.0
        assert config.read_timeout == 7.0

    def test_client_with_credentials(self):
        """Test client initialization with explicit credentials."""
        conn = S3Connection(
            "docs",
            {
                "bucket": "b",
                "region": "eu-west-1",
                "access_key_id": "AKIATEST",
                "secret_access_key": "secret123",
                "session_token": "token456",
            },
        )

        with patch("boto3.client") as mock_boto:
            _ = conn.client

        kwargs = mock_boto.call_args.kwargs
        assert kwargs["region_name"] == "eu-west-1"
        assert kwargs["aws_access_key_id"] == "AKIATEST"
        assert kwargs["aws_secret_access_key"] == "secret123"
        assert kwargs["aws_session_token"] == "token456"

    def test_partial_credentials_ignored(self):
        conn = S3Connection("docs", {"bucket": "b", "access_key_id": "AKIATEST"})
        assert "aws_access_key_id" not in conn._get_client_kwargs()

    def test_implements_object_store(self, conn):
        assert isinstance(conn, ObjectStore)

    def test_repr(self):
        assert repr(S3Connection("docs", {"bucket": "b"})) == "S3Connection(name='docs')"


class TestS3Lifecycle:
    def test_close_resets_client(self, conn):
        client = conn._client
        conn.close()
        client.close.assert_called_once()
        assert conn._client is None

    def test_close_idempotent(self, conn):
        conn.close()
        conn.close()
        assert conn._client is None

    def test_context_manager(self, conn):
        with conn as c:
            assert c is conn
        assert conn._client is None


class TestPutFile:
    """Tests for single-file uploads."""

    def test_put_sends_headers(self, conn, tmp_path):
        path = tmp_path / "index.html"
        path.write_text("<html/>")

        conn.put_file("site/v1/index.html", path, content_type="text/html; charset=utf-8", cache_control="max-age=60")

        kwargs = conn._client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "docs-bucket"
        assert kwargs["Key"] == "site/v1/index.html"
        assert kwargs["ContentType"] == "text/html; charset=utf-8"
        assert kwargs["CacheControl"] == "max-age=60"

    def test_throttling_is_transient_with_retry_after(self, conn, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("a")
        conn._client.put_object.side_effect = client_error(
            503, "SlowDown", "Please reduce your request rate.", headers={"retry-after": "5"}
        )

        with pytest.raises(TransientStoreError) as exc_info:
            conn.put_file("k", path, content_type="text/plain", cache_control="c")

        error = exc_info.value
        assert error.status_code == 503
        assert error.error_code == "SlowDown"
        assert error.retry_after == 5.0
        assert isinstance(error.__cause__, ClientError)

    def test_access_denied_is_permanent(self, conn, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("a")
        conn._client.put_object.side_effect = client_error(403, "AccessDenied", "Access Denied")

        with pytest.raises(PermanentStoreError) as exc_info:
            conn.put_file("k", path, content_type="text/plain", cache_control="c")

        assert exc_info.value.status_code == 403
        assert exc_info.value.retry_after is None

    @pytest.mark.parametrize(
        "error",
        [
            ReadTimeoutError(endpoint_url="https://s3.amazonaws.com"),
            ConnectTimeoutError(endpoint_url="https://s3.amazonaws.com"),
            EndpointConnectionError(endpoint_url="https://s3.amazonaws.com"),
        ],
    )
    def test_transport_failures_during_put_are_transient(self, conn, tmp_path, error):
        """Test timeouts raised by put_object are retried, not reported as local read errors."""
        path = tmp_path / "app.js"
        path.write_text("x()")
        conn._client.put_object.side_effect = error

        with pytest.raises(TransientStoreError) as exc_info:
            conn.put_file("site/v1/app.js", path, content_type="text/javascript", cache_control="c")

        assert "Cannot read" not in str(exc_info.value)
        assert exc_info.value.error_code == type(error).__name__
        assert exc_info.value.__cause__ is error

    def test_unreadable_local_file_is_permanent(self, conn, tmp_path):
        with pytest.raises(PermanentStoreError, match="Cannot read"):
            conn.put_file("k", tmp_path / "missing.txt", content_type="text/plain", cache_control="c")
        conn._client.put_object.assert_not_called()


class TestTranslateError:
    """Tests for botocore exception translation."""

    def test_endpoint_connection_error_is_transient(self):
        error = translate_error(EndpointConnectionError(endpoint_url="https://s3.amazonaws.com"), "PUT")
        assert isinstance(error, TransientStoreError)
        assert error.status_code is None

    def test_read_timeout_is_transient(self):
        error = translate_error(ReadTimeoutError(endpoint_url="https://s3.amazonaws.com"), "PUT")
        assert isinstance(error, TransientStoreError)

    def test_missing_credentials_are_permanent(self):
        error = translate_error(NoCredentialsError(), "PUT")
        assert isinstance(error, PermanentStoreError)
        assert error.error_code == "NoCredentialsError"

    def test_internal_error_is_transient(self):
        assert isinstance(translate_error(client_error(500, "InternalError"), "PUT"), TransientStoreError)

    def test_capitalized_retry_after_header(self):
        error = translate_error(client_error(429, "TooManyRequests", headers={"Retry-After": "2"}), "PUT")
        assert error.retry_after == 2.0

    def test_message_names_operation(self):
        error = translate_error(client_error(403, "AccessDenied", "Access Denied"), "PUT s3://b/k")
        assert str(error) == "PUT s3://b/k failed: AccessDenied: Access Denied"


class TestListAndDelete:
    """Tests for prefix listing and batch deletion."""

    def test_iter_keys_paginates_and_skips_markers(self, conn):
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "site/v1/"}, {"Key": "site/v1/index.html"}]},
            {"Contents": [{"Key": "site/v1/css/"}, {"Key": "site/v1/css/a.css"}]},
            {},
        ]
        conn._client.get_paginator.return_value = paginator

        keys = list(conn.iter_keys("site/v1/"))

        assert keys == ["site/v1/index.html", "site/v1/css/a.css"]
        conn._client.get_paginator.assert_called_once_with("list_objects_v2")
        paginator.paginate.assert_called_once_with(Bucket="docs-bucket", Prefix="site/v1/")

    def test_iter_keys_translates_errors(self, conn):
        paginator = MagicMock()
        paginator.paginate.side_effect = client_error(403, "AccessDenied", operation="ListObjectsV2")
        conn._client.get_paginator.return_value = paginator

        with pytest.raises(PermanentStoreError):
            list(conn.iter_keys("site/v1/"))

    def test_delete_keys_batches_of_1000(self, conn):
        conn._client.delete_objects.return_value = {}
        keys = [f"site/v1/{i}.txt" for i in range(2500)]

        deleted = conn.delete_keys(keys)

        assert deleted == 2500
        batches = [call.kwargs["Delete"]["Objects"] for call in conn._client.delete_objects.call_args_list]
        assert [len(batch) for batch in batches] == [1000, 1000, 500]
        assert conn._client.delete_objects.call_args_list[0].kwargs["Delete"]["Quiet"] is True

    def test_delete_keys_excludes_per_key_errors(self, conn):
        conn._client.delete_objects.return_value = {
            "Errors": [{"Key": "site/v1/b.txt", "Code": "AccessDenied", "Message": "Access Denied"}]
        }

        assert conn.delete_keys(["site/v1/a.txt", "site/v1/b.txt"]) == 1

    def test_delete_keys_translates_errors(self, conn):
        conn._client.delete_objects.side_effect = client_error(503, "SlowDown", operation="DeleteObjects")

        with pytest.raises(TransientStoreError):
            conn.delete_keys(["site/v1/a.txt"])


class TestChunked:
    def test_chunks(self):
        assert list(chunked(["a", "b", "c", "d", "e"], 2)) == [["a", "b"], ["c", "d"], ["e"]]

    def test_empty(self):
        assert list(chunked([], 3)) == []
