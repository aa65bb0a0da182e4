"""Unit tests for the object storage backend."""

import asyncio

import pytest

from image_ingest.backends.object_store import ObjectStorageAdapter
from image_ingest.core.exceptions import ConfigurationError, DeleteError
from image_ingest.testing.fakes import setup_test_s3_environment


@pytest.fixture
def s3_client():
    return setup_test_s3_environment("media")


@pytest.fixture
def adapter(s3_client):
    return ObjectStorageAdapter(s3_client, bucket="media", acl="public-read")


class TestObjectStorageAdapterInit:
    """Tests for adapter construction."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"s3_client": None, "bucket": "media", "acl": "public-read"},
            {"bucket": "", "acl": "public-read"},
            {"bucket": "media", "acl": ""},
        ],
    )
    def test_missing_settings(self, s3_client, kwargs):
        """Test a client, bucket and ACL are all required."""
        kwargs = {"s3_client": s3_client, **kwargs}
        with pytest.raises(ConfigurationError):
            ObjectStorageAdapter(**kwargs)

    def test_location_is_bucket(self, adapter):
        assert adapter.location == "media"
        assert adapter.bucket == "media"


class TestObjectStorageAdapterWrite:
    """Tests for write."""

    def test_write_puts_object_with_acl_and_content_type(self, adapter, s3_client):
        descriptor = asyncio.run(adapter.write("2024/3/a.jpg", b"bytes", "image/jpeg"))

        stored = s3_client.get_bucket("media").get_object("2024/3/a.jpg")
        assert stored.body == b"bytes"
        assert stored.content_type == "image/jpeg"
        assert stored.acl == "public-read"
        assert descriptor.location == "media"
        assert descriptor.size == 5

    def test_write_propagates_client_error(self, adapter, s3_client):
        """Test put failures propagate for the engine to translate."""
        s3_client.set_failure_mode(True, "Service unavailable")

        with pytest.raises(Exception, match="Service unavailable"):
            asyncio.run(adapter.write("2024/3/a.jpg", b"bytes", "image/jpeg"))


class TestObjectStorageAdapterDelete:
    """Tests for delete."""

    def test_delete_single_batched_request(self, adapter, s3_client):
        """Test both keys go out in one DeleteObjects call."""
        asyncio.run(adapter.write("a.jpg", b"1", "image/jpeg"))
        asyncio.run(adapter.write("a_placeholder.jpg", b"2", "image/jpeg"))

        asyncio.run(adapter.delete(["a.jpg", "a_placeholder.jpg", "a.jpg"]))

        assert len(s3_client.delete_calls) == 1
        assert s3_client.delete_calls[0]["Delete"]["Objects"] == [
            {"Key": "a.jpg"},
            {"Key": "a_placeholder.jpg"},
        ]
        assert s3_client.get_bucket("media").list_keys() == []

    def test_delete_missing_keys_succeeds(self, adapter):
        """Test deleting keys that were never written is not an error."""
        asyncio.run(adapter.delete(["never.jpg", "never_placeholder.jpg"]))

    def test_delete_no_keys_skips_request(self, adapter, s3_client):
        asyncio.run(adapter.delete([]))
        assert s3_client.delete_calls == []

    def test_delete_reports_per_key_errors(self, adapter, s3_client):
        """Test keys listed in the response Errors are named in DeleteError."""
        asyncio.run(adapter.write("a.jpg", b"1", "image/jpeg"))
        asyncio.run(adapter.write("a_placeholder.jpg", b"2", "image/jpeg"))
        s3_client.fail_delete_keys.add("a_placeholder.jpg")

        with pytest.raises(DeleteError) as exc_info:
            asyncio.run(adapter.delete(["a.jpg", "a_placeholder.jpg"]))

        assert exc_info.value.failed_keys == ("a_placeholder.jpg",)
        assert s3_client.get_bucket("media").list_keys() == ["a_placeholder.jpg"]

    def test_delete_client_error_fails_all_keys(self, adapter, s3_client):
        s3_client.set_failure_mode(True)

        with pytest.raises(DeleteError) as exc_info:
            asyncio.run(adapter.delete(["a.jpg", "a_placeholder.jpg"]))

        assert exc_info.value.failed_keys == ("a.jpg", "a_placeholder.jpg")
        assert "InternalError" in str(exc_info.value)
