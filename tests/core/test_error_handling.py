"""Tests for error translation helpers."""

import asyncio

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from PIL import UnidentifiedImageError

from image_ingest.core.error_handling import (
    decode_errors,
    describe_client_error,
    error_exit_code,
    translate_write_errors,
)
from image_ingest.core.exceptions import (
    ConfigurationError,
    DecodeError,
    DeleteError,
    ImageIngestError,
    UploadTooLargeError,
    WriteError,
)


KEYS = ("2024/3/a.jpg", "2024/3/a_placeholder.jpg")


def _client_error(code="AccessDenied", message="Access Denied"):
    return ClientError({"Error": {"Code": code, "Message": message}}, "PutObject")


async def _raise_inside_write(exc):
    async with translate_write_errors("original", KEYS[0], KEYS):
        raise exc


class TestDescribeClientError:
    """Tests for describe_client_error."""

    def test_describe_client_error(self):
        assert describe_client_error(_client_error()) == {
            "code": "AccessDenied",
            "message": "Access Denied",
        }

    def test_describe_client_error_without_details(self):
        error = ClientError({}, "PutObject")
        assert describe_client_error(error) == {"code": None, "message": None}


class TestDecodeErrors:
    """Tests for the decode_errors context manager."""

    @pytest.mark.parametrize(
        "exc",
        [
            UnidentifiedImageError("cannot identify image file"),
            OSError("image file is truncated"),
            ValueError("bad data"),
            SyntaxError("not a PNG file"),
        ],
    )
    def test_decode_errors_translates(self, exc):
        """Test Pillow failures become DecodeError with the cause chained."""
        with pytest.raises(DecodeError) as exc_info:
            with decode_errors("avatar"):
                raise exc

        assert "Could not decode avatar" in str(exc_info.value)
        assert exc_info.value.__cause__ is exc

    def test_decode_errors_passes_decode_error_through(self):
        """Test DecodeError subclasses are not rewrapped."""
        original = UploadTooLargeError(10, 20)
        with pytest.raises(UploadTooLargeError) as exc_info:
            with decode_errors():
                raise original

        assert exc_info.value is original

    def test_decode_errors_ignores_unrelated(self):
        """Test unrelated exceptions propagate unchanged."""
        with pytest.raises(KeyError):
            with decode_errors():
                raise KeyError("x")


class TestTranslateWriteErrors:
    """Tests for the translate_write_errors context manager."""

    def test_timeout_becomes_write_error(self):
        with pytest.raises(WriteError, match="backend write timed out") as exc_info:
            asyncio.run(_raise_inside_write(asyncio.TimeoutError()))

        assert exc_info.value.role == "original"
        assert exc_info.value.keys == KEYS

    def test_client_error_becomes_write_error(self):
        with pytest.raises(WriteError, match="object store error AccessDenied: Access Denied"):
            asyncio.run(_raise_inside_write(_client_error()))

    def test_botocore_error_becomes_write_error(self):
        with pytest.raises(WriteError, match="Could not connect"):
            asyncio.run(
                _raise_inside_write(EndpointConnectionError(endpoint_url="http://localhost:9000"))
            )

    def test_os_error_becomes_write_error(self):
        with pytest.raises(WriteError, match="disk full"):
            asyncio.run(_raise_inside_write(OSError("disk full")))

    def test_unexpected_error_becomes_write_error(self):
        with pytest.raises(WriteError) as exc_info:
            asyncio.run(_raise_inside_write(RuntimeError("encoder crashed")))

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_write_error_passes_through(self):
        original = WriteError("inner", "placeholder", KEYS[1], KEYS)
        with pytest.raises(WriteError) as exc_info:
            asyncio.run(_raise_inside_write(original))

        assert exc_info.value is original

    def test_cancellation_not_translated(self):
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(_raise_inside_write(asyncio.CancelledError()))


class TestErrorExitCode:
    """Tests for error_exit_code."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (ConfigurationError("bad"), 3),
            (DecodeError("bad"), 2),
            (UploadTooLargeError(1, 2), 2),
            (WriteError("bad", "original", "k"), 1),
            (DeleteError("bad", ["k"]), 1),
            (ImageIngestError("bad"), 1),
        ],
    )
    def test_error_exit_code(self, error, expected):
        assert error_exit_code(error) == expected
