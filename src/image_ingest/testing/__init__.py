"""Testing utilities and fakes for image ingestion."""

from .fakes import (
    FakeAsyncS3Client,
    FakeLogger,
    FakeSession,
    FakeUploadStream,
    S3Object,
    S3Bucket,
    create_test_image,
    image_size,
    setup_test_s3_environment,
)

__all__ = [
    "FakeAsyncS3Client",
    "FakeLogger",
    "FakeSession",
    "FakeUploadStream",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "image_size",
    "setup_test_s3_environment",
]
