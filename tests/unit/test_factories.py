"""Unit tests for backend and engine factories."""

from unittest.mock import patch

import pytest

from image_ingest.backends import LocalFilesystemAdapter, ObjectStorageAdapter
from image_ingest.core.exceptions import ConfigurationError
from image_ingest.core.factories import S3ClientFactory, create_backend, create_engine
from image_ingest.core.models import EngineConfig
from image_ingest.testing.fakes import FakeLogger, FakeSession, setup_test_s3_environment


@pytest.fixture
def s3_config():
    return EngineConfig.build(backend="s3", bucket="media", acl="private", region="eu-west-1")


class TestCreateBackend:
    """Tests for create_backend."""

    def test_local_backend(self, tmp_path):
        backend = create_backend(EngineConfig.build(root_dir=tmp_path))

        assert isinstance(backend, LocalFilesystemAdapter)
        assert backend.root == tmp_path.resolve()

    def test_object_store_backend(self, s3_config):
        backend = create_backend(s3_config, setup_test_s3_environment("media"))

        assert isinstance(backend, ObjectStorageAdapter)
        assert backend.location == "media"

    def test_object_store_requires_client(self, s3_config):
        """Test the object-store backend cannot be built without a client."""
        with pytest.raises(ConfigurationError, match="S3 client"):
            create_backend(s3_config)


class TestCreateEngine:
    """Tests for create_engine."""

    def test_create_engine_wires_backend_and_logger(self, tmp_path):
        logger = FakeLogger()
        config = EngineConfig.build(root_dir=tmp_path)

        engine = create_engine(config, logger=logger)

        assert engine.config is config
        assert isinstance(engine.backend, LocalFilesystemAdapter)
        assert engine._logger is logger


class TestS3ClientFactory:
    """Tests for S3ClientFactory."""

    def test_create_session_with_region(self):
        with patch("image_ingest.core.factories.aioboto3.Session") as mock_session:
            S3ClientFactory.create_session("eu-west-1")

        mock_session.assert_called_once_with(region_name="eu-west-1")

    def test_create_client_without_endpoint(self, s3_config):
        client = setup_test_s3_environment("media")
        session = FakeSession(client)

        assert S3ClientFactory.create_client(s3_config, session) is client
        assert session.client_calls == [{"service_name": "s3"}]

    def test_create_client_builds_session_from_region(self, s3_config):
        with patch.object(S3ClientFactory, "create_session") as mock_create_session:
            S3ClientFactory.create_client(s3_config)

        mock_create_session.assert_called_once_with("eu-west-1")
        mock_create_session.return_value.client.assert_called_once_with("s3")
