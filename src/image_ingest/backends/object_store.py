"""S3-compatible object storage backend."""

from typing import Any, Dict, Iterable, List

from botocore.exceptions import BotoCoreError, ClientError

from ..core.error_handling import describe_client_error
from ..core.exceptions import ConfigurationError, DeleteError
from ..core.logging_config import get_logger
from ..core.models import WriteDescriptor
from ..core.protocols import AsyncS3ClientProtocol, BackendAdapter, unique_keys


class ObjectStorageAdapter(BackendAdapter):
    """Stores renditions as objects in one bucket through an async S3 client.

    Durability is delegated to the service: a write succeeds when
    ``put_object`` is acknowledged.
    """

    def __init__(self, s3_client: AsyncS3ClientProtocol, bucket: str, acl: str):
        if s3_client is None:
            raise ConfigurationError("An S3 client is required for the object-store backend")
        if not bucket:
            raise ConfigurationError("A bucket is required for the object-store backend")
        if not acl:
            raise ConfigurationError("An ACL is required for the object-store backend")

        self._s3_client = s3_client
        self._bucket = bucket
        self._acl = acl
        self._logger = get_logger("backend.object_store")

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def location(self) -> str:
        return self._bucket

    async def write(self, key: str, data: bytes, content_type: str) -> WriteDescriptor:
        self._logger.debug(f"Uploading {len(data)} bytes to s3://{self._bucket}/{key}")
        await self._s3_client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            ACL=self._acl,
        )
        return WriteDescriptor(
            key=key, location=self._bucket, size=len(data), content_type=content_type
        )

    async def delete(self, keys: Iterable[str]) -> None:
        """Delete all keys with a single DeleteObjects request."""
        keys = unique_keys(keys)
        if not keys:
            return

        try:
            response: Dict[str, Any] = await self._s3_client.delete_objects(
                Bucket=self._bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": False},
            )
        except ClientError as exc:
            details = describe_client_error(exc)
            self._logger.error(
                f"DeleteObjects failed in bucket {self._bucket}: "
                f"{details['code']} {details['message']}"
            )
            raise DeleteError(
                f"Object store rejected delete ({details['code']})", keys
            ) from exc
        except (BotoCoreError, OSError) as exc:
            self._logger.error(f"DeleteObjects failed in bucket {self._bucket}: {exc}")
            raise DeleteError(f"Object store delete failed ({exc})", keys) from exc

        failed: List[str] = []
        for error in response.get("Errors", []) or []:
            key = error.get("Key", "")
            self._logger.error(
                f"Failed to delete s3://{self._bucket}/{key}: "
                f"{error.get('Code')} {error.get('Message')}"
            )
            failed.append(key)

        if failed:
            raise DeleteError("Object store failed to delete objects", failed)

        self._logger.debug(f"Deleted {len(keys)} objects from {self._bucket}")


__all__ = ["ObjectStorageAdapter"]
