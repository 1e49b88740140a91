"""Failure-translating decorator for storage backends.

Wraps any StorageBackend and re-raises every failure of the wrapped call as
``StorageUnavailable``, so no transport error leaks past the adapter boundary
as a library-specific exception.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from uploadgate.errors import StorageUnavailable, UploadError
from uploadgate.models import BucketCreation, CompletionResult, PartDescriptor
from uploadgate.storage.backend import StorageBackend

logger = logging.getLogger(__name__)


class GuardedBackend:
    """StorageBackend decorator translating failures into StorageUnavailable.

    Errors that are already ``UploadError`` instances pass through unchanged.
    Nothing is retried.

    Attributes:
        inner: The wrapped backend.
    """

    def __init__(self, inner: StorageBackend) -> None:
        self.inner = inner

    @contextmanager
    def _translating(self, operation: str) -> Iterator[None]:
        try:
            yield
        except UploadError:
            raise
        except Exception as exc:
            logger.warning("Storage call %s failed: %s", operation, exc)
            raise StorageUnavailable(
                f"Object storage not available right now ({operation} failed)."
            ) from exc

    async def init(self) -> None:
        with self._translating("init"):
            await self.inner.init()

    async def close(self) -> None:
        await self.inner.close()

    async def bucket_exists(self, bucket: str) -> bool:
        with self._translating("bucket_exists"):
            return await self.inner.bucket_exists(bucket)

    async def create_bucket(self, bucket: str) -> BucketCreation:
        with self._translating("create_bucket"):
            return await self.inner.create_bucket(bucket)

    async def initiate_multipart(
        self,
        bucket: str,
        key: str,
        content_type: str,
        metadata: dict[str, str],
    ) -> str:
        with self._translating("initiate_multipart"):
            return await self.inner.initiate_multipart(bucket, key, content_type, metadata)

    async def presign(
        self,
        bucket: str,
        key: str,
        method: str,
        expires_in: int,
        upload_id: str | None = None,
        part_number: int | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        with self._translating("presign"):
            return await self.inner.presign(
                bucket,
                key,
                method,
                expires_in,
                upload_id=upload_id,
                part_number=part_number,
                metadata=metadata,
            )

    async def complete_multipart(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: Sequence[PartDescriptor],
    ) -> CompletionResult:
        with self._translating("complete_multipart"):
            return await self.inner.complete_multipart(bucket, key, upload_id, parts)

    async def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        with self._translating("abort_multipart"):
            await self.inner.abort_multipart(bucket, key, upload_id)

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        with self._translating("put_object"):
            await self.inner.put_object(bucket, key, body, content_type, metadata)
