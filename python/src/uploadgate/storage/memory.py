"""In-memory storage backend for UploadGate.

Implements the StorageBackend protocol using Python dictionaries, emulating
the parts of S3's multipart protocol the coordinator relies on. Intended for
local development and tests: nothing survives a restart.

Presigned URLs use the ``memory://`` scheme and cannot be uploaded to over
HTTP; ``record_part`` stands in for a client PUT against a part URL.
"""

import hashlib
import logging
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from urllib.parse import urlencode

from uploadgate.models import BucketCreation, CompletionResult, PartDescriptor

logger = logging.getLogger(__name__)


class MemoryStorageError(Exception):
    """Raised when the memory backend cannot fulfill a request."""


@dataclass
class _PendingUpload:
    bucket: str
    key: str
    content_type: str
    metadata: dict[str, str]
    # part_number -> (data, etag)
    parts: dict[int, tuple[bytes, str]] = field(default_factory=dict)


class MemoryStorageBackend:
    """Storage backend that holds buckets, objects and uploads in memory.

    Objects are stored in a dictionary keyed by (bucket, key) with values of
    (data, content_type, metadata). Pending multipart uploads are keyed by
    their upload ID.
    """

    def __init__(self) -> None:
        self._buckets: set[str] = set()
        self._objects: dict[tuple[str, str], tuple[bytes, str, dict[str, str]]] = {}
        self._uploads: dict[str, _PendingUpload] = {}

    async def init(self) -> None:
        logger.info("Memory storage backend initialized")

    async def close(self) -> None:
        self._uploads.clear()

    async def bucket_exists(self, bucket: str) -> bool:
        return bucket in self._buckets

    async def create_bucket(self, bucket: str) -> BucketCreation:
        if bucket in self._buckets:
            return BucketCreation.ALREADY_EXISTS
        self._buckets.add(bucket)
        return BucketCreation.CREATED

    def _require_bucket(self, bucket: str) -> None:
        if bucket not in self._buckets:
            raise MemoryStorageError(f"No such bucket: {bucket}")

    async def initiate_multipart(
        self,
        bucket: str,
        key: str,
        content_type: str,
        metadata: dict[str, str],
    ) -> str:
        self._require_bucket(bucket)
        upload_id = uuid.uuid4().hex
        self._uploads[upload_id] = _PendingUpload(
            bucket=bucket,
            key=key,
            content_type=content_type,
            metadata=dict(metadata),
        )
        return upload_id

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
        query: dict[str, str | int] = {
            "X-Method": method.upper(),
            "X-Expires": int(time.time()) + expires_in,
        }
        if upload_id is not None and part_number is not None:
            query["uploadId"] = upload_id
            query["partNumber"] = part_number
        for name, value in (metadata or {}).items():
            query[f"x-amz-meta-{name}"] = value
        return f"memory://{bucket}/{key}?{urlencode(query)}"

    def record_part(self, upload_id: str, part_number: int, data: bytes) -> str:
        """Store a part as if a client had PUT it to its presigned URL.

        Re-uploading a part number replaces the previous bytes.

        Returns:
            The quoted hex MD5 ETag of the part.

        Raises:
            MemoryStorageError: If the upload does not exist.
        """
        upload = self._uploads.get(upload_id)
        if upload is None:
            raise MemoryStorageError(f"No such upload: {upload_id}")
        etag = f'"{hashlib.md5(data).hexdigest()}"'
        upload.parts[part_number] = (data, etag)
        return etag

    async def complete_multipart(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: Sequence[PartDescriptor],
    ) -> CompletionResult:
        upload = self._uploads.get(upload_id)
        if upload is None or (upload.bucket, upload.key) != (bucket, key):
            logger.warning("Completion for unknown upload %s", upload_id)
            return CompletionResult(status_ok=False)
        if not parts:
            return CompletionResult(status_ok=False)

        chunks = []
        for part in sorted(parts, key=lambda p: p.part_number):
            stored = upload.parts.get(part.part_number)
            if stored is None or stored[1].strip('"') != part.etag.strip('"'):
                logger.warning(
                    "Completion for upload %s names invalid part %d",
                    upload_id,
                    part.part_number,
                )
                return CompletionResult(status_ok=False)
            chunks.append(stored[0])

        self._objects[(bucket, key)] = (b"".join(chunks), upload.content_type, upload.metadata)
        del self._uploads[upload_id]
        return CompletionResult(status_ok=True, location=f"memory://{bucket}/{key}")

    async def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        upload = self._uploads.get(upload_id)
        if upload is None or (upload.bucket, upload.key) != (bucket, key):
            raise MemoryStorageError(f"No such upload: {upload_id} for {bucket}/{key}")
        del self._uploads[upload_id]

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        self._require_bucket(bucket)
        self._objects[(bucket, key)] = (body, content_type, dict(metadata))

    def get_object(self, bucket: str, key: str) -> tuple[bytes, str, dict[str, str]]:
        """Return (data, content_type, metadata) of a stored object.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        try:
            return self._objects[(bucket, key)]
        except KeyError:
            raise FileNotFoundError(f"Object not found: {bucket}/{key}") from None

    def pending_uploads(self) -> list[str]:
        """Return the IDs of multipart uploads that are neither completed nor aborted."""
        return list(self._uploads)
