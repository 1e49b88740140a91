"""Abstract object store backend protocol for UploadGate."""

from collections.abc import Sequence
from typing import Protocol

from uploadgate.models import BucketCreation, CompletionResult, PartDescriptor


class StorageBackend(Protocol):
    """Protocol defining the object store primitives the coordinator needs.

    Implementations (aiobotocore S3, in-memory) never see payload bytes of
    multipart sessions: clients upload parts straight to presigned URLs.
    The backend client handle must be safe for unsynchronized concurrent use.
    """

    async def init(self) -> None:
        """Initialize the backend (open client sessions, etc.)."""
        ...

    async def close(self) -> None:
        """Release resources held by the backend."""
        ...

    async def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket exists.

        Args:
            bucket: The bucket name.

        Returns:
            True if the bucket exists.
        """
        ...

    async def create_bucket(self, bucket: str) -> BucketCreation:
        """Create a bucket.

        Args:
            bucket: The bucket name.

        Returns:
            CREATED, ALREADY_EXISTS when another caller won the race, or
            REJECTED when the store answered with a non-success status.
        """
        ...

    async def initiate_multipart(
        self,
        bucket: str,
        key: str,
        content_type: str,
        metadata: dict[str, str],
    ) -> str:
        """Initiate a multipart upload.

        Args:
            bucket: The bucket name.
            key: The object key.
            content_type: MIME type of the final object.
            metadata: User metadata stored with the final object.

        Returns:
            The backend-issued upload ID.
        """
        ...

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
        """Mint a time-bounded URL for one operation.

        When ``upload_id`` and ``part_number`` are given the URL authorizes
        uploading exactly that part; otherwise it authorizes a whole-object
        upload of ``key``.

        Args:
            bucket: The bucket name.
            key: The object key.
            method: HTTP verb the URL authorizes (e.g. "PUT").
            expires_in: Lifetime of the URL in seconds.
            upload_id: The multipart upload ID, for part URLs.
            part_number: The part number, for part URLs.
            metadata: User metadata the uploader must send, for whole objects.

        Returns:
            The presigned URL.
        """
        ...

    async def complete_multipart(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: Sequence[PartDescriptor],
    ) -> CompletionResult:
        """Assemble uploaded parts into the final object.

        Args:
            bucket: The bucket name.
            key: The object key.
            upload_id: The multipart upload ID.
            parts: Part numbers and ETags, in any order.

        Returns:
            The status and resulting location reported by the store.
        """
        ...

    async def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        """Abort a multipart upload and discard its parts.

        Args:
            bucket: The bucket name.
            key: The object key.
            upload_id: The multipart upload ID.
        """
        ...

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        """Store a whole object in a single request.

        Args:
            bucket: The bucket name.
            key: The object key.
            body: The raw bytes to store.
            content_type: MIME type of the object.
            metadata: User metadata stored with the object.
        """
        ...
