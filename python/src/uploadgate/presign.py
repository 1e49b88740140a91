"""Presigned upload authorization issuing.

URLs are write-scoped (PUT) and expire after the configured lifetime; the
object store enforces expiry, nothing is tracked here.
"""

from uploadgate.storage.backend import StorageBackend

DEFAULT_EXPIRY_SECONDS = 15 * 60


class PresignedAuthorizationIssuer:
    """Mints short-lived upload URLs for parts and whole objects.

    Attributes:
        backend: The (guarded) storage backend.
        bucket: The bucket uploads target.
        expires_in: URL lifetime in seconds.
        scan_status: Processing-status marker signed into single-shot uploads.
    """

    def __init__(
        self,
        backend: StorageBackend,
        bucket: str,
        expires_in: int = DEFAULT_EXPIRY_SECONDS,
        scan_status: str = "PENDING",
    ) -> None:
        self.backend = backend
        self.bucket = bucket
        self.expires_in = expires_in
        self.scan_status = scan_status

    async def for_part(self, key: str, upload_id: str, part_number: int) -> str:
        """Return a PUT URL for exactly one part of one multipart upload."""
        return await self.backend.presign(
            self.bucket,
            key,
            "PUT",
            self.expires_in,
            upload_id=upload_id,
            part_number=part_number,
        )

    async def for_single_shot(self, key: str, file_name: str) -> str:
        """Return a PUT URL for a whole-object upload of ``key``.

        The signature covers the metadata headers, so the uploader must send
        ``x-amz-meta-file-name`` and ``x-amz-meta-scan-status`` with the values
        signed here.
        """
        return await self.backend.presign(
            self.bucket,
            key,
            "PUT",
            self.expires_in,
            metadata={"file-name": file_name, "scan-status": self.scan_status},
        )
