"""Single-request upload path for small files.

Bytes pass through the application tier here, unlike multipart sessions and
single-shot presigned uploads.
"""

import logging

from uploadgate import metrics
from uploadgate.errors import InvalidArgument, UploadError
from uploadgate.keys import KeyFactory, new_key
from uploadgate.storage.backend import StorageBackend

logger = logging.getLogger(__name__)


class DirectUploader:
    """Stores a whole uploaded file under a fresh key.

    Attributes:
        backend: The guarded storage backend.
        bucket: The bucket uploads target.
        allowed_content_type: The only content type accepted.
        scan_status: Initial processing-status marker tagged on objects.
    """

    def __init__(
        self,
        backend: StorageBackend,
        bucket: str,
        allowed_content_type: str = "video/mp4",
        scan_status: str = "PENDING",
        key_factory: KeyFactory = new_key,
    ) -> None:
        self.backend = backend
        self.bucket = bucket
        self.allowed_content_type = allowed_content_type
        self.scan_status = scan_status
        self.key_factory = key_factory

    async def upload(self, file_name: str, content_type: str, body: bytes) -> str:
        """Store ``body`` and return its new key.

        Raises:
            InvalidArgument: If the body is empty or the content type is not
                the allowed one.
            StorageUnavailable: If the object store call fails.
        """
        try:
            if not body:
                raise InvalidArgument("File must be informed")
            if content_type.lower() != self.allowed_content_type.lower():
                raise InvalidArgument(f"File must be {self.allowed_content_type}")

            key = self.key_factory()
            await self.backend.put_object(
                self.bucket,
                key,
                body,
                content_type,
                {"original-file-name": file_name, "scan-status": self.scan_status},
            )
        except UploadError as exc:
            metrics.record_operation("direct_upload", exc.code)
            raise

        metrics.record_operation("direct_upload", "ok")
        logger.info("Stored %d bytes under key %s (%s)", len(body), key, file_name)
        return key
