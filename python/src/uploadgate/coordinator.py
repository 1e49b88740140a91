"""Upload session coordination.

The coordinator is stateless: every call forwards the caller's
(key, upload_id) capability pair to the object store, which is the system of
record for sessions. There is no session table, no lock, no retry, and no
timeout beyond the caller's own.

Session lifecycle (enforced jointly with the object store):

    INITIATED --authorize_part(n)--> INITIATED   (any order, repeatable)
    INITIATED --complete_session--> COMPLETING
    COMPLETING --success--> COMPLETED
    COMPLETING --failure--> ABORTED   (after a compensating abort)
"""

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from uploadgate import metrics
from uploadgate.assembler import CompletionAssembler
from uploadgate.config import UploadGateConfig
from uploadgate.errors import UploadError
from uploadgate.keys import KeyFactory, new_key
from uploadgate.models import PartDescriptor, UploadSession
from uploadgate.presign import PresignedAuthorizationIssuer
from uploadgate.storage.backend import StorageBackend
from uploadgate.validation import validate_part_number

logger = logging.getLogger(__name__)


@contextmanager
def _observed(operation: str) -> Iterator[None]:
    """Count the outcome of one coordinator operation."""
    try:
        yield
    except UploadError as exc:
        metrics.record_operation(operation, exc.code)
        raise
    metrics.record_operation(operation, "ok")


class UploadSessionCoordinator:
    """Owns the multipart session protocol: initiate, authorize parts, close.

    Attributes:
        backend: The guarded storage backend.
        bucket: The bucket uploads target.
        issuer: Mints presigned URLs.
        assembler: Completes (or compensates) sessions.
        key_factory: Zero-argument callable minting fresh object keys.
        content_type: Content type of assembled objects.
        scan_status: Initial processing-status marker tagged on objects.
    """

    def __init__(
        self,
        backend: StorageBackend,
        bucket: str,
        issuer: PresignedAuthorizationIssuer | None = None,
        assembler: CompletionAssembler | None = None,
        key_factory: KeyFactory = new_key,
        content_type: str = "video/mp4",
        scan_status: str = "PENDING",
    ) -> None:
        self.backend = backend
        self.bucket = bucket
        self.issuer = issuer or PresignedAuthorizationIssuer(
            backend, bucket, scan_status=scan_status
        )
        self.assembler = assembler or CompletionAssembler(backend, bucket)
        self.key_factory = key_factory
        self.content_type = content_type
        self.scan_status = scan_status

    @classmethod
    def from_config(
        cls,
        backend: StorageBackend,
        config: UploadGateConfig,
        key_factory: KeyFactory = new_key,
    ) -> "UploadSessionCoordinator":
        """Build a coordinator from the loaded configuration."""
        bucket = config.storage.bucket
        issuer = PresignedAuthorizationIssuer(
            backend,
            bucket,
            expires_in=config.storage.presign_expiry_seconds,
            scan_status=config.uploads.scan_status,
        )
        return cls(
            backend,
            bucket,
            issuer=issuer,
            key_factory=key_factory,
            content_type=config.uploads.content_type,
            scan_status=config.uploads.scan_status,
        )

    async def start_session(self, file_name: str) -> UploadSession:
        """Initiate a multipart upload under a freshly minted key.

        Raises:
            StorageUnavailable: If the object store call fails.
        """
        with _observed("start_session"):
            key = self.key_factory()
            upload_id = await self.backend.initiate_multipart(
                self.bucket,
                key,
                self.content_type,
                {"file-name": file_name, "scan-status": self.scan_status},
            )
        logger.info("Started upload %s for key %s (%s)", upload_id, key, file_name)
        return UploadSession(key=key, upload_id=upload_id, file_name=file_name)

    async def authorize_part(self, key: str, upload_id: str, part_number: int) -> str:
        """Return a presigned PUT URL for one part of a session.

        Parts may be authorized in any order, any number of times.

        Raises:
            InvalidArgument: If part_number is outside [1, 1000]; the object
                store is not contacted.
            StorageUnavailable: If presigning fails.
        """
        with _observed("authorize_part"):
            validate_part_number(part_number)
            return await self.issuer.for_part(key, upload_id, part_number)

    async def complete_session(
        self,
        key: str,
        upload_id: str,
        parts: Iterable[PartDescriptor],
    ) -> UploadSession:
        """Assemble a session's parts; see CompletionAssembler.complete."""
        with _observed("complete_session"):
            return await self.assembler.complete(key, upload_id, parts)

    async def start_single_shot(self, file_name: str) -> tuple[str, str]:
        """Mint a key and a presigned URL for a whole-object upload.

        Returns:
            A (key, url) tuple.
        """
        with _observed("start_single_shot"):
            key = self.key_factory()
            url = await self.issuer.for_single_shot(key, file_name)
        return key, url
