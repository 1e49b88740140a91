"""Idempotent bucket provisioning."""

import logging

from uploadgate.errors import StorageUnavailable
from uploadgate.models import BucketCreation
from uploadgate.storage.backend import StorageBackend

logger = logging.getLogger(__name__)


class BucketProvisioner:
    """Ensures the upload bucket exists before traffic is accepted.

    Attributes:
        backend: The (guarded) storage backend.
        bucket: The bucket name to provision.
    """

    def __init__(self, backend: StorageBackend, bucket: str) -> None:
        self.backend = backend
        self.bucket = bucket

    async def ensure_bucket_ready(self) -> None:
        """Create the bucket unless it already exists.

        Safe to call concurrently: when two callers both see the bucket as
        absent, the loser's create answers "already exists", which counts as
        success.

        Raises:
            StorageUnavailable: If the store errors or rejects the creation.
        """
        if await self.backend.bucket_exists(self.bucket):
            logger.debug("Bucket %s already exists", self.bucket)
            return

        outcome = await self.backend.create_bucket(self.bucket)
        if outcome is BucketCreation.CREATED:
            logger.info("Created bucket %s", self.bucket)
        elif outcome is BucketCreation.ALREADY_EXISTS:
            logger.info("Bucket %s was created concurrently", self.bucket)
        else:
            raise StorageUnavailable(f"Bucket {self.bucket} couldn't be created.")
