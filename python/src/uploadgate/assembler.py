"""Multipart completion with compensating abort.

A completion succeeds only when the object store answers with an OK status
AND a non-empty object location. Anything else (an error status, an empty
location, or a transport failure of the call itself) is followed by exactly
one abort-multipart call for the same (key, upload_id) before the failure is
propagated. The abort is best-effort: if it fails too, that failure is
attached to the propagated error as ``abort_error`` and never replaces it.
"""

import logging
from collections.abc import Iterable

from uploadgate import metrics
from uploadgate.errors import AbortFailed, CompletionFailed, StorageUnavailable
from uploadgate.models import PartDescriptor, SessionState, UploadSession
from uploadgate.storage.backend import StorageBackend
from uploadgate.validation import validate_manifest

logger = logging.getLogger(__name__)


class CompletionAssembler:
    """Submits part manifests to the object store.

    Attributes:
        backend: The guarded storage backend. Transport failures must surface
            as ``StorageUnavailable``.
        bucket: The bucket uploads target.
    """

    def __init__(self, backend: StorageBackend, bucket: str) -> None:
        self.backend = backend
        self.bucket = bucket

    async def complete(
        self,
        key: str,
        upload_id: str,
        parts: Iterable[PartDescriptor],
    ) -> UploadSession:
        """Complete a multipart upload.

        Args:
            key: The object key of the session.
            upload_id: The backend-issued upload ID.
            parts: Part numbers and ETags, in any order. An empty manifest is
                forwarded to the store as-is.

        Returns:
            The session in state COMPLETED.

        Raises:
            InvalidArgument: If a manifest entry is invalid (no backend call).
            CompletionFailed: If the store reports an error status or an empty
                location (after the compensating abort).
            StorageUnavailable: If the completion call itself failed (after
                the compensating abort).
        """
        manifest = validate_manifest(parts)
        session = UploadSession(key=key, upload_id=upload_id, state=SessionState.COMPLETING)

        try:
            result = await self.backend.complete_multipart(self.bucket, key, upload_id, manifest)
        except StorageUnavailable as exc:
            exc.abort_error = await self._compensate(session)
            raise

        if not result.succeeded:
            reason = "empty location" if result.status_ok else "error status"
            logger.warning(
                "Completion of upload %s for key %s failed: %s",
                upload_id,
                key,
                reason,
                extra={"key": key, "upload_id": upload_id},
            )
            error = CompletionFailed(key=key, upload_id=upload_id, reason=reason)
            error.abort_error = await self._compensate(session)
            raise error

        session.state = SessionState.COMPLETED
        logger.info("Completed upload %s for key %s at %s", upload_id, key, result.location)
        return session

    async def _compensate(self, session: UploadSession) -> AbortFailed | None:
        """Abort the session's upload; return the abort failure, if any.

        The session moves to ABORTED only once the store confirms the abort.
        """
        try:
            await self.backend.abort_multipart(self.bucket, session.key, session.upload_id)
        except StorageUnavailable as exc:
            logger.warning(
                "Failed to abort multipart upload %s for key %s",
                session.upload_id,
                session.key,
                extra={"key": session.key, "upload_id": session.upload_id},
            )
            metrics.record_abort("failed")
            return AbortFailed(key=session.key, upload_id=session.upload_id, cause=exc.message)

        session.state = SessionState.ABORTED
        logger.info("Aborted multipart upload %s for key %s", session.upload_id, session.key)
        metrics.record_abort("ok")
        return None
