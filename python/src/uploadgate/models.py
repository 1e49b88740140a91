"""Data model types for UploadGate.

These dataclasses describe upload sessions, part manifests, and the result
containers returned by the storage backend. Nothing here is persisted: the
object store is the system of record for every session.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

# Part numbers accepted for a single multipart session.
MIN_PART_NUMBER = 1
MAX_PART_NUMBER = 1000


class SessionState(str, enum.Enum):
    """Lifecycle of a multipart upload session.

    INITIATED -> COMPLETING -> COMPLETED | ABORTED. Terminal states are final.
    """

    INITIATED = "initiated"
    COMPLETING = "completing"
    COMPLETED = "completed"
    ABORTED = "aborted"


class BucketCreation(str, enum.Enum):
    """Outcome of a create-bucket call."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    REJECTED = "rejected"


@dataclass
class UploadSession:
    """A multipart upload session.

    Attributes:
        key: Opaque object key minted by the key allocator.
        upload_id: Session token issued by the backend's initiate call.
        file_name: The caller's original file name, if known.
        state: Current lifecycle state.
    """

    key: str
    upload_id: str
    file_name: str = ""
    state: SessionState = SessionState.INITIATED


@dataclass(frozen=True)
class PartDescriptor:
    """A completed part: its number and the ETag the backend assigned to it."""

    part_number: int
    etag: str


@dataclass(frozen=True)
class CompletionResult:
    """Response of the backend's complete-multipart primitive.

    Attributes:
        status_ok: Whether the backend answered with an OK-class status.
        location: Resulting object location; empty when the backend gave none.
    """

    status_ok: bool
    location: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status_ok and bool(self.location)
