"""Shared pytest fixtures for UploadGate tests.

A single FastAPI app is created per test session to avoid duplicate
Prometheus metric registration errors (the instrumentator registers
collectors in the global prometheus_client registry).

Storage is bootstrapped onto the app per test with a fresh in-memory
backend, since the lifespan context doesn't auto-run with ASGITransport.
"""

import asyncio
from collections.abc import Sequence
from urllib.parse import urlencode

import pytest
from httpx import ASGITransport, AsyncClient

from uploadgate.config import (
    ObservabilityConfig,
    ServerConfig,
    StorageConfig,
    UploadGateConfig,
)
from uploadgate.models import BucketCreation, CompletionResult, PartDescriptor
from uploadgate.server import bootstrap, create_app
from uploadgate.storage.guarded import GuardedBackend
from uploadgate.storage.memory import MemoryStorageBackend


class RecordingBackend:
    """StorageBackend fake that records every call and returns scripted results.

    Attributes:
        calls: (operation, args) tuples in call order.
        exists: Result of bucket_exists.
        create_results: Results of successive create_bucket calls; the last
            one repeats.
        upload_ids: Upload IDs returned by successive initiate calls.
        completion: Result of complete_multipart.
        complete_error: Raised by complete_multipart instead, if set.
        abort_error: Raised by abort_multipart, if set.
        yield_control: Yield to the event loop inside bucket calls so
            concurrent callers interleave.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.exists = False
        self.create_results = [BucketCreation.CREATED]
        self.buckets_created = 0
        self.upload_ids = ["u1"]
        self.completion = CompletionResult(status_ok=True, location="store://bucket/k1")
        self.complete_error: Exception | None = None
        self.abort_error: Exception | None = None
        self.yield_control = False

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def args_of(self, operation: str) -> list[tuple]:
        return [args for name, args in self.calls if name == operation]

    async def init(self) -> None:
        self.calls.append(("init", ()))

    async def close(self) -> None:
        self.calls.append(("close", ()))

    async def bucket_exists(self, bucket: str) -> bool:
        self.calls.append(("bucket_exists", (bucket,)))
        if self.yield_control:
            await asyncio.sleep(0)
        return self.exists

    async def create_bucket(self, bucket: str) -> BucketCreation:
        self.calls.append(("create_bucket", (bucket,)))
        index = min(self.count("create_bucket"), len(self.create_results)) - 1
        result = self.create_results[index]
        if self.yield_control:
            await asyncio.sleep(0)
        if result is BucketCreation.CREATED:
            self.buckets_created += 1
        return result

    async def initiate_multipart(
        self, bucket: str, key: str, content_type: str, metadata: dict[str, str]
    ) -> str:
        self.calls.append(("initiate_multipart", (bucket, key, content_type, metadata)))
        index = min(self.count("initiate_multipart"), len(self.upload_ids)) - 1
        return self.upload_ids[index]

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
        self.calls.append(
            ("presign", (bucket, key, method, expires_in, upload_id, part_number, metadata))
        )
        query: dict = {"X-Expires": expires_in}
        if upload_id is not None:
            query["uploadId"] = upload_id
            query["partNumber"] = part_number
        return f"http://store/{bucket}/{key}?{urlencode(query)}"

    async def complete_multipart(
        self, bucket: str, key: str, upload_id: str, parts: Sequence[PartDescriptor]
    ) -> CompletionResult:
        self.calls.append(("complete_multipart", (bucket, key, upload_id, list(parts))))
        if self.complete_error is not None:
            raise self.complete_error
        return self.completion

    async def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        self.calls.append(("abort_multipart", (bucket, key, upload_id)))
        if self.abort_error is not None:
            raise self.abort_error

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        self.calls.append(("put_object", (bucket, key, body, content_type, metadata)))


@pytest.fixture
def recording() -> RecordingBackend:
    """A fresh recording fake per test."""
    return RecordingBackend()


@pytest.fixture
def guarded(recording: RecordingBackend) -> GuardedBackend:
    """The recording fake behind the failure-translating decorator."""
    return GuardedBackend(recording)


@pytest.fixture(scope="session")
def config() -> UploadGateConfig:
    """Create a test UploadGateConfig using the in-memory backend."""
    return UploadGateConfig(
        server=ServerConfig(host="127.0.0.1", port=8090),
        storage=StorageConfig(backend="memory", bucket="test-videos"),
        observability=ObservabilityConfig(metrics=True),
    )


@pytest.fixture(scope="session")
def app(config: UploadGateConfig):
    """Create a single test FastAPI application for the whole session."""
    return create_app(config)


@pytest.fixture
def memory_storage() -> MemoryStorageBackend:
    """A fresh in-memory backend per test."""
    return MemoryStorageBackend()


@pytest.fixture
async def client(app, memory_storage) -> AsyncClient:
    """Create an async test client with freshly bootstrapped storage."""
    storage = GuardedBackend(memory_storage)
    await bootstrap(app, storage)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    await storage.close()
