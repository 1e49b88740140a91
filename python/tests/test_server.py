"""Tests for the UploadGate HTTP API.

Runs the full stack (routes -> coordinator -> guarded in-memory backend).
Part uploads that a real client would PUT to presigned URLs are simulated
with MemoryStorageBackend.record_part().
"""

from urllib.parse import parse_qs, urlparse

import pytest
from httpx import ASGITransport, AsyncClient

from uploadgate.config import ObservabilityConfig, StorageConfig, UploadGateConfig
from uploadgate.server import bootstrap, create_app
from uploadgate.storage.guarded import GuardedBackend


async def _start(client: AsyncClient, file_name: str = "clip.mp4") -> dict:
    resp = await client.post("/videos/start-multipart", json={"fileName": file_name})
    assert resp.status_code == 200
    return resp.json()


class TestHealthCheck:
    """Tests for the /health endpoint."""

    async def test_health_returns_ok(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_request_id_header(self, client):
        resp = await client.get("/health")
        req_id = resp.headers["x-request-id"]
        assert len(req_id) == 16
        int(req_id, 16)


class TestBootstrap:
    """Tests for bootstrap()."""

    async def test_bucket_provisioned(self, client, memory_storage):
        assert await memory_storage.bucket_exists("test-videos")

    async def test_bootstrap_is_repeatable(self, app, memory_storage):
        await bootstrap(app, GuardedBackend(memory_storage))
        await bootstrap(app, GuardedBackend(memory_storage))
        assert await memory_storage.bucket_exists("test-videos")


class TestMultipartFlow:
    """Tests for start-multipart, pre-signed-part and complete-multipart."""

    async def test_start_multipart(self, client, memory_storage):
        body = await _start(client)
        assert set(body) == {"key", "uploadId"}
        assert memory_storage.pending_uploads() == [body["uploadId"]]

    async def test_start_multipart_requires_file_name(self, client):
        resp = await client.post("/videos/start-multipart", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "InvalidArgument"

    async def test_pre_signed_part(self, client):
        session = await _start(client)
        resp = await client.post(
            f"/videos/{session['key']}/pre-signed-part",
            json={"uploadId": session["uploadId"], "partNumber": 4},
        )
        assert resp.status_code == 200
        query = parse_qs(urlparse(resp.json()["url"]).query)
        assert query["partNumber"] == ["4"]
        assert query["uploadId"] == [session["uploadId"]]

    @pytest.mark.parametrize("part_number", [True, "1", 1.0])
    async def test_pre_signed_part_requires_integer(self, client, part_number):
        session = await _start(client)
        resp = await client.post(
            f"/videos/{session['key']}/pre-signed-part",
            json={"uploadId": session["uploadId"], "partNumber": part_number},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "InvalidArgument"

    async def test_pre_signed_part_out_of_range(self, client):
        session = await _start(client)
        resp = await client.post(
            f"/videos/{session['key']}/pre-signed-part",
            json={"uploadId": session["uploadId"], "partNumber": 1001},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "InvalidArgument"

    async def test_full_lifecycle(self, client, memory_storage):
        session = await _start(client)
        key, upload_id = session["key"], session["uploadId"]
        etags = {}
        for number, chunk in ((2, b"-part-two"), (1, b"part-one")):
            await client.post(
                f"/videos/{key}/pre-signed-part",
                json={"uploadId": upload_id, "partNumber": number},
            )
            etags[number] = memory_storage.record_part(upload_id, number, chunk)

        resp = await client.post(
            f"/videos/{key}/complete-multipart",
            json={
                "uploadId": upload_id,
                "parts": [{"partNumber": n, "etag": e} for n, e in etags.items()],
            },
        )

        assert resp.status_code == 200
        assert resp.content == b""
        data, content_type, metadata = memory_storage.get_object("test-videos", key)
        assert data == b"part-one-part-two"
        assert content_type == "video/mp4"
        assert metadata == {"file-name": "clip.mp4", "scan-status": "PENDING"}

    async def test_complete_accepts_etag_spelling(self, client, memory_storage):
        session = await _start(client)
        etag = memory_storage.record_part(session["uploadId"], 1, b"x")
        resp = await client.post(
            f"/videos/{session['key']}/complete-multipart",
            json={"uploadId": session["uploadId"], "parts": [{"partNumber": 1, "ETag": etag}]},
        )
        assert resp.status_code == 200

    async def test_rejected_completion_aborts_upload(self, client, memory_storage):
        session = await _start(client)
        memory_storage.record_part(session["uploadId"], 1, b"x")

        resp = await client.post(
            f"/videos/{session['key']}/complete-multipart",
            json={"uploadId": session["uploadId"], "parts": [{"partNumber": 1, "etag": "wrong"}]},
        )

        assert resp.status_code == 502
        assert resp.json()["error"] == "CompletionFailed"
        assert memory_storage.pending_uploads() == []

    async def test_second_completion_fails(self, client, memory_storage):
        session = await _start(client)
        etag = memory_storage.record_part(session["uploadId"], 1, b"x")
        payload = {"uploadId": session["uploadId"], "parts": [{"partNumber": 1, "etag": etag}]}

        first = await client.post(f"/videos/{session['key']}/complete-multipart", json=payload)
        second = await client.post(f"/videos/{session['key']}/complete-multipart", json=payload)

        assert first.status_code == 200
        # The compensating abort also fails (upload is gone): still CompletionFailed.
        assert second.status_code == 502
        assert second.json()["error"] == "CompletionFailed"

    async def test_wrong_key_leaves_real_upload_pending(self, client, memory_storage):
        session = await _start(client)
        etag = memory_storage.record_part(session["uploadId"], 1, b"x")
        payload = {"uploadId": session["uploadId"], "parts": [{"partNumber": 1, "etag": etag}]}

        wrong = await client.post("/videos/other-key/complete-multipart", json=payload)

        assert wrong.status_code == 502
        assert memory_storage.pending_uploads() == [session["uploadId"]]
        right = await client.post(f"/videos/{session['key']}/complete-multipart", json=payload)
        assert right.status_code == 200

    @pytest.mark.parametrize("part_number", [True, "1", 1.0])
    async def test_manifest_part_number_requires_integer(
        self, client, memory_storage, part_number
    ):
        session = await _start(client)
        resp = await client.post(
            f"/videos/{session['key']}/complete-multipart",
            json={
                "uploadId": session["uploadId"],
                "parts": [{"partNumber": part_number, "etag": "a"}],
            },
        )
        assert resp.status_code == 400
        assert memory_storage.pending_uploads() == [session["uploadId"]]

    async def test_duplicate_parts_rejected(self, client, memory_storage):
        session = await _start(client)
        resp = await client.post(
            f"/videos/{session['key']}/complete-multipart",
            json={
                "uploadId": session["uploadId"],
                "parts": [{"partNumber": 1, "etag": "a"}, {"partNumber": 1, "etag": "b"}],
            },
        )
        assert resp.status_code == 400
        assert memory_storage.pending_uploads() == [session["uploadId"]]


class TestSingleShot:
    """Tests for POST /videos/pre-signed."""

    async def test_pre_signed(self, client):
        resp = await client.post("/videos/pre-signed", json={"fileName": "small.mp4"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["key"]
        parsed = urlparse(body["url"])
        assert parsed.path == f"/{body['key']}"
        assert parse_qs(parsed.query)["x-amz-meta-file-name"] == ["small.mp4"]


class TestDirectUpload:
    """Tests for POST /videos/upload."""

    async def test_upload_mp4(self, client, memory_storage):
        resp = await client.post(
            "/videos/upload",
            files={"file": ("clip.mp4", b"\x00\x01video", "video/mp4")},
        )
        assert resp.status_code == 202
        file_id = resp.json()["fileId"]
        data, content_type, metadata = memory_storage.get_object("test-videos", file_id)
        assert data == b"\x00\x01video"
        assert metadata == {"original-file-name": "clip.mp4", "scan-status": "PENDING"}

    async def test_upload_wrong_type(self, client):
        resp = await client.post(
            "/videos/upload",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "File must be video/mp4"

    async def test_upload_empty_file(self, client):
        resp = await client.post(
            "/videos/upload",
            files={"file": ("clip.mp4", b"", "video/mp4")},
        )
        assert resp.status_code == 400


class TestStorageUnavailable:
    """Backend outages surface as 424 Failed Dependency."""

    async def test_start_multipart_when_store_down(self, recording):
        config = UploadGateConfig(
            storage=StorageConfig(backend="memory", bucket="b"),
            observability=ObservabilityConfig(metrics=False),
        )
        app = create_app(config)
        recording.exists = True
        await bootstrap(app, GuardedBackend(recording))

        async def broken(*args):
            raise ConnectionError("refused")

        recording.initiate_multipart = broken

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            resp = await ac.post("/videos/start-multipart", json={"fileName": "clip.mp4"})

        assert resp.status_code == 424
        assert resp.json()["error"] == "StorageUnavailable"
