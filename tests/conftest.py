"""Shared fixtures: an app on a throwaway SQLite file and an in-memory bucket."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from filegate.blob import BlobObject, BlobStoreError
from filegate.core.config import Settings
from filegate.main import create_app


class FakeBody:
    def __init__(self, data: bytes, fail_after: int | None = None) -> None:
        self._data = data
        self._fail_after = fail_after
        self.closed = False

    def iter_chunks(self, chunk_size: int = 1024):
        sent = 0
        for start in range(0, len(self._data), chunk_size):
            if self._fail_after is not None and sent >= self._fail_after:
                raise ConnectionResetError("backend went away")
            chunk = self._data[start : start + chunk_size]
            sent += len(chunk)
            yield chunk

    def close(self) -> None:
        self.closed = True


class FakeBlobStore:
    """Stands in for BlobStore; records every call it receives."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple] = []
        self.fail_put = False
        self.fail_get = False
        self.fail_stream_after: int | None = None

    def put(self, key, stream):
        self.calls.append(("put", key))
        if self.fail_put:
            raise BlobStoreError("upload object (stream): boom")
        self.objects[key] = stream.read()

    def put_multipart(self, key, stream, part_size):
        self.calls.append(("put_multipart", key, part_size))
        if self.fail_put:
            raise BlobStoreError("create multipart upload: boom")
        parts = []
        while True:
            chunk = stream.read(part_size)
            if not chunk:
                break
            parts.append(chunk)
        self.objects[key] = b"".join(parts)
        return len(parts)

    def get(self, key):
        self.calls.append(("get", key))
        if self.fail_get or key not in self.objects:
            raise BlobStoreError("download object: NoSuchKey")
        return BlobObject(
            body=FakeBody(self.objects[key], self.fail_stream_after),
            content_type="application/octet-stream",
            content_length=len(self.objects[key]),
        )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'filegate.db'}",
        aws_s3_bucket_name="test-bucket",
        geolocation_enabled=False,
        dev=True,
        multipart_threshold=1024,
        multipart_part_size=256,
    )


@pytest.fixture
def blob() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def app(settings, blob):
    return create_app(settings, blob=blob)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_service(app):
    return app.state.auth


@pytest.fixture
def storage_service(app):
    return app.state.storage


@pytest.fixture
def alice_session(auth_service) -> str:
    auth_service.register("alice@example.com", "wonderland", "alice")
    return auth_service.login("alice@example.com", "wonderland", "pytest", "127.0.0.1")


@pytest.fixture
def alice_headers(alice_session) -> dict[str, str]:
    return {"Authorization": f"Bearer {alice_session}"}
