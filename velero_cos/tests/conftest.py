import io
from datetime import timedelta

import pytest

from velero_cos.storage.backend import (
    BackendError,
    BackendFactory,
    BackendResponse,
    BucketBackend,
    ListResult,
    ObjectBackend,
)
from velero_cos.storage.object_store import ObjectStore


class FakeBucket:
    """In-memory bucket. Keys are listed in insertion order."""

    def __init__(self):
        self.objects = {}
        self.errors = {}
        self.statuses = {}
        self.common_prefixes = []
        self.calls = []

    def fail(self, operation: str, status_code=None, code: str = "") -> None:
        self.errors[operation] = BackendError(
            f"{operation} failed", status_code=status_code, code=code
        )

    def respond(self, operation: str, status_code: int) -> None:
        self.statuses[operation] = status_code

    def check(self, operation: str, *args) -> None:
        self.calls.append((operation,) + args)
        if operation in self.errors:
            raise self.errors[operation]

    def status(self, operation: str, default: int = 200) -> int:
        return self.statuses.get(operation, default)


class FakeObjectBackend(ObjectBackend):
    def __init__(self, bucket: FakeBucket):
        self.bucket = bucket

    def put(self, key, body):
        self.bucket.check("put", key)
        data = body if isinstance(body, bytes) else body.read()
        self.bucket.objects[key] = data
        return BackendResponse(status_code=self.bucket.status("put"))

    def head(self, key):
        self.bucket.check("head", key)
        if "head" not in self.bucket.statuses and key not in self.bucket.objects:
            raise BackendError(f"head {key}: not found", status_code=404, code="404")
        return BackendResponse(status_code=self.bucket.status("head"))

    def get(self, key):
        self.bucket.check("get", key)
        if key not in self.bucket.objects:
            raise BackendError(f"get {key}: not found", status_code=404, code="NoSuchKey")
        return BackendResponse(
            status_code=self.bucket.status("get"),
            body=io.BytesIO(self.bucket.objects[key]),
        )

    def delete(self, key):
        self.bucket.check("delete", key)
        self.bucket.objects.pop(key, None)
        return BackendResponse(status_code=self.bucket.status("delete", 204))

    def presigned_url(self, method, key, secret_id, secret_key, expires: timedelta):
        self.bucket.check("presign", method, key, secret_id, secret_key, expires)
        return (
            f"https://fake.example.com/{key}"
            f"?method={method}&ak={secret_id}&expires={int(expires.total_seconds())}"
        )


class FakeBucketBackend(BucketBackend):
    def __init__(self, bucket: FakeBucket):
        self.bucket = bucket

    def list(self, prefix="", delimiter=""):
        self.bucket.check("list", prefix, delimiter)
        keys = [key for key in self.bucket.objects if key.startswith(prefix)]
        return ListResult(keys=keys, common_prefixes=list(self.bucket.common_prefixes))


class FakeBackendFactory(BackendFactory):
    def __init__(self):
        self.buckets = {}
        self.created = []

    def bucket(self, name: str) -> FakeBucket:
        return self.buckets.setdefault(name, FakeBucket())

    def object_backend(self, bucket):
        backend = FakeObjectBackend(self.bucket(bucket))
        self.created.append(("object", bucket, backend))
        return backend

    def bucket_backend(self, bucket):
        backend = FakeBucketBackend(self.bucket(bucket))
        self.created.append(("bucket", bucket, backend))
        return backend


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "TENCENT_CREDENTIALS_FILE",
        "TENCENT_CLOUD_SECRETID",
        "TENCENT_CLOUD_SECRETKEY",
        "LOG_LEVEL",
        "LOG_FORMAT",
        "LOG_FILE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_factory():
    return FakeBackendFactory()


@pytest.fixture
def store(fake_factory):
    object_store = ObjectStore(backend_factory=fake_factory)
    object_store.init({"region": "ap-guangzhou"})
    return object_store
