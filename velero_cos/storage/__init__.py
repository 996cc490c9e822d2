"""Object storage layer: backend interfaces, COS backends and the Velero object store."""

from velero_cos.storage.backend import BackendFactory, BucketBackend, ObjectBackend
from velero_cos.storage.cos_client import CosClientFactory, CosTransport
from velero_cos.storage.object_store import ObjectStore

__all__ = [
    "BackendFactory",
    "BucketBackend",
    "ObjectBackend",
    "CosClientFactory",
    "CosTransport",
    "ObjectStore",
]
