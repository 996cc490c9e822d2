"""Capability interfaces between the object store adapter and a storage provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import BinaryIO, Dict, List, Optional, Union

Body = Union[bytes, BinaryIO]


@dataclass
class BackendResponse:
    status_code: int
    body: Optional[BinaryIO] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class ListResult:
    keys: List[str] = field(default_factory=list)
    common_prefixes: List[str] = field(default_factory=list)


class BackendError(Exception):
    """
    Raised by backends when a provider call fails.

    ``status_code`` is None when no response was received at all
    (connection refused, timeout, TLS failure, unsigned request).
    """

    def __init__(self, message: str, status_code: Optional[int] = None, code: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    @property
    def has_response(self) -> bool:
        return self.status_code is not None


class ObjectBackend(ABC):
    """Object-level operations against a single bucket."""

    @abstractmethod
    def put(self, key: str, body: Body) -> BackendResponse:
        """
        Create or overwrite an object.

        Raises:
            BackendError: If the request fails or is rejected
        """

    @abstractmethod
    def head(self, key: str) -> BackendResponse:
        """
        Fetch object metadata.

        Raises:
            BackendError: If the request fails or the provider answers with
                an error status (the status is carried on the error)
        """

    @abstractmethod
    def get(self, key: str) -> BackendResponse:
        """
        Fetch an object. The response body is a stream owned by the caller.

        Raises:
            BackendError: If the request fails or is rejected
        """

    @abstractmethod
    def delete(self, key: str) -> BackendResponse:
        """
        Delete an object.

        Raises:
            BackendError: If the request fails or is rejected
        """

    @abstractmethod
    def presigned_url(
        self,
        method: str,
        key: str,
        secret_id: str,
        secret_key: str,
        expires: timedelta,
    ) -> str:
        """
        Build a time-limited URL for ``method`` on ``key``, signed with the
        given credentials.

        Raises:
            BackendError: If the URL cannot be built or signed
        """


class BucketBackend(ABC):
    """Bucket-level operations."""

    @abstractmethod
    def list(self, prefix: str = "", delimiter: str = "") -> ListResult:
        """
        List objects under ``prefix`` in provider order.

        When ``delimiter`` is set the provider groups keys below it into
        ``common_prefixes``.

        Raises:
            BackendError: If the request fails or is rejected
        """


class BackendFactory(ABC):
    """Derives bucket-scoped backends. Implementations must not cache state per call."""

    @abstractmethod
    def object_backend(self, bucket: str) -> ObjectBackend:
        pass

    @abstractmethod
    def bucket_backend(self, bucket: str) -> BucketBackend:
        pass
