"""Velero object store backed by Tencent Cloud COS."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import BinaryIO, List, Mapping, Optional

from velero_cos.config import (
    StoreConfig,
    load_env,
    parse_store_config,
    resolve_credentials,
)
from velero_cos.core.errors import (
    DeleteFailedError,
    DeleteRejectedError,
    ExistenceCheckFailedError,
    GetFailedError,
    ListFailedError,
    PutFailedError,
    SignFailedError,
    TransportError,
    classify_error,
)
from velero_cos.core.logging import mask_secret
from velero_cos.storage.backend import BackendError, BackendFactory, Body, ListResult
from velero_cos.storage.cos_client import CosClientFactory, CosTransport

HTTP_NO_CONTENT = 204


class ObjectStore:
    """
    Maps the Velero object store contract onto COS buckets.

    Every operation derives a fresh bucket-scoped backend, delegates, and
    translates the outcome into this package's error vocabulary. Nothing is
    retried here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        backend_factory: Optional[BackendFactory] = None,
    ):
        """
        Args:
            logger: Logger for operation events (defaults to this module's)
            backend_factory: Pre-built backend factory; when given, init only
                validates configuration and keeps this factory
        """
        self.log = logger or logging.getLogger(__name__)
        self._injected_factory = backend_factory
        self._backends: Optional[BackendFactory] = None
        self.store_config: Optional[StoreConfig] = None

    def init(self, config: Mapping[str, str]) -> None:
        store_config = parse_store_config(config)
        load_env()

        # Each init reloads credentials and rebuilds the factory
        if self._injected_factory is not None:
            self._backends = self._injected_factory
        else:
            credentials = resolve_credentials()
            self.log.info(
                "COS object store init: region=%s insecureSkipTLSVerify=%s secretId=%s",
                store_config.region,
                store_config.insecure_skip_tls_verify,
                mask_secret(credentials.secret_id),
            )
            transport = CosTransport(credentials, store_config.insecure_skip_tls_verify)
            self._backends = CosClientFactory(transport, store_config.region)
        self.store_config = store_config

    def _factory(self) -> BackendFactory:
        if self.store_config is None or self._backends is None:
            raise RuntimeError("object store used before init")
        return self._backends

    def _log_failure(self, message: str, bucket: str, key: Optional[str], exc: Exception) -> None:
        self.log.error(
            "%s: %s (%s)",
            message,
            exc,
            classify_error(exc),
            extra={"bucket": bucket, "key": key},
        )

    def put_object(self, bucket: str, key: str, body: Body) -> None:
        if not key:
            raise ValueError("object key must not be empty")

        backend = self._factory().object_backend(bucket)
        try:
            backend.put(key, body)
        except BackendError as exc:
            self._log_failure("PutObject error", bucket, key, exc)
            raise PutFailedError(bucket, key, exc.status_code) from exc

    def object_exists(self, bucket: str, key: str) -> bool:
        """
        Report whether ``key`` exists in ``bucket``.

        A client error (4xx) means the object is absent. A server error
        (5xx) or a request that never got a response leaves the state
        unknown and is raised instead.

        Raises:
            TransportError: If no response was received
            ExistenceCheckFailedError: If the provider answered with 5xx
        """
        backend = self._factory().object_backend(bucket)
        try:
            status = backend.head(key).status_code
        except BackendError as exc:
            if not exc.has_response:
                self._log_failure("ObjectExists transport error", bucket, key, exc)
                raise TransportError(bucket, key) from exc
            status = exc.status_code
            cause: Optional[BackendError] = exc
        else:
            cause = None

        if status >= 500:
            self.log.warning(
                "ObjectExists server error: status=%s", status,
                extra={"bucket": bucket, "key": key},
            )
            raise ExistenceCheckFailedError(bucket, key, status) from cause
        if 400 <= status < 500:
            self.log.debug(
                "ObjectExists: object not found (status=%s)", status,
                extra={"bucket": bucket, "key": key},
            )
            return False
        return True

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        """Return the object's body stream. The caller must close it."""
        backend = self._factory().object_backend(bucket)
        try:
            response = backend.get(key)
        except BackendError as exc:
            self._log_failure("GetObject error", bucket, key, exc)
            raise GetFailedError(bucket, key, exc.status_code) from exc
        if response.body is None:
            raise GetFailedError(bucket, key, response.status_code, "object body missing")
        return response.body

    def _list(self, bucket: str, prefix: str, delimiter: str = "") -> ListResult:
        backend = self._factory().bucket_backend(bucket)
        try:
            return backend.list(prefix=prefix, delimiter=delimiter)
        except BackendError as exc:
            self._log_failure("ListObjects error", bucket, prefix, exc)
            raise ListFailedError(bucket, prefix, exc.status_code) from exc

    def list_objects(self, bucket: str, prefix: str) -> List[str]:
        return list(self._list(bucket, prefix).keys)

    def list_common_prefixes(self, bucket: str, prefix: str, delimiter: str) -> List[str]:
        """
        List with a delimiter. Only matched object keys are returned; the
        provider's grouped prefixes are not part of the result.
        """
        result = self._list(bucket, prefix, delimiter)
        if result.common_prefixes:
            self.log.debug(
                "ListCommonPrefixes: %d grouped prefixes not returned",
                len(result.common_prefixes),
                extra={"bucket": bucket, "key": prefix},
            )
        return list(result.keys)

    def delete_object(self, bucket: str, key: str) -> None:
        backend = self._factory().object_backend(bucket)
        try:
            response = backend.delete(key)
        except BackendError as exc:
            self._log_failure("DeleteObject error", bucket, key, exc)
            raise DeleteFailedError(bucket, key, exc.status_code) from exc
        if response.status_code != HTTP_NO_CONTENT:
            raise DeleteRejectedError(bucket, key, response.status_code)

    def create_signed_url(self, bucket: str, key: str, ttl: timedelta) -> str:
        """
        Create a GET URL for ``key`` that expires after ``ttl``.

        Credentials are read from the environment at call time, not taken
        from the values resolved at init.
        """
        if ttl <= timedelta(0):
            raise SignFailedError(bucket, key, message=f"ttl must be positive, got {ttl}")

        backend = self._factory().object_backend(bucket)
        credentials = resolve_credentials()
        try:
            return backend.presigned_url(
                "GET", key, credentials.secret_id, credentials.secret_key, ttl
            )
        except BackendError as exc:
            self._log_failure("CreateSignedURL error", bucket, key, exc)
            raise SignFailedError(bucket, key, exc.status_code) from exc
