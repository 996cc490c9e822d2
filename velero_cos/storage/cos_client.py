"""Tencent Cloud COS backends using the S3-compatible API."""

from __future__ import annotations

import logging
import math
import threading
from datetime import timedelta
from typing import Any, Callable, Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from velero_cos.config import Credentials
from velero_cos.storage.backend import (
    BackendError,
    BackendFactory,
    BackendResponse,
    Body,
    BucketBackend,
    ListResult,
    ObjectBackend,
)

logger = logging.getLogger(__name__)

# Presign method -> S3 operation
_PRESIGN_OPERATIONS = {"GET": "get_object"}


def _scheme(secure: bool) -> str:
    return "https" if secure else "http"


def service_endpoint(region: str, secure: bool = True) -> str:
    """Regional COS endpoint; buckets are addressed as virtual hosts below it."""
    return f"{_scheme(secure)}://cos.{region}.myqcloud.com"


def bucket_url(bucket: str, region: str, secure: bool = True) -> str:
    return f"{_scheme(secure)}://{bucket}.cos.{region}.myqcloud.com"


def _status_code(response: dict) -> int:
    return response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)


def _to_backend_error(exc: Exception, action: str, target: str) -> BackendError:
    if isinstance(exc, ClientError):
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        code = str(exc.response.get("Error", {}).get("Code", ""))
        if status is None and code.isdigit():
            status = int(code)
        return BackendError(f"{action} {target}: {exc}", status_code=status, code=code)
    return BackendError(f"{action} {target}: {exc}", status_code=None, code=type(exc).__name__)


class CosTransport:
    """
    Authenticated transport shared by every bucket-scoped client.

    Built once from the credentials resolved at init and never mutated
    afterwards. boto3 sessions are not thread-safe, so client creation is
    serialized; the clients themselves are.

    The insecureSkipTLSVerify flag selects the endpoint scheme: true gives
    https with boto3's normal certificate verification, false gives plain
    http. Certificate verification itself is never turned off.
    """

    def __init__(self, credentials: Credentials, insecure_skip_tls_verify: bool = True):
        self.credentials = credentials
        self.insecure_skip_tls_verify = insecure_skip_tls_verify
        self._session = boto3.session.Session()
        self._lock = threading.Lock()

    def client(self, region: str, credentials: Optional[Credentials] = None) -> Any:
        """
        Create an S3 client for ``region``. No network call is made.

        Args:
            region: COS region (e.g. "ap-guangzhou")
            credentials: Signing credentials; defaults to the transport's own
        """
        creds = credentials or self.credentials
        with self._lock:
            # Explicit keys keep boto3 from falling back to ambient AWS credentials
            return self._session.client(
                "s3",
                region_name=region,
                endpoint_url=service_endpoint(region, self.insecure_skip_tls_verify),
                aws_access_key_id=creds.secret_id,
                aws_secret_access_key=creds.secret_key,
                config=BotoConfig(
                    signature_version="s3v4",
                    s3={"addressing_style": "virtual"},
                ),
            )


class CosObjectBackend(ObjectBackend):
    """Object operations on one COS bucket."""

    def __init__(
        self,
        client: Any,
        bucket: str,
        signing_client: Optional[Callable[[Credentials], Any]] = None,
    ):
        """
        Args:
            client: boto3 S3 client bound to the bucket's region
            bucket: COS bucket name (including the APPID suffix)
            signing_client: Builds a client for caller-supplied credentials;
                used for presigning. Defaults to ``client``.
        """
        self.client = client
        self.bucket = bucket
        self._signing_client = signing_client

    def put(self, key: str, body: Body) -> BackendResponse:
        try:
            response = self.client.put_object(Bucket=self.bucket, Key=key, Body=body)
        except (ClientError, BotoCoreError) as exc:
            raise _to_backend_error(exc, "put", key) from exc
        return BackendResponse(status_code=_status_code(response))

    def head(self, key: str) -> BackendResponse:
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise _to_backend_error(exc, "head", key) from exc
        return BackendResponse(
            status_code=_status_code(response),
            headers=response.get("ResponseMetadata", {}).get("HTTPHeaders", {}),
        )

    def get(self, key: str) -> BackendResponse:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise _to_backend_error(exc, "get", key) from exc
        return BackendResponse(
            status_code=_status_code(response),
            body=response["Body"],
            headers=response.get("ResponseMetadata", {}).get("HTTPHeaders", {}),
        )

    def delete(self, key: str) -> BackendResponse:
        try:
            response = self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise _to_backend_error(exc, "delete", key) from exc
        return BackendResponse(status_code=_status_code(response))

    def presigned_url(
        self,
        method: str,
        key: str,
        secret_id: str,
        secret_key: str,
        expires: timedelta,
    ) -> str:
        operation = _PRESIGN_OPERATIONS.get(method.upper())
        if operation is None:
            raise BackendError(f"presign {key}: unsupported method {method}")

        client = self.client
        if self._signing_client is not None:
            client = self._signing_client(Credentials(secret_id=secret_id, secret_key=secret_key))
        try:
            return client.generate_presigned_url(
                ClientMethod=operation,
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=math.ceil(expires.total_seconds()),
            )
        except (ClientError, BotoCoreError) as exc:
            raise _to_backend_error(exc, "presign", key) from exc


class CosBucketBackend(BucketBackend):
    """Listing operations on one COS bucket."""

    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket

    def list(self, prefix: str = "", delimiter: str = "") -> ListResult:
        params = {"Bucket": self.bucket, "Prefix": prefix}
        if delimiter:
            params["Delimiter"] = delimiter

        result = ListResult()
        try:
            paginator = self.client.get_paginator("list_objects")
            for page in paginator.paginate(**params):
                for obj in page.get("Contents", []):
                    result.keys.append(obj["Key"])
                for common in page.get("CommonPrefixes", []):
                    result.common_prefixes.append(common["Prefix"])
        except (ClientError, BotoCoreError) as exc:
            raise _to_backend_error(exc, "list", f"{self.bucket}/{prefix}") from exc
        return result


class CosClientFactory(BackendFactory):
    """
    Derives bucket-scoped COS backends from the shared transport.

    Every call constructs a fresh client; nothing is cached on the factory,
    so concurrent operations never share a handle.
    """

    def __init__(self, transport: CosTransport, region: str):
        self.transport = transport
        self.region = region

    def _url(self, bucket: str) -> str:
        return bucket_url(bucket, self.region, self.transport.insecure_skip_tls_verify)

    def object_backend(self, bucket: str) -> CosObjectBackend:
        logger.debug("object client for %s", self._url(bucket))
        return CosObjectBackend(
            self.transport.client(self.region),
            bucket,
            signing_client=lambda credentials: self.transport.client(self.region, credentials),
        )

    def bucket_backend(self, bucket: str) -> CosBucketBackend:
        logger.debug("bucket client for %s", self._url(bucket))
        return CosBucketBackend(self.transport.client(self.region), bucket)

    get_object_client = object_backend
    get_bucket_client = bucket_backend
