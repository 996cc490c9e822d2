from __future__ import annotations

from typing import Optional


class PluginError(Exception):
    error_type = "UNKNOWN"


class ConfigError(PluginError):
    error_type = "CONFIG"


class UnknownConfigKeyError(ConfigError):
    pass


class MissingRegionError(ConfigError):
    pass


class InvalidBooleanError(ConfigError):
    pass


class CredentialLoadError(PluginError):
    error_type = "CREDENTIALS"


class RestoreItemError(PluginError):
    error_type = "RESTORE"


class ObjectStoreError(PluginError):
    """Failure of a storage operation, with enough context to be logged verbatim."""

    operation = "object store operation"

    def __init__(
        self,
        bucket: str,
        key: Optional[str] = None,
        status_code: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.bucket = bucket
        self.key = key
        self.status_code = status_code
        super().__init__(message or self._default_message())

    def _default_message(self) -> str:
        target = f"{self.bucket}/{self.key}" if self.key is not None else self.bucket
        text = f"{self.operation} failed for {target}"
        if self.status_code is not None:
            text += f" (status {self.status_code})"
        return text


class TransportError(ObjectStoreError):
    """No response was received from the provider."""

    error_type = "TRANSPORT"
    operation = "request"


class ProviderError(ObjectStoreError):
    """The provider answered, or the call failed, for a specific operation."""

    error_type = "PROVIDER"


class PutFailedError(ProviderError):
    operation = "put object"


class GetFailedError(ProviderError):
    operation = "get object"


class ListFailedError(ProviderError):
    operation = "list objects"


class DeleteFailedError(ProviderError):
    operation = "delete object"


class DeleteRejectedError(ProviderError):
    """The delete call returned without error but not with 204 No Content."""

    def _default_message(self) -> str:
        return f"delete of {self.bucket}/{self.key} rejected (status {self.status_code})"


class SignFailedError(ProviderError):
    operation = "sign url"


class ExistenceCheckFailedError(ProviderError):
    operation = "existence check"


def classify_error(error: Exception) -> str:
    if hasattr(error, "error_type"):
        return getattr(error, "error_type")

    message = str(error).lower()

    if "timeout" in message or "timed out" in message:
        return "TRANSPORT"

    if "connection" in message or "network" in message:
        return "TRANSPORT"

    if "denied" in message or "not found" in message or "nosuchkey" in message:
        return "PROVIDER"

    if "credential" in message:
        return "CREDENTIALS"

    return "UNKNOWN"
