import io
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values, load_dotenv
from dotenv.parser import parse_stream

from velero_cos.core.errors import (
    CredentialLoadError,
    InvalidBooleanError,
    MissingRegionError,
    UnknownConfigKeyError,
)

# Object store config keys
REGION_KEY = "region"
INSECURE_SKIP_TLS_VERIFY_KEY = "insecureSkipTLSVerify"
RECOGNIZED_CONFIG_KEYS = frozenset({REGION_KEY, INSECURE_SKIP_TLS_VERIFY_KEY})

# Credentials
CREDENTIALS_FILE_ENV = "TENCENT_CREDENTIALS_FILE"
SECRET_ID_ENV = "TENCENT_CLOUD_SECRETID"
SECRET_KEY_ENV = "TENCENT_CLOUD_SECRETKEY"

# Restore item action
KIND_KEY = "kind"
PERSISTENT_VOLUME_KIND = "PersistentVolume"
PERSISTENT_VOLUME_CLAIM_KIND = "PersistentVolumeClaim"
MIN_REQ_VOL_SIZE_BYTES = 10 * 1024 ** 3
MIN_REQ_VOL_SIZE_STRING = "10Gi"
RESTORE_ANNOTATION = "velero.io/tencentcloud-restore-plugin"

_TRUE_STRINGS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_STRINGS = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(value: str) -> bool:
    """Accept 1/t/T/TRUE/true/True and 0/f/F/FALSE/false/False, nothing else."""
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise ValueError(f"invalid boolean: {value!r}")


@dataclass(frozen=True)
class StoreConfig:
    region: str
    insecure_skip_tls_verify: bool = True

    def validate(self) -> None:
        if not self.region:
            raise MissingRegionError("region is empty")


def parse_store_config(config: Mapping[str, str]) -> StoreConfig:
    unknown = set(config) - RECOGNIZED_CONFIG_KEYS
    if unknown:
        raise UnknownConfigKeyError(
            f"config has invalid keys {sorted(unknown)}; "
            f"valid keys are {sorted(RECOGNIZED_CONFIG_KEYS)}"
        )

    raw_skip = config.get(INSECURE_SKIP_TLS_VERIFY_KEY, "")
    insecure_skip_tls_verify = True
    if raw_skip:
        try:
            insecure_skip_tls_verify = parse_bool(raw_skip)
        except ValueError as exc:
            raise InvalidBooleanError(
                f"could not parse {INSECURE_SKIP_TLS_VERIFY_KEY} (expected bool)"
            ) from exc

    store_config = StoreConfig(
        region=config.get(REGION_KEY, ""),
        insecure_skip_tls_verify=insecure_skip_tls_verify,
    )
    store_config.validate()
    return store_config


def load_env(key: str = CREDENTIALS_FILE_ENV) -> bool:
    """
    Load KEY=VALUE pairs from the file named by ``key`` into os.environ.

    Values from the file override variables already set in the process.

    Returns:
        True if a credentials file was loaded, False if none is configured

    Raises:
        CredentialLoadError: If the file is missing, unreadable or malformed
    """
    env_file = os.environ.get(key, "")
    if not env_file:
        return False

    path = Path(env_file)
    if not path.is_file():
        raise CredentialLoadError(
            f"error loading environment from {key} ({env_file}): file not found"
        )
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CredentialLoadError(
            f"error loading environment from {key} ({env_file})"
        ) from exc

    # dotenv_values skips malformed lines with a warning; reject them instead
    for binding in parse_stream(io.StringIO(text)):
        if binding.error:
            raise CredentialLoadError(
                f"error loading environment from {key} ({env_file}): "
                f"could not parse line {binding.original.line}"
            )

    values = dotenv_values(stream=io.StringIO(text))

    for name, value in values.items():
        if value is not None:
            os.environ[name] = value
    return True


@dataclass(frozen=True)
class Credentials:
    secret_id: str
    secret_key: str = field(repr=False)


def resolve_credentials() -> Credentials:
    return Credentials(
        secret_id=os.environ.get(SECRET_ID_ENV, ""),
        secret_key=os.environ.get(SECRET_KEY_ENV, ""),
    )


@dataclass(frozen=True)
class Config:
    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file_path: Optional[str] = None

    def validate(self) -> None:
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR, or CRITICAL")

        if self.log_format not in {"json", "text"}:
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")

        if self.log_file_path:
            log_dir = Path(self.log_file_path).parent
            if not log_dir.exists():
                raise ValueError(f"LOG_FILE_PATH directory does not exist: {log_dir}")


def load_config() -> Config:
    # Process settings never override what the host already exported
    load_dotenv(override=False)

    config = Config(
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        log_format=os.environ.get("LOG_FORMAT", "json").lower(),
        log_file_path=os.environ.get("LOG_FILE_PATH") or None,
    )

    config.validate()
    return config
