import os

import pytest

from velero_cos.config import (
    Config,
    Credentials,
    StoreConfig,
    load_config,
    load_env,
    parse_bool,
    parse_store_config,
    resolve_credentials,
)
from velero_cos.core.errors import (
    CredentialLoadError,
    InvalidBooleanError,
    MissingRegionError,
    UnknownConfigKeyError,
)


def test_region_only_defaults_to_secure_endpoint():
    config = parse_store_config({"region": "ap-guangzhou"})
    assert config == StoreConfig(region="ap-guangzhou", insecure_skip_tls_verify=True)


def test_empty_tls_value_keeps_default():
    config = parse_store_config({"region": "ap-guangzhou", "insecureSkipTLSVerify": ""})
    assert config.insecure_skip_tls_verify is True


@pytest.mark.parametrize(
    "raw, expected",
    [("true", True), ("1", True), ("T", True), ("False", False), ("0", False), ("f", False)],
)
def test_tls_value_is_parsed(raw, expected):
    config = parse_store_config({"region": "ap-beijing", "insecureSkipTLSVerify": raw})
    assert config.insecure_skip_tls_verify is expected


@pytest.mark.parametrize("raw", ["yes", "no", "on", "tRUE", "2", " true"])
def test_invalid_tls_value_fails(raw):
    with pytest.raises(InvalidBooleanError) as exc_info:
        parse_store_config({"region": "ap-beijing", "insecureSkipTLSVerify": raw})
    assert isinstance(exc_info.value.__cause__, ValueError)
    assert "insecureSkipTLSVerify" in str(exc_info.value)


def test_empty_config_is_missing_region():
    with pytest.raises(MissingRegionError):
        parse_store_config({})


def test_empty_region_is_missing_region():
    with pytest.raises(MissingRegionError):
        parse_store_config({"region": "", "insecureSkipTLSVerify": "true"})


def test_unknown_key_fails():
    with pytest.raises(UnknownConfigKeyError) as exc_info:
        parse_store_config({"region": "ap-guangzhou", "prefix": "x", "bucket": "y"})
    assert "['bucket', 'prefix']" in str(exc_info.value)


def test_unknown_key_checked_before_region():
    with pytest.raises(UnknownConfigKeyError):
        parse_store_config({"endpoint": "x"})


def test_parse_bool_rejects_garbage():
    with pytest.raises(ValueError):
        parse_bool("maybe")


def test_load_env_without_file_is_noop():
    assert load_env() is False


def test_load_env_overrides_existing_values(monkeypatch, tmp_path):
    env_file = tmp_path / "credentials"
    env_file.write_text(
        "# tencent cloud\n"
        "TENCENT_CLOUD_SECRETID=file-id\n"
        "TENCENT_CLOUD_SECRETKEY=file-key\n"
    )
    monkeypatch.setenv("TENCENT_CLOUD_SECRETID", "env-id")
    monkeypatch.setenv("TENCENT_CREDENTIALS_FILE", str(env_file))

    assert load_env() is True
    assert os.environ["TENCENT_CLOUD_SECRETID"] == "file-id"
    assert resolve_credentials() == Credentials(secret_id="file-id", secret_key="file-key")


def test_load_env_custom_variable(monkeypatch, tmp_path):
    env_file = tmp_path / "creds.env"
    env_file.write_text("TENCENT_CLOUD_SECRETID=custom\n")
    monkeypatch.setenv("MY_CREDENTIALS", str(env_file))

    assert load_env("MY_CREDENTIALS") is True
    assert resolve_credentials().secret_id == "custom"


def test_load_env_missing_file_fails(monkeypatch, tmp_path):
    monkeypatch.setenv("TENCENT_CREDENTIALS_FILE", str(tmp_path / "absent"))
    with pytest.raises(CredentialLoadError) as exc_info:
        load_env()
    assert "TENCENT_CREDENTIALS_FILE" in str(exc_info.value)


def test_load_env_malformed_file_fails(monkeypatch, tmp_path):
    env_file = tmp_path / "credentials"
    env_file.write_text(
        "TENCENT_CLOUD_SECRETKEY=file-key\n"
        'TENCENT_CLOUD_SECRETID="unterminated\n'
    )
    monkeypatch.setenv("TENCENT_CREDENTIALS_FILE", str(env_file))

    with pytest.raises(CredentialLoadError) as exc_info:
        load_env()

    assert "could not parse line 2" in str(exc_info.value)
    assert "TENCENT_CLOUD_SECRETKEY" not in os.environ


def test_load_env_accepts_quotes_and_export(monkeypatch, tmp_path):
    env_file = tmp_path / "credentials"
    env_file.write_text(
        "\n"
        'export TENCENT_CLOUD_SECRETID="quoted-id"\n'
        "TENCENT_CLOUD_SECRETKEY='quoted-key' # trailing comment\n"
    )
    monkeypatch.setenv("TENCENT_CREDENTIALS_FILE", str(env_file))

    assert load_env() is True
    assert resolve_credentials() == Credentials(secret_id="quoted-id", secret_key="quoted-key")


def test_resolve_credentials_allows_empty():
    assert resolve_credentials() == Credentials(secret_id="", secret_key="")


def test_credentials_repr_hides_key():
    assert "s3cr3t" not in repr(Credentials(secret_id="AKID", secret_key="s3cr3t"))


def test_load_config_defaults():
    config = load_config()
    assert config == Config(log_level="INFO", log_format="json", log_file_path=None)


def test_load_config_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FORMAT", "TEXT")
    monkeypatch.setenv("LOG_FILE_PATH", str(tmp_path / "plugin.log"))

    config = load_config()

    assert config.log_level == "DEBUG"
    assert config.log_format == "text"
    assert config.log_file_path == str(tmp_path / "plugin.log")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"log_level": "VERBOSE"},
        {"log_format": "xml"},
        {"log_file_path": "/definitely/not/here/plugin.log"},
    ],
)
def test_config_validate_rejects(kwargs):
    with pytest.raises(ValueError):
        Config(**kwargs).validate()
