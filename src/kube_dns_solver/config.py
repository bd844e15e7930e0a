"""Configuration loading and validation from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

_DEFAULT_RECORD_GROUP = "dns.xzzpig.com"
_DEFAULT_RECORD_VERSION = "v1"
_DEFAULT_RECORD_PLURAL = "records"
_DEFAULT_REQUEST_TIMEOUT = 30.0
_DEFAULT_PORT = 443

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppConfig:
    """Application configuration loaded from environment variables."""

    group_name: str
    store_backend: str = "kubernetes"
    kube_api_server: str | None = None
    kube_context: str | None = None
    kube_insecure_skip_tls_verify: bool = False
    record_group: str = _DEFAULT_RECORD_GROUP
    record_version: str = _DEFAULT_RECORD_VERSION
    record_plural: str = _DEFAULT_RECORD_PLURAL
    request_timeout_seconds: float = _DEFAULT_REQUEST_TIMEOUT
    tls_cert_file: str | None = None
    tls_key_file: str | None = None
    port: int = _DEFAULT_PORT
    log_level: str = "INFO"


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise ValueError(f"Required environment variable {name} is not set")
    return value


def load_config() -> AppConfig:
    """Load and validate application configuration from environment variables."""
    group_name = _require_env("GROUP_NAME")

    raw_timeout = os.environ.get("REQUEST_TIMEOUT_SECONDS", str(_DEFAULT_REQUEST_TIMEOUT))
    try:
        request_timeout_seconds = float(raw_timeout)
    except ValueError:
        raise ValueError(f"REQUEST_TIMEOUT_SECONDS must be a number, got: {raw_timeout!r}")
    if request_timeout_seconds <= 0:
        raise ValueError(f"REQUEST_TIMEOUT_SECONDS must be positive, got: {request_timeout_seconds}")

    raw_port = os.environ.get("PORT", str(_DEFAULT_PORT))
    try:
        port = int(raw_port)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got: {raw_port!r}")

    return AppConfig(
        group_name=group_name,
        store_backend=os.environ.get("STORE_BACKEND", "kubernetes"),
        kube_api_server=os.environ.get("KUBE_API_SERVER") or None,
        kube_context=os.environ.get("KUBE_CONTEXT") or None,
        kube_insecure_skip_tls_verify=os.environ.get("KUBE_INSECURE_SKIP_TLS_VERIFY", "").lower() in _TRUTHY,
        record_group=os.environ.get("RECORD_GROUP", _DEFAULT_RECORD_GROUP),
        record_version=os.environ.get("RECORD_VERSION", _DEFAULT_RECORD_VERSION),
        record_plural=os.environ.get("RECORD_PLURAL", _DEFAULT_RECORD_PLURAL),
        request_timeout_seconds=request_timeout_seconds,
        tls_cert_file=os.environ.get("TLS_CERT_FILE"),
        tls_key_file=os.environ.get("TLS_KEY_FILE"),
        port=port,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
