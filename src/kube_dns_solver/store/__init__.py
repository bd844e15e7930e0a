"""Record store factory: resolve backend name to concrete implementation."""

from __future__ import annotations

from kube_dns_solver.auth import load_api_client as _load_api_client
from kube_dns_solver.config import AppConfig
from kube_dns_solver.store.base import Deadline, FetchResult, Found, NotFound, RecordStore
from kube_dns_solver.store.kubernetes import KubernetesRecordStore
from kube_dns_solver.store.memory import MemoryRecordStore

__all__ = [
    "Deadline",
    "FetchResult",
    "Found",
    "KubernetesRecordStore",
    "MemoryRecordStore",
    "NotFound",
    "RecordStore",
    "get_record_store",
]


def get_record_store(config: AppConfig, backend: str | None = None) -> RecordStore:
    """Instantiate a record store by backend name.

    Args:
        config: Application configuration.
        backend: Override the backend from config.

    Returns:
        A configured RecordStore instance.
    """
    name = (backend or config.store_backend).lower()

    if name == "kubernetes":
        return KubernetesRecordStore(
            api_client=_load_api_client(config),
            group=config.record_group,
            version=config.record_version,
            plural=config.record_plural,
            timeout=config.request_timeout_seconds,
        )

    if name == "memory":
        return MemoryRecordStore()

    raise ValueError(f"Unknown record store backend: '{name}'")
