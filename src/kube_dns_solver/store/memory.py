"""In-process record store, used for dry runs and tests."""

from __future__ import annotations

import copy
import logging
import threading
import uuid

from kube_dns_solver.errors import RecordNotFound, StoreError
from kube_dns_solver.models import DnsRecord
from kube_dns_solver.store.base import Deadline, FetchResult, Found, NotFound, RecordStore

logger = logging.getLogger(__name__)


class MemoryRecordStore(RecordStore):
    """Record store that keeps records in a dict keyed by (namespace, name).

    Assigns a ``uid`` on create and bumps ``resource_version`` on every write,
    rejecting updates that carry a stale version the way the API server does.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], DnsRecord] = {}
        self._versions = 0
        self._lock = threading.Lock()

    def _next_version(self) -> str:
        self._versions += 1
        return str(self._versions)

    def get(self, namespace: str, name: str, deadline: Deadline | None = None) -> FetchResult:
        if deadline is not None:
            deadline.check("get")
        with self._lock:
            record = self._records.get((namespace, name))
            if record is None:
                return NotFound(namespace=namespace, name=name)
            return Found(copy.deepcopy(record))

    def create(self, record: DnsRecord, deadline: Deadline | None = None) -> DnsRecord:
        if deadline is not None:
            deadline.check("create")
        key = (record.namespace, record.name)
        with self._lock:
            if key in self._records:
                raise StoreError(f"Record {record.namespace}/{record.name} already exists", status_code=409)
            stored = copy.deepcopy(record)
            stored.uid = str(uuid.uuid4())
            stored.resource_version = self._next_version()
            self._records[key] = stored
            logger.debug("Created record %s/%s", record.namespace, record.name)
            return copy.deepcopy(stored)

    def update(self, record: DnsRecord, deadline: Deadline | None = None) -> DnsRecord:
        if deadline is not None:
            deadline.check("update")
        key = (record.namespace, record.name)
        with self._lock:
            current = self._records.get(key)
            if current is None:
                raise RecordNotFound(f"Record {record.namespace}/{record.name} not found")
            if record.uid != current.uid or record.resource_version != current.resource_version:
                raise StoreError(
                    f"Record {record.namespace}/{record.name} was modified concurrently", status_code=409
                )
            stored = copy.deepcopy(record)
            stored.resource_version = self._next_version()
            self._records[key] = stored
            logger.debug("Updated record %s/%s", record.namespace, record.name)
            return copy.deepcopy(stored)

    def delete(self, namespace: str, name: str, deadline: Deadline | None = None) -> None:
        if deadline is not None:
            deadline.check("delete")
        with self._lock:
            if self._records.pop((namespace, name), None) is None:
                raise RecordNotFound(f"Record {namespace}/{name} not found")
        logger.debug("Deleted record %s/%s", namespace, name)

    def records(self) -> list[DnsRecord]:
        """Return copies of every stored record."""
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.values()]
