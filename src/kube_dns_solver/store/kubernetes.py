"""Kubernetes record store: manage ``Record`` custom resources through ``CustomObjectsApi``."""

from __future__ import annotations

import json
import logging
import multiprocessing
from typing import Any, Callable

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from kube_dns_solver.errors import Cancelled, RecordNotFound, StoreError
from kube_dns_solver.models import DnsRecord
from kube_dns_solver.store.base import Deadline, FetchResult, Found, NotFound, RecordStore

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0


def _error_message(exc: ApiException) -> str:
    """Extract the ``message`` of a Kubernetes Status body, falling back to the HTTP reason."""
    try:
        return json.loads(exc.body).get("message") or exc.reason
    except (TypeError, ValueError, AttributeError):
        return exc.reason


class KubernetesRecordStore(RecordStore):
    """Record store backed by a ``Record`` CRD on a Kubernetes API server.

    Each call runs on the ApiClient's worker pool and is awaited for at most
    the time left on its deadline, so a stalled API server cannot hold a call
    past it. A request abandoned this way may still complete server-side.
    """

    def __init__(
        self,
        api_client: client.ApiClient,
        group: str,
        version: str,
        plural: str,
        timeout: float = _DEFAULT_TIMEOUT,
        _custom_objects: client.CustomObjectsApi | None = None,
    ) -> None:
        self._api_client = api_client
        self._api = _custom_objects or client.CustomObjectsApi(api_client)
        self._group = group
        self._version = version
        self._api_version = f"{group}/{version}"
        self._plural = plural
        self._timeout = timeout

    def _call(self, operation: str, method: Callable[..., Any], deadline: Deadline | None, **kwargs: Any) -> Any:
        timeout = deadline.check(operation) if deadline is not None else self._timeout
        try:
            pending = method(
                group=self._group,
                version=self._version,
                plural=self._plural,
                async_req=True,
                _request_timeout=timeout,
                **kwargs,
            )
            return pending.get(timeout=timeout)
        except multiprocessing.TimeoutError as exc:
            raise Cancelled(f"{operation} did not finish within {timeout:.1f}s") from exc
        except urllib3.exceptions.NewConnectionError as exc:
            raise StoreError(f"{operation} failed: {exc}") from exc
        except urllib3.exceptions.TimeoutError as exc:
            raise Cancelled(f"{operation} timed out: {exc}") from exc
        except urllib3.exceptions.HTTPError as exc:
            raise StoreError(f"{operation} failed: {exc}") from exc

    def _store_error(self, exc: ApiException, action: str) -> StoreError:
        return StoreError(f"Failed to {action}: {exc.status} {_error_message(exc)}", exc.status)

    def get(self, namespace: str, name: str, deadline: Deadline | None = None) -> FetchResult:
        try:
            obj = self._call(
                "get record", self._api.get_namespaced_custom_object, deadline, namespace=namespace, name=name
            )
        except ApiException as exc:
            if exc.status == 404:
                return NotFound(namespace=namespace, name=name)
            raise self._store_error(exc, f"get record {namespace}/{name}") from exc
        return Found(DnsRecord.from_dict(obj))

    def create(self, record: DnsRecord, deadline: Deadline | None = None) -> DnsRecord:
        body = record.to_dict(self._api_version)
        # uid and resourceVersion are assigned by the API server
        body["metadata"].pop("uid", None)
        body["metadata"].pop("resourceVersion", None)
        try:
            obj = self._call(
                "create record",
                self._api.create_namespaced_custom_object,
                deadline,
                namespace=record.namespace,
                body=body,
            )
        except ApiException as exc:
            raise self._store_error(exc, f"create record {record.namespace}/{record.name}") from exc
        logger.info("Created Record %s/%s", record.namespace, record.name)
        return DnsRecord.from_dict(obj)

    def update(self, record: DnsRecord, deadline: Deadline | None = None) -> DnsRecord:
        try:
            obj = self._call(
                "update record",
                self._api.replace_namespaced_custom_object,
                deadline,
                namespace=record.namespace,
                name=record.name,
                body=record.to_dict(self._api_version),
            )
        except ApiException as exc:
            if exc.status == 404:
                raise RecordNotFound(f"Record {record.namespace}/{record.name} not found") from exc
            raise self._store_error(exc, f"update record {record.namespace}/{record.name}") from exc
        logger.info("Updated Record %s/%s", record.namespace, record.name)
        return DnsRecord.from_dict(obj)

    def delete(self, namespace: str, name: str, deadline: Deadline | None = None) -> None:
        try:
            self._call(
                "delete record", self._api.delete_namespaced_custom_object, deadline, namespace=namespace, name=name
            )
        except ApiException as exc:
            if exc.status == 404:
                raise RecordNotFound(f"Record {namespace}/{name} not found") from exc
            raise self._store_error(exc, f"delete record {namespace}/{name}") from exc
        logger.info("Deleted Record %s/%s", namespace, name)

    def close(self) -> None:
        """Close the underlying API client and its worker pool."""
        self._api_client.close()
