"""Abstract base class for record stores."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Self

from kube_dns_solver.errors import Cancelled
from kube_dns_solver.models import DnsRecord


class Deadline:
    """A point in monotonic time after which store calls must give up."""

    def __init__(self, seconds: float) -> None:
        self._expires_at = time.monotonic() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    def check(self, operation: str) -> float:
        """Return the seconds left, raising ``Cancelled`` if none are."""
        remaining = self.remaining()
        if remaining <= 0:
            raise Cancelled(f"Deadline expired before {operation}")
        return remaining


@dataclass(frozen=True)
class Found:
    record: DnsRecord


@dataclass(frozen=True)
class NotFound:
    namespace: str
    name: str


FetchResult = Found | NotFound


class RecordStore(ABC):
    """Interface for keyed, namespaced stores of ``Record`` resources.

    Backends raise ``StoreError`` for failed operations and ``Cancelled`` when
    the supplied deadline expires first.
    """

    def close(self) -> None:
        """Release resources. Override in subclasses that hold open connections."""

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @abstractmethod
    def get(self, namespace: str, name: str, deadline: Deadline | None = None) -> FetchResult:
        """Fetch a record by identity.

        Returns:
            ``Found`` with the stored record, or ``NotFound`` if it does not exist.
        """

    @abstractmethod
    def create(self, record: DnsRecord, deadline: Deadline | None = None) -> DnsRecord:
        """Create a new record and return it with its store-assigned ``uid``."""

    @abstractmethod
    def update(self, record: DnsRecord, deadline: Deadline | None = None) -> DnsRecord:
        """Replace an existing record.

        ``record.uid`` and ``record.resource_version`` must be those last read
        from the store; a stale version is rejected with a ``StoreError``.
        """

    @abstractmethod
    def delete(self, namespace: str, name: str, deadline: Deadline | None = None) -> None:
        """Delete a record by identity.

        Raises:
            RecordNotFound: If no record exists at the identity.
        """
