"""Exception taxonomy for the solver and its record stores."""

from __future__ import annotations


class SolverError(Exception):
    """Base class for failures reported back to the ACME orchestrator.

    Carries the challenge coordinates so callers can report a structured failure.
    """

    def __init__(
        self,
        message: str,
        *,
        fqdn: str | None = None,
        uid: str | None = None,
        namespace: str | None = None,
    ) -> None:
        super().__init__(message)
        self.fqdn = fqdn
        self.uid = uid
        self.namespace = namespace

    def attach(self, *, fqdn: str, uid: str, namespace: str) -> None:
        """Record the challenge coordinates on an error raised below the solver."""
        self.fqdn, self.uid, self.namespace = fqdn, uid, namespace

    def context(self) -> dict[str, str | None]:
        return {"fqdn": self.fqdn, "uid": self.uid, "namespace": self.namespace}


class ConfigDecodeError(SolverError):
    """The per-challenge solver config is present but malformed."""


class StoreReadError(SolverError):
    """Fetching the record failed for a reason other than not-found."""


class StoreWriteError(SolverError):
    """Creating or updating the record failed."""


class StoreDeleteError(SolverError):
    """Deleting the record failed."""


class InitError(SolverError):
    """The solver could not build its record store."""


class Cancelled(SolverError):
    """A store call was abandoned because its deadline expired."""


class StoreError(Exception):
    """Raised by record store backends for any failed operation."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordNotFound(StoreError):
    """The addressed record does not exist in the store."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)
