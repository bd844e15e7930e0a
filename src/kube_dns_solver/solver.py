"""DNS-01 solver that presents challenges as ``Record`` resources."""

from __future__ import annotations

import logging
from typing import Self

from kube_dns_solver.config import AppConfig
from kube_dns_solver.errors import (
    Cancelled,
    ConfigDecodeError,
    InitError,
    RecordNotFound,
    StoreDeleteError,
    StoreError,
    StoreReadError,
    StoreWriteError,
)
from kube_dns_solver.models import TXT_RECORD_TYPE, ChallengeRequest, DnsRecord
from kube_dns_solver.naming import derive_record_name, strip_trailing_dot
from kube_dns_solver.solver_config import load_solver_config
from kube_dns_solver.store import Deadline, FetchResult, Found, NotFound, RecordStore, get_record_store

logger = logging.getLogger(__name__)

SOLVER_NAME = "kube-dns-manager"


def _context(ch: ChallengeRequest) -> dict[str, str]:
    return {"fqdn": ch.domain, "uid": ch.request_id, "namespace": ch.owner}


class RecordSolver:
    """Reconciles ACME DNS-01 challenges onto a single ``Record`` per FQDN and namespace.

    The store is injected, either directly or by ``initialize``; Present and
    CleanUp fail with ``InitError`` until one is available.
    """

    def __init__(self, store: RecordStore | None = None) -> None:
        self._store = store

    def name(self) -> str:
        """Name used to reference this solver from an ACME issuer's webhook config."""
        return SOLVER_NAME

    def initialize(self, config: AppConfig) -> RecordStore:
        """Build the record store used by all later calls."""
        try:
            store = get_record_store(config)
        except (OSError, ValueError) as exc:
            raise InitError(f"Failed to initialize record store: {exc}") from exc
        self._store = store
        logger.info("Initialized DNS provider solver (backend=%s)", config.store_backend)
        return store

    def close(self) -> None:
        if self._store is not None:
            self._store.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def store(self) -> RecordStore:
        if self._store is None:
            raise InitError("Solver used before initialize()")
        return self._store

    def _fetch(self, ch: ChallengeRequest, name: str, deadline: Deadline | None) -> FetchResult:
        try:
            return self.store.get(ch.owner, name, deadline=deadline)
        except Cancelled as exc:
            exc.attach(**_context(ch))
            raise
        except StoreError as exc:
            logger.error(
                "Failed to get DNS record fqdn=%s uid=%s namespace=%s: %s", ch.domain, ch.request_id, ch.owner, exc
            )
            raise StoreReadError(
                f"Failed to get DNS record {ch.owner}/{name}: {exc}",
                **_context(ch),
            ) from exc

    def present(self, ch: ChallengeRequest, deadline: Deadline | None = None) -> None:
        """Ensure a TXT ``Record`` carrying the challenge key exists.

        Safe to call repeatedly; cert-manager re-presents during its self check.
        A present record is updated in place rather than recreated.
        """
        logger.info("Presenting DNS01 challenge fqdn=%s uid=%s namespace=%s", ch.domain, ch.request_id, ch.owner)
        name = derive_record_name(ch.domain)

        try:
            cfg = load_solver_config(ch.raw_config)
        except ConfigDecodeError as exc:
            logger.error("Failed to load solver configuration uid=%s: %s", ch.request_id, exc)
            exc.attach(**_context(ch))
            raise

        result = self._fetch(ch, name, deadline)

        match result:
            case Found(record=existing):
                record = existing
                action = "update"
            case NotFound():
                record = DnsRecord(namespace=ch.owner, name=name)
                action = "create"

        record.namespace = ch.owner
        record.labels = dict(cfg.labels)
        record.record_name = strip_trailing_dot(ch.domain)
        record.record_type = TXT_RECORD_TYPE
        record.record_value = ch.token
        record.extra = dict(cfg.extra)

        try:
            if action == "create":
                self.store.create(record, deadline=deadline)
            else:
                self.store.update(record, deadline=deadline)
        except Cancelled as exc:
            exc.attach(**_context(ch))
            raise
        except StoreError as exc:
            logger.error(
                "Failed to %s DNS record fqdn=%s uid=%s namespace=%s: %s",
                action,
                ch.domain,
                ch.request_id,
                ch.owner,
                exc,
            )
            raise StoreWriteError(
                f"Failed to {action} DNS record {ch.owner}/{name}: {exc}",
                **_context(ch),
            ) from exc

    def clean_up(self, ch: ChallengeRequest, deadline: Deadline | None = None) -> None:
        """Delete the ``Record`` for the challenge FQDN, if any.

        The record value is not compared with the challenge key: concurrent
        validations of one FQDN in one namespace share a single record.
        """
        logger.info("Cleaning up DNS01 challenge fqdn=%s uid=%s namespace=%s", ch.domain, ch.request_id, ch.owner)
        name = derive_record_name(ch.domain)

        if isinstance(self._fetch(ch, name, deadline), NotFound):
            logger.info("DNS record %s/%s not found, nothing to clean up", ch.owner, name)
            return

        try:
            self.store.delete(ch.owner, name, deadline=deadline)
        except RecordNotFound:
            logger.info("DNS record %s/%s already deleted", ch.owner, name)
        except Cancelled as exc:
            exc.attach(**_context(ch))
            raise
        except StoreError as exc:
            logger.error(
                "Failed to clean up DNS record fqdn=%s uid=%s namespace=%s: %s", ch.domain, ch.request_id, ch.owner, exc
            )
            raise StoreDeleteError(
                f"Failed to delete DNS record {ch.owner}/{name}: {exc}",
                **_context(ch),
            ) from exc
