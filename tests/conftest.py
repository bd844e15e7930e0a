"""Shared test fixtures for kube-dns-solver."""

import pytest

from kube_dns_solver.models import ChallengeRequest
from kube_dns_solver.solver import RecordSolver
from kube_dns_solver.store.memory import MemoryRecordStore


@pytest.fixture
def store():
    return MemoryRecordStore()


@pytest.fixture
def solver(store):
    return RecordSolver(store=store)


@pytest.fixture
def make_challenge():
    def _make(**overrides) -> ChallengeRequest:
        defaults = {
            "domain": "_acme-challenge.foo.example.com.",
            "token": "abc123",
            "owner": "default",
            "request_id": "uid-1",
        }
        defaults.update(overrides)
        return ChallengeRequest(**defaults)

    return _make
