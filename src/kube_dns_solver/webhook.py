"""cert-manager webhook API: decode ChallengePayload requests and dispatch them to solvers."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, ValidationError

from kube_dns_solver.errors import SolverError
from kube_dns_solver.models import ACTION_CLEANUP, ACTION_PRESENT, ChallengeRequest
from kube_dns_solver.store import Deadline

logger = logging.getLogger(__name__)

WEBHOOK_API_VERSION = "v1alpha1"
PAYLOAD_API_VERSION = f"acme.cert-manager.io/{WEBHOOK_API_VERSION}"


class Solver(Protocol):
    """Operations a solver exposes to the webhook."""

    def name(self) -> str: ...

    def present(self, ch: ChallengeRequest, deadline: Deadline | None = None) -> None: ...

    def clean_up(self, ch: ChallengeRequest, deadline: Deadline | None = None) -> None: ...


class ChallengeRequestBody(BaseModel):
    """The ``request`` half of a ChallengePayload, as cert-manager sends it."""

    model_config = ConfigDict(extra="ignore")

    uid: str = ""
    action: str
    type: str = "DNS01"
    dnsName: str = ""
    key: str
    resourceNamespace: str
    resolvedFQDN: str
    resolvedZone: str = ""
    allowAmbientCredentials: bool = False
    config: Any = None

    def to_challenge(self) -> ChallengeRequest:
        return ChallengeRequest(
            domain=self.resolvedFQDN,
            token=self.key,
            owner=self.resourceNamespace,
            request_id=self.uid,
            raw_config=json.dumps(self.config).encode() if self.config is not None else None,
            action=self.action,
            challenge_type=self.type,
            dns_name=self.dnsName,
            resolved_zone=self.resolvedZone,
            allow_ambient_credentials=self.allowAmbientCredentials,
        )


class ChallengeStatus(BaseModel):
    """Kubernetes-style Status attached to a failed challenge response."""

    status: str = "Failure"
    message: str
    reason: str


class ChallengeResponse(BaseModel):
    uid: str
    success: bool
    status: ChallengeStatus | None = None


class ChallengePayload(BaseModel):
    apiVersion: str = PAYLOAD_API_VERSION
    kind: str = "ChallengePayload"
    request: dict[str, Any] | None = None
    response: ChallengeResponse | None = None


def _failure(uid: str, reason: str, message: str) -> ChallengeResponse:
    return ChallengeResponse(uid=uid, success=False, status=ChallengeStatus(message=message, reason=reason))


def handle_challenge(solver: Solver, request: dict[str, Any], timeout: float | None = None) -> ChallengeResponse:
    """Run one Present or CleanUp and describe the outcome for cert-manager.

    Solver failures become ``success: false`` responses; cert-manager retries
    the whole call later.
    """
    uid = request.get("uid")
    if not isinstance(uid, str):
        uid = ""
    try:
        ch = ChallengeRequestBody.model_validate(request).to_challenge()
    except ValidationError as exc:
        return _failure(uid, "BadRequest", f"invalid challenge request: {exc}")

    deadline = Deadline(timeout) if timeout else None
    try:
        if ch.action == ACTION_PRESENT:
            solver.present(ch, deadline=deadline)
        elif ch.action == ACTION_CLEANUP:
            solver.clean_up(ch, deadline=deadline)
        else:
            return _failure(uid, "BadRequest", f"unknown challenge action '{ch.action}'")
    except SolverError as exc:
        logger.warning("%s of challenge %s failed: %s (%s)", ch.action, uid, exc, exc.context())
        return _failure(uid, type(exc).__name__, str(exc))

    return ChallengeResponse(uid=uid, success=True)


def create_app(group_name: str, solvers: list[Solver], request_timeout: float | None = None) -> FastAPI:
    """Build the webhook application serving ``solvers`` under ``group_name``."""
    by_name = {s.name(): s for s in solvers}
    app = FastAPI(title="kube-dns-solver", description="cert-manager DNS-01 webhook", version="1.0.0")

    def _check_group(group: str) -> None:
        if group != group_name:
            raise HTTPException(status_code=404, detail=f"API group '{group}' is not served")

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(f"/apis/{{group}}/{WEBHOOK_API_VERSION}")
    def api_resources(group: str) -> dict[str, Any]:
        _check_group(group)
        return {
            "kind": "APIResourceList",
            "apiVersion": "v1",
            "groupVersion": f"{group_name}/{WEBHOOK_API_VERSION}",
            "resources": [
                {
                    "name": name,
                    "singularName": name,
                    "namespaced": False,
                    "kind": "ChallengePayload",
                    "verbs": ["create"],
                }
                for name in sorted(by_name)
            ],
        }

    @app.post(
        f"/apis/{{group}}/{WEBHOOK_API_VERSION}/{{solver_name}}",
        response_model=ChallengePayload,
        response_model_exclude_none=True,
    )
    def solve(group: str, solver_name: str, payload: ChallengePayload) -> ChallengePayload:
        _check_group(group)
        solver = by_name.get(solver_name)
        if solver is None:
            raise HTTPException(status_code=404, detail=f"Solver '{solver_name}' is not registered")
        if payload.request is None:
            raise HTTPException(status_code=400, detail="ChallengePayload has no request")

        response = handle_challenge(solver, payload.request, timeout=request_timeout)
        return ChallengePayload(apiVersion=payload.apiVersion, kind=payload.kind, response=response)

    return app
