"""Decoding of the optional per-challenge solver config blob."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from kube_dns_solver.errors import ConfigDecodeError
from kube_dns_solver.models import SolverConfig


class SolverConfigBody(BaseModel):
    """Wire shape of the webhook ``config`` object; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", strict=True)

    labels: dict[str, str] | None = None
    extra: dict[str, str] | None = None


# a JSON ``null`` document decodes to no config at all
_config_adapter = TypeAdapter(SolverConfigBody | None)


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
    )


def load_solver_config(raw: bytes | str | None) -> SolverConfig:
    """Decode the solver config attached to a challenge.

    No config is the normal case and yields empty labels and extras. A config
    that is present but malformed raises ``ConfigDecodeError`` so the challenge
    never proceeds with silently defaulted labels.
    """
    if raw is None:
        return SolverConfig()

    try:
        body = _config_adapter.validate_json(raw)
    except ValidationError as exc:
        raise ConfigDecodeError(f"error decoding solver config: {_describe(exc)}") from exc

    if body is None:
        return SolverConfig()
    return SolverConfig(labels=dict(body.labels or {}), extra=dict(body.extra or {}))
