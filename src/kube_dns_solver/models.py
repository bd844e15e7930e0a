"""Data classes exchanged between the webhook, the solver and the record stores."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

RECORD_KIND = "Record"
TXT_RECORD_TYPE = "TXT"

ACTION_PRESENT = "Present"
ACTION_CLEANUP = "CleanUp"


@dataclass(frozen=True)
class ChallengeRequest:
    """A single DNS-01 challenge as sent by cert-manager.

    ``request_id`` is only used to correlate log lines and responses; it never
    influences the record identity.
    """

    domain: str
    token: str
    owner: str
    request_id: str = ""
    raw_config: bytes | None = None
    action: str = ""
    challenge_type: str = "DNS01"
    dns_name: str = ""
    resolved_zone: str = ""
    allow_ambient_credentials: bool = False


@dataclass(frozen=True)
class SolverConfig:
    """Per-challenge solver configuration decoded from the issuer's webhook config."""

    labels: dict[str, str] = field(default_factory=dict)
    extra: dict[str, str] = field(default_factory=dict)


@dataclass
class DnsRecord:
    """A ``Record`` custom resource as held by a record store.

    ``uid`` is assigned by the store and is empty until the record has been
    created. ``raw`` keeps the last object read from the store so fields this
    class does not model survive an update.
    """

    namespace: str
    name: str
    record_name: str = ""
    record_type: str = TXT_RECORD_TYPE
    record_value: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    extra: dict[str, str] = field(default_factory=dict)
    uid: str = ""
    resource_version: str = ""
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def to_dict(self, api_version: str) -> dict:
        """Render the Kubernetes object, layered over ``raw``."""
        obj = copy.deepcopy(self.raw)
        obj["apiVersion"] = api_version
        obj["kind"] = RECORD_KIND

        metadata = obj.setdefault("metadata", {})
        metadata["name"] = self.name
        metadata["namespace"] = self.namespace
        if self.labels:
            metadata["labels"] = dict(self.labels)
        else:
            metadata.pop("labels", None)
        if self.uid:
            metadata["uid"] = self.uid
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version

        spec = obj.setdefault("spec", {})
        spec["name"] = self.record_name
        spec["type"] = self.record_type
        spec["value"] = self.record_value
        if self.extra:
            spec["extra"] = dict(self.extra)
        else:
            spec.pop("extra", None)
        return obj

    @classmethod
    def from_dict(cls, data: dict) -> DnsRecord:
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        return cls(
            namespace=metadata.get("namespace", ""),
            name=metadata["name"],
            record_name=spec.get("name", ""),
            record_type=spec.get("type", TXT_RECORD_TYPE),
            record_value=spec.get("value", ""),
            labels=dict(metadata.get("labels") or {}),
            extra=dict(spec.get("extra") or {}),
            uid=metadata.get("uid", ""),
            resource_version=metadata.get("resourceVersion", ""),
            raw=copy.deepcopy(data),
        )
