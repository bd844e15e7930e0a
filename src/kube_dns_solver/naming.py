"""Deterministic mapping from challenge FQDNs to record resource names."""

from __future__ import annotations

import re

RECORD_NAME_PREFIX = "acme-"

_INVALID_CHARS = re.compile(r"[^a-z0-9-]")


def derive_record_name(domain: str) -> str:
    """Map an FQDN to a Kubernetes-safe resource name.

    The domain is lower-cased, every character outside ``[a-z0-9-]`` becomes
    ``-``, trailing hyphens are stripped and ``acme-`` is prepended. The same
    domain always yields the same name, so Present and CleanUp address one
    resource. Domains that differ only in folded characters (``a.b`` and
    ``a_b``) collide; that is accepted.

    Args:
        domain: Fully qualified challenge name (e.g. "_acme-challenge.example.com.").

    Returns:
        Resource name (e.g. "acme--acme-challenge-example-com").
    """
    folded = _INVALID_CHARS.sub("-", domain.lower())
    return RECORD_NAME_PREFIX + folded.rstrip("-")


def strip_trailing_dot(fqdn: str) -> str:
    """Remove a single trailing root dot from an FQDN."""
    return fqdn.removesuffix(".")
