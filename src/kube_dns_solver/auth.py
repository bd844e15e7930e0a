"""Kubernetes API client construction from in-cluster or kubeconfig credentials."""

from __future__ import annotations

import logging

from kubernetes import client
from kubernetes import config as kube_config
from kubernetes.config.config_exception import ConfigException

from kube_dns_solver.config import AppConfig

logger = logging.getLogger(__name__)


def load_api_client(config: AppConfig) -> client.ApiClient:
    """Build an ApiClient from the pod's service account, falling back to kubeconfig.

    ``KUBE_API_SERVER`` and ``KUBE_INSECURE_SKIP_TLS_VERIFY`` override whatever
    the discovered configuration says.

    Raises:
        ValueError: If neither in-cluster nor kubeconfig credentials are available.
    """
    configuration = client.Configuration()
    try:
        kube_config.load_incluster_config(client_configuration=configuration)
        logger.info("Using in-cluster Kubernetes credentials")
    except ConfigException:
        try:
            kube_config.load_kube_config(context=config.kube_context, client_configuration=configuration)
        except ConfigException as exc:
            raise ValueError(f"No Kubernetes credentials found: {exc}") from exc
        logger.info("Using kubeconfig credentials (context=%s)", config.kube_context or "current")

    if config.kube_api_server:
        configuration.host = config.kube_api_server.rstrip("/")
    if config.kube_insecure_skip_tls_verify:
        configuration.verify_ssl = False
    return client.ApiClient(configuration)
