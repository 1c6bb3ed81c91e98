"""
kube_info.py

Purpose:
  Resolves node labels (the telemetry identifier lives in one of them).

Implementations:
  - `KubeClient`: official `kubernetes` client, in-cluster config first,
    kubeconfig as fallback (`KUBE_CONFIG_MODE=incluster|kubeconfig|auto`).
  - `StaticLabelLookup`: in-memory labels for offline mode and tests.

Errors:
  - 404 on the node -> `NodeNotFoundError`
  - label absent    -> `LabelNotFoundError`
  - anything else   -> `KubeLookupError` (API errors and unreachable API server)
"""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Protocol

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError as TransportError

from greenscore.config import env_str
from greenscore.errors import (
    ClientCreationError,
    KubeLookupError,
    LabelNotFoundError,
    NodeNotFoundError,
)

logger = logging.getLogger(__name__)


class NodeLabelLookup(Protocol):
    def get_node_label_value(self, node_name: str, label: str) -> str:
        ...


def _load_kube_config(mode: str) -> None:
    if mode == "incluster":
        k8s_config.load_incluster_config()
    elif mode == "kubeconfig":
        k8s_config.load_kube_config()
    else:
        try:
            k8s_config.load_incluster_config()
        except ConfigException:
            logger.info("Not running in-cluster, falling back to kubeconfig")
            k8s_config.load_kube_config()


class KubeClient:
    def __init__(self, core_v1: Optional[k8s_client.CoreV1Api] = None):
        if core_v1 is None:
            mode = env_str("KUBE_CONFIG_MODE", "auto").lower()
            try:
                _load_kube_config(mode)
            except (ConfigException, OSError) as e:
                raise ClientCreationError(f"failed to create Kubernetes client: {e}") from e
            core_v1 = k8s_client.CoreV1Api()
        self.core_v1 = core_v1

    def get_node_labels(self, node_name: str) -> Dict[str, str]:
        try:
            node = self.core_v1.read_node(name=node_name)
        except ApiException as e:
            if e.status == 404:
                raise NodeNotFoundError(node_name) from e
            raise KubeLookupError(f"failed to get node {node_name}: {e.reason}") from e
        except (TransportError, OSError) as e:
            raise KubeLookupError(f"failed to reach API server for node {node_name}: {e}") from e
        return dict(node.metadata.labels or {})

    def get_node_label_value(self, node_name: str, label: str) -> str:
        labels = self.get_node_labels(node_name)
        if label not in labels:
            raise LabelNotFoundError(node_name, label)
        return labels[label]


class StaticLabelLookup:
    def __init__(self, labels: Mapping[str, Mapping[str, str]]):
        self._labels = {n: dict(l) for n, l in labels.items()}
        self.calls = 0

    def __len__(self) -> int:
        return len(self._labels)

    def get_node_label_value(self, node_name: str, label: str) -> str:
        self.calls += 1
        if node_name not in self._labels:
            raise NodeNotFoundError(node_name)
        node_labels = self._labels[node_name]
        if label not in node_labels:
            raise LabelNotFoundError(node_name, label)
        return node_labels[label]
