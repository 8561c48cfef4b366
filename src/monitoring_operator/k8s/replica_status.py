"""Replica status of prometheus-operator workloads, derived from pods.

Prometheus and Alertmanager objects run as StatefulSets generated by
prometheus-operator. Their own status subresource can lag, so readiness is
computed from the pods behind them instead.
"""

from __future__ import annotations

from typing import Any

from ..constants import DEFAULT_CONSTANTS
from .kinds import POD, STATEFUL_SET, Manifest, ResourceIdentity
from .readiness import ReplicaStatus
from .repository import ResourceRepository


def pod_running_and_ready(pod: Manifest) -> bool:
    """Check that a pod is Running with a True Ready condition."""
    status: dict[str, Any] = pod.get("status") or {}
    if status.get("phase") != "Running":
        return False
    return any(
        c.get("type") == "Ready" and c.get("status") == "True"
        for c in status.get("conditions") or []
    )


def summarize_pods(pods: list[Manifest], update_revision: str | None) -> ReplicaStatus:
    """Count updated and available pods.

    Args:
        pods: Pods governed by one workload
        update_revision: StatefulSet revision pods should run. When unknown
            every pod counts as updated.

    Returns:
        ReplicaStatus for the pod set
    """
    label = DEFAULT_CONSTANTS.REVISION_HASH_LABEL
    available = sum(1 for pod in pods if pod_running_and_ready(pod))
    if update_revision:
        updated = sum(
            1
            for pod in pods
            if (pod.get("metadata", {}).get("labels") or {}).get(label)
            == update_revision
        )
    else:
        updated = len(pods)

    return ReplicaStatus(
        replicas=len(pods),
        updated_replicas=updated,
        available_replicas=available,
        unavailable_replicas=len(pods) - available,
    )


class PodReplicaStatus:
    """Computes ReplicaStatus for Prometheus and Alertmanager objects."""

    def __init__(self, repository: ResourceRepository) -> None:
        self._repository = repository

    async def _status(
        self, obj: Manifest, selector: str, stateful_set_name: str
    ) -> ReplicaStatus:
        namespace = obj.get("metadata", {}).get("namespace")
        pods = await self._repository.list(POD, namespace, label_selector=selector)
        stateful_set = await self._repository.get(
            ResourceIdentity(STATEFUL_SET, stateful_set_name, namespace)
        )
        revision = None
        if stateful_set is not None:
            revision = (stateful_set.get("status") or {}).get("updateRevision")
        return summarize_pods(pods, revision)

    async def prometheus(self, obj: Manifest) -> ReplicaStatus:
        """Replica status of a Prometheus object."""
        name = obj["metadata"]["name"]
        return await self._status(
            obj,
            DEFAULT_CONSTANTS.prometheus_pod_selector(name),
            f"{DEFAULT_CONSTANTS.PROMETHEUS_STATEFUL_SET_PREFIX}{name}",
        )

    async def alertmanager(self, obj: Manifest) -> ReplicaStatus:
        """Replica status of an Alertmanager object."""
        name = obj["metadata"]["name"]
        return await self._status(
            obj,
            DEFAULT_CONSTANTS.alertmanager_pod_selector(name),
            f"{DEFAULT_CONSTANTS.ALERTMANAGER_STATEFUL_SET_PREFIX}{name}",
        )
