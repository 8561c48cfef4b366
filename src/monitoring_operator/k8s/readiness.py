"""Per-kind readiness predicates.

Each predicate maps an observed object to a Readiness verdict. They do no
I/O; the client re-fetches the object on every poll tick and passes it in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..constants import DEFAULT_CONSTANTS
from .errors import CRDNamingConflictError
from .kinds import Manifest
from .poller import Readiness


@dataclass(frozen=True)
class ReplicaStatus:
    """Replica counts derived from the live pod set of a workload."""

    replicas: int = 0
    updated_replicas: int = 0
    available_replicas: int = 0
    unavailable_replicas: int = 0


def _status(obj: Manifest) -> dict[str, Any]:
    return obj.get("status") or {}


def _generation_observed(obj: Manifest) -> bool:
    generation = obj.get("metadata", {}).get("generation", 0)
    return bool(generation <= _status(obj).get("observedGeneration", 0))


def deployment_rollout(obj: Manifest) -> Readiness:
    """Check whether a Deployment rollout has completed."""
    status = _status(obj)
    replicas = status.get("replicas", 0)
    updated = status.get("updatedReplicas", 0)
    unavailable = status.get("unavailableReplicas", 0)

    if not _generation_observed(obj):
        return Readiness.pending("new generation not observed yet")
    if updated != replicas:
        return Readiness.pending(f"{updated} of {replicas} replicas updated")
    if unavailable != 0:
        return Readiness.pending(f"{unavailable} replicas unavailable")
    return Readiness.done()


def daemon_set_rollout(obj: Manifest) -> Readiness:
    """Check whether a DaemonSet rollout has completed."""
    status = _status(obj)
    desired = status.get("desiredNumberScheduled", 0)
    updated = status.get("updatedNumberScheduled", 0)
    unavailable = status.get("numberUnavailable", 0)

    if not _generation_observed(obj):
        return Readiness.pending("new generation not observed yet")
    if updated != desired:
        return Readiness.pending(f"{updated} of {desired} pods updated")
    if unavailable != 0:
        return Readiness.pending(f"{unavailable} pods unavailable")
    return Readiness.done()


def crd_established(obj: Manifest) -> Readiness:
    """Check whether a CustomResourceDefinition is established.

    Raises:
        CRDNamingConflictError: If the API server rejected the CRD's names.
            This never resolves by waiting.
    """
    name = obj.get("metadata", {}).get("name", "")
    established = False
    for condition in _status(obj).get("conditions") or []:
        kind = condition.get("type")
        status = condition.get("status")
        if kind == DEFAULT_CONSTANTS.CRD_ESTABLISHED and status == "True":
            established = True
        elif kind == DEFAULT_CONSTANTS.CRD_NAMES_ACCEPTED and status == "False":
            raise CRDNamingConflictError(name, condition.get("reason", ""))

    if established:
        return Readiness.done()
    return Readiness.pending("not established")


def route_admitted(obj: Manifest) -> Readiness:
    """Check whether a Route has been admitted by the router.

    The ready verdict carries the route's host as its value.
    """
    ingress = _status(obj).get("ingress") or []
    if not ingress:
        return Readiness.pending("no ingress status")

    for condition in ingress[0].get("conditions") or []:
        if (
            condition.get("type") == DEFAULT_CONSTANTS.ROUTE_ADMITTED
            and condition.get("status") == "True"
        ):
            return Readiness.done(obj.get("spec", {}).get("host", ""))
    return Readiness.pending("not admitted")


def replicas_available(obj: Manifest, status: ReplicaStatus) -> Readiness:
    """Check a Prometheus or Alertmanager against its pod-derived status.

    The object's own status may lag behind, so counts come from the live
    pods rather than from obj.
    """
    desired = obj.get("spec", {}).get("replicas")
    if desired is None:
        desired = 1

    if status.updated_replicas != desired:
        return Readiness.pending(
            f"{status.updated_replicas} of {desired} replicas updated"
        )
    if status.available_replicas < desired:
        return Readiness.pending(
            f"{status.available_replicas} of {desired} replicas available"
        )
    return Readiness.done()
