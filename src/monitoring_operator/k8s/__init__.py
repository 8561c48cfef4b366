"""Kubernetes reconciliation and readiness layer.

This module reconciles the objects of the cluster monitoring stack against
the Kubernetes API and waits for them to converge.

Example:
    from monitoring_operator.k8s import connect

    client = await connect()
    await client.create_or_update_deployment(manifest)
    host = await client.wait_for_route_ready(route)
"""

from .client import MonitoringClient
from .errors import (
    ClusterClientError,
    ConflictError,
    CRDNamingConflictError,
    FatalConditionError,
    ResourceOperationError,
    VersionConflictError,
    WaitCancelledError,
    WaitError,
    WaitTimeoutError,
)
from .helpers import connect
from .kinds import ResourceIdentity, ResourceKind
from .kr8s_repository import Kr8sRepository
from .poller import Readiness, poll_until
from .readiness import ReplicaStatus
from .reconciler import Reconciler
from .repository import ListWatch, ResourceRepository, WatchEvent

__all__ = [
    # Client and building blocks
    "MonitoringClient",
    "Reconciler",
    "ResourceRepository",
    "Kr8sRepository",
    "ListWatch",
    "connect",
    "poll_until",
    # Data classes
    "ResourceKind",
    "ResourceIdentity",
    "Readiness",
    "ReplicaStatus",
    "WatchEvent",
    # Errors
    "ClusterClientError",
    "ConflictError",
    "ResourceOperationError",
    "VersionConflictError",
    "FatalConditionError",
    "CRDNamingConflictError",
    "WaitError",
    "WaitTimeoutError",
    "WaitCancelledError",
]
