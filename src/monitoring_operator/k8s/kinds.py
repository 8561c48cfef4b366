"""Resource kinds handled by the operator client.

Each kind pairs a kr8s object class with the set of server-owned fields
that must be carried from the observed object onto the desired one before
an update is sent.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from kr8s.asyncio.objects import (
    APIObject,
    ClusterRole,
    ClusterRoleBinding,
    ConfigMap,
    CustomResourceDefinition,
    DaemonSet,
    Deployment,
    Ingress,
    Pod,
    Role,
    RoleBinding,
    Secret,
    Service,
    ServiceAccount,
    StatefulSet,
    new_class,
)

from ..constants import DEFAULT_CONSTANTS

Manifest = dict[str, Any]
Carryover = Callable[[Manifest, Manifest], None]

# =============================================================================
# Carryover policies
# =============================================================================


def carry_resource_version(observed: Manifest, desired: Manifest) -> None:
    """Copy the version token from the observed object onto desired."""
    version = observed.get("metadata", {}).get("resourceVersion")
    if version:
        desired.setdefault("metadata", {})["resourceVersion"] = version


def carry_cluster_ip(observed: Manifest, desired: Manifest) -> None:
    """Copy the allocated cluster IP of a ClusterIP service onto desired.

    The address is assigned by the API server and cannot be changed, so a
    desired manifest without it would be rejected on update.
    """
    spec = desired.setdefault("spec", {})
    if spec.get("type", "ClusterIP") != "ClusterIP":
        return

    observed_spec = observed.get("spec", {})
    if cluster_ip := observed_spec.get("clusterIP"):
        spec["clusterIP"] = cluster_ip
    if cluster_ips := observed_spec.get("clusterIPs"):
        spec["clusterIPs"] = list(cluster_ips)


# =============================================================================
# Kinds and identities
# =============================================================================


@dataclass(frozen=True)
class ResourceKind:
    """A resource kind the repository can operate on.

    Attributes:
        name: Kind name as it appears in manifests and error messages
        object_class: kr8s class used to talk to the API
        carryover: Merge functions applied (observed, desired) before update
    """

    name: str
    object_class: type[APIObject]
    carryover: tuple[Carryover, ...] = (carry_resource_version,)

    @property
    def namespaced(self) -> bool:
        return bool(self.object_class.namespaced)

    @property
    def api_version(self) -> str:
        return str(self.object_class.version)

    def merge_observed(self, observed: Manifest, desired: Manifest) -> None:
        """Apply every carryover policy of this kind to desired, in place."""
        for carry in self.carryover:
            carry(observed, desired)


@dataclass(frozen=True)
class ResourceIdentity:
    """Lookup key of a single object: (kind, name, namespace).

    namespace is None for cluster-scoped kinds.
    """

    kind: ResourceKind
    name: str
    namespace: str | None = None

    @classmethod
    def of(cls, kind: ResourceKind, manifest: Manifest) -> ResourceIdentity:
        """Build the identity of a manifest.

        Raises:
            ValueError: If the manifest has no metadata.name
        """
        metadata = manifest.get("metadata") or {}
        name = metadata.get("name")
        if not name:
            raise ValueError(f"{kind.name} manifest has no metadata.name")
        namespace = metadata.get("namespace") if kind.namespaced else None
        return cls(kind=kind, name=name, namespace=namespace)

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind.name} {self.namespace}/{self.name}"
        return f"{self.kind.name} {self.name}"


# Kubernetes built-ins
DEPLOYMENT = ResourceKind("Deployment", Deployment)
DAEMON_SET = ResourceKind("DaemonSet", DaemonSet)
STATEFUL_SET = ResourceKind("StatefulSet", StatefulSet)
POD = ResourceKind("Pod", Pod)
SECRET = ResourceKind("Secret", Secret)
CONFIG_MAP = ResourceKind("ConfigMap", ConfigMap)
SERVICE = ResourceKind(
    "Service", Service, carryover=(carry_resource_version, carry_cluster_ip)
)
ENDPOINTS = ResourceKind(
    "Endpoints",
    new_class("Endpoints", version="v1", namespaced=True, plural="endpoints"),
)
SERVICE_ACCOUNT = ResourceKind("ServiceAccount", ServiceAccount)
ROLE = ResourceKind("Role", Role)
ROLE_BINDING = ResourceKind("RoleBinding", RoleBinding)
CLUSTER_ROLE = ResourceKind("ClusterRole", ClusterRole)
CLUSTER_ROLE_BINDING = ResourceKind("ClusterRoleBinding", ClusterRoleBinding)
INGRESS = ResourceKind("Ingress", Ingress)
CUSTOM_RESOURCE_DEFINITION = ResourceKind(
    "CustomResourceDefinition", CustomResourceDefinition
)

# OpenShift
ROUTE = ResourceKind(
    "Route",
    new_class(
        "Route", version="route.openshift.io/v1", namespaced=True, plural="routes"
    ),
)
SECURITY_CONTEXT_CONSTRAINTS = ResourceKind(
    "SecurityContextConstraints",
    new_class(
        "SecurityContextConstraints",
        version="security.openshift.io/v1",
        namespaced=False,
        plural="securitycontextconstraints",
    ),
)

# prometheus-operator
MONITORING_V1 = f"{DEFAULT_CONSTANTS.MONITORING_GROUP}/v1"

PROMETHEUS = ResourceKind(
    "Prometheus",
    new_class(
        "Prometheus",
        version=MONITORING_V1,
        namespaced=True,
        plural="prometheuses",
    ),
)
ALERTMANAGER = ResourceKind(
    "Alertmanager",
    new_class(
        "Alertmanager",
        version=MONITORING_V1,
        namespaced=True,
        plural="alertmanagers",
    ),
)
SERVICE_MONITOR = ResourceKind(
    "ServiceMonitor",
    new_class(
        "ServiceMonitor",
        version=MONITORING_V1,
        namespaced=True,
        plural="servicemonitors",
    ),
)
PROMETHEUS_RULE = ResourceKind(
    "PrometheusRule",
    new_class(
        "PrometheusRule",
        version=MONITORING_V1,
        namespaced=True,
        plural="prometheusrules",
    ),
)

ALL_KINDS: tuple[ResourceKind, ...] = (
    DEPLOYMENT,
    DAEMON_SET,
    STATEFUL_SET,
    POD,
    SECRET,
    CONFIG_MAP,
    SERVICE,
    ENDPOINTS,
    SERVICE_ACCOUNT,
    ROLE,
    ROLE_BINDING,
    CLUSTER_ROLE,
    CLUSTER_ROLE_BINDING,
    INGRESS,
    CUSTOM_RESOURCE_DEFINITION,
    ROUTE,
    SECURITY_CONTEXT_CONSTRAINTS,
    PROMETHEUS,
    ALERTMANAGER,
    SERVICE_MONITOR,
    PROMETHEUS_RULE,
)
