"""Operator client constants.

This module centralizes the fixed poll timings, label selectors and
resource names used by the reconciliation and readiness code.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PollSettings:
    """Interval and overall timeout (both in seconds) for one kind of wait."""

    interval: float
    timeout: float


@dataclass(frozen=True)
class PollTimings:
    """Per-operation poll timings.

    These are fixed for every caller; they are not part of the runtime
    configuration.
    """

    deployment_rollout: PollSettings = PollSettings(interval=1, timeout=5 * 60)
    daemon_set_rollout: PollSettings = PollSettings(interval=1, timeout=5 * 60)
    crd_established: PollSettings = PollSettings(interval=5, timeout=5 * 60)
    route_admitted: PollSettings = PollSettings(interval=1, timeout=5 * 60)
    replicas_ready: PollSettings = PollSettings(interval=10, timeout=5 * 60)
    pods_removed: PollSettings = PollSettings(interval=10, timeout=10 * 60)
    operator_crds_ready: PollSettings = PollSettings(interval=1, timeout=5 * 60)


@dataclass(frozen=True)
class ClientConstants:
    """Constants shared by the monitoring operator client.

    All attributes are immutable.
    """

    DEFAULT_NAMESPACE: str = "openshift-monitoring"

    # Delete propagation used for every delete issued by the client
    DELETE_PROPAGATION: str = "Foreground"

    # prometheus-operator custom resources
    MONITORING_GROUP: str = "monitoring.coreos.com"
    PROMETHEUS_CRD_NAME: str = "prometheuses.monitoring.coreos.com"
    ALERTMANAGER_CRD_NAME: str = "alertmanagers.monitoring.coreos.com"
    SERVICE_MONITOR_CRD_NAME: str = "servicemonitors.monitoring.coreos.com"

    # StatefulSets generated by prometheus-operator are named <prefix><name>
    PROMETHEUS_STATEFUL_SET_PREFIX: str = "prometheus-"
    ALERTMANAGER_STATEFUL_SET_PREFIX: str = "alertmanager-"

    # Pod label set by the StatefulSet controller on every pod it owns
    REVISION_HASH_LABEL: str = "controller-revision-hash"

    # CRD condition names
    CRD_ESTABLISHED: str = "Established"
    CRD_NAMES_ACCEPTED: str = "NamesAccepted"

    # Route ingress condition name
    ROUTE_ADMITTED: str = "Admitted"

    poll: PollTimings = field(default_factory=PollTimings)

    @property
    def operator_crd_names(self) -> tuple[str, ...]:
        """Get the CRDs prometheus-operator must register before use."""
        return (
            self.PROMETHEUS_CRD_NAME,
            self.ALERTMANAGER_CRD_NAME,
            self.SERVICE_MONITOR_CRD_NAME,
        )

    def prometheus_pod_selector(self, name: str) -> str:
        """Label selector for the pods of a Prometheus object."""
        return f"app=prometheus,prometheus={name}"

    def alertmanager_pod_selector(self, name: str) -> str:
        """Label selector for the pods of an Alertmanager object."""
        return f"app=alertmanager,alertmanager={name}"


DEFAULT_CONSTANTS = ClientConstants()
POLL_TIMINGS = DEFAULT_CONSTANTS.poll
