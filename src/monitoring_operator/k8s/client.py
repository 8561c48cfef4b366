"""Monitoring operator client.

MonitoringClient exposes one small adapter per kind over the generic
Reconciler, the readiness predicates and poll_until(). Every method runs to
completion (success, error, timeout or cancellation) before it returns.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from loguru import logger

from ..constants import DEFAULT_CONSTANTS, POLL_TIMINGS, PollSettings
from . import readiness
from .errors import ResourceOperationError, wrap_error
from .kinds import (
    ALERTMANAGER,
    CLUSTER_ROLE,
    CLUSTER_ROLE_BINDING,
    CONFIG_MAP,
    CUSTOM_RESOURCE_DEFINITION,
    DAEMON_SET,
    DEPLOYMENT,
    ENDPOINTS,
    INGRESS,
    POD,
    PROMETHEUS,
    PROMETHEUS_RULE,
    ROLE,
    ROLE_BINDING,
    ROUTE,
    SECRET,
    SECURITY_CONTEXT_CONSTRAINTS,
    SERVICE,
    SERVICE_ACCOUNT,
    SERVICE_MONITOR,
    Manifest,
    ResourceIdentity,
    ResourceKind,
)
from .poller import Readiness, poll_until
from .readiness import ReplicaStatus
from .reconciler import Reconciler
from .replica_status import PodReplicaStatus
from .repository import ListWatch, ResourceRepository


class MonitoringClient:
    """Reconciles and waits on the objects of the cluster monitoring stack.

    Attributes:
        repository: Repository used for every remote call
        reconciler: Generic create-or-update logic
        replica_status: Pod-derived status for Prometheus and Alertmanager
    """

    def __init__(
        self,
        repository: ResourceRepository,
        namespace: str = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE,
        app_version_name: str = "",
        replica_status: PodReplicaStatus | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            repository: Connected resource repository
            namespace: Namespace the monitoring stack lives in
            app_version_name: Name of the operator's app version object
            replica_status: Replica status source (default: computed from pods)
        """
        self.repository = repository
        self.reconciler = Reconciler(repository)
        self.replica_status = replica_status or PodReplicaStatus(repository)
        self._namespace = namespace
        self._app_version_name = app_version_name

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def app_version_name(self) -> str:
        """Name of the operator's app version object, as given at construction."""
        return self._app_version_name

    # =========================================================================
    # List-and-watch
    # =========================================================================

    def list_watch(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> ListWatch:
        """Create a list-and-watch handle for a kind."""
        lw = ListWatch(self.repository, kind, namespace, label_selector)
        logger.debug(f"Created list-watch {lw.describe()}")
        return lw

    def config_map_list_watch(self) -> ListWatch:
        """List-and-watch on the ConfigMaps of the client's namespace."""
        return self.list_watch(CONFIG_MAP, self.namespace)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _wait_for(
        self,
        identity: ResourceIdentity,
        predicate: Callable[[Manifest], Readiness],
        settings: PollSettings,
        cancel: asyncio.Event | None,
    ) -> Readiness:
        """Poll an object until predicate reports it ready."""

        async def check() -> Readiness:
            try:
                obj = await self.repository.get(identity)
            except Exception as e:
                raise wrap_error("retrieving", identity, e) from e
            if obj is None:
                return Readiness.pending("not found")
            return predicate(obj)

        return await poll_until(
            check,
            interval=settings.interval,
            timeout=settings.timeout,
            resource=str(identity),
            cancel=cancel,
        )

    async def _delete(self, identity: ResourceIdentity) -> bool:
        try:
            deleted = await self.repository.delete(
                identity, propagation=DEFAULT_CONSTANTS.DELETE_PROPAGATION
            )
        except Exception as e:
            raise wrap_error("deleting", identity, e) from e
        if deleted:
            logger.info(f"Deleted {identity}")
        else:
            logger.debug(f"{identity} already gone")
        return deleted

    async def _list(
        self,
        kind: ResourceKind,
        namespace: str | None,
        label_selector: str | None = None,
    ) -> list[Manifest]:
        try:
            return await self.repository.list(
                kind, namespace, label_selector=label_selector
            )
        except Exception as e:
            raise ResourceOperationError(
                "listing", kind.name, label_selector or "*", namespace, cause=e
            ) from e

    async def _wait_for_pods_gone(
        self,
        namespace: str | None,
        label_selector: str,
        resource: str,
        cancel: asyncio.Event | None,
    ) -> None:
        async def check() -> Readiness:
            pods = await self._list(POD, namespace, label_selector)
            logger.debug(f"Waiting for {len(pods)} pods to be deleted")
            if pods:
                return Readiness.pending(f"{len(pods)} pods remaining")
            return Readiness.done()

        settings = POLL_TIMINGS.pods_removed
        await poll_until(
            check,
            interval=settings.interval,
            timeout=settings.timeout,
            resource=f"pods of {resource}",
            cancel=cancel,
        )

    # =========================================================================
    # Workloads
    # =========================================================================

    async def create_or_update_deployment(
        self, deployment: Manifest, *, cancel: asyncio.Event | None = None
    ) -> Manifest:
        """Reconcile a Deployment and wait for its rollout."""
        result = await self.reconciler.create_or_update(DEPLOYMENT, deployment)
        await self.wait_for_deployment_rollout(result, cancel=cancel)
        return result

    async def wait_for_deployment_rollout(
        self, deployment: Manifest, *, cancel: asyncio.Event | None = None
    ) -> None:
        """Wait until a Deployment has rolled out completely."""
        await self._wait_for(
            ResourceIdentity.of(DEPLOYMENT, deployment),
            readiness.deployment_rollout,
            POLL_TIMINGS.deployment_rollout,
            cancel,
        )

    async def delete_deployment(self, deployment: Manifest) -> None:
        await self._delete(ResourceIdentity.of(DEPLOYMENT, deployment))

    async def create_or_update_daemon_set(
        self, daemon_set: Manifest, *, cancel: asyncio.Event | None = None
    ) -> Manifest:
        """Reconcile a DaemonSet and wait for its rollout."""
        result = await self.reconciler.create_or_update(DAEMON_SET, daemon_set)
        await self.wait_for_daemon_set_rollout(result, cancel=cancel)
        return result

    async def wait_for_daemon_set_rollout(
        self, daemon_set: Manifest, *, cancel: asyncio.Event | None = None
    ) -> None:
        """Wait until a DaemonSet has rolled out on every scheduled node."""
        await self._wait_for(
            ResourceIdentity.of(DAEMON_SET, daemon_set),
            readiness.daemon_set_rollout,
            POLL_TIMINGS.daemon_set_rollout,
            cancel,
        )

    async def delete_daemon_set(self, daemon_set: Manifest) -> None:
        await self._delete(ResourceIdentity.of(DAEMON_SET, daemon_set))

    # =========================================================================
    # prometheus-operator resources
    # =========================================================================

    async def create_or_update_prometheus(self, prometheus: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(PROMETHEUS, prometheus)

    async def create_or_update_prometheus_rule(self, rule: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(PROMETHEUS_RULE, rule)

    async def create_or_update_alertmanager(
        self, alertmanager: Manifest
    ) -> Manifest:
        return await self.reconciler.create_or_update(ALERTMANAGER, alertmanager)

    async def create_or_update_service_monitor(
        self, service_monitor: Manifest
    ) -> Manifest:
        return await self.reconciler.create_or_update(
            SERVICE_MONITOR, service_monitor
        )

    async def _wait_for_replicas(
        self,
        identity: ResourceIdentity,
        compute: Callable[[Manifest], Awaitable[ReplicaStatus]],
        cancel: asyncio.Event | None,
    ) -> None:
        async def check() -> Readiness:
            try:
                obj = await self.repository.get(identity)
            except Exception as e:
                raise wrap_error("retrieving", identity, e) from e
            if obj is None:
                return Readiness.pending("not found")
            try:
                status = await compute(obj)
            except Exception as e:
                raise wrap_error("retrieving status of", identity, e) from e
            return readiness.replicas_available(obj, status)

        settings = POLL_TIMINGS.replicas_ready
        await poll_until(
            check,
            interval=settings.interval,
            timeout=settings.timeout,
            resource=str(identity),
            cancel=cancel,
        )

    async def wait_for_prometheus(
        self, prometheus: Manifest, *, cancel: asyncio.Event | None = None
    ) -> None:
        """Wait until every replica of a Prometheus is updated and available."""
        await self._wait_for_replicas(
            ResourceIdentity.of(PROMETHEUS, prometheus),
            self.replica_status.prometheus,
            cancel,
        )

    async def wait_for_alertmanager(
        self, alertmanager: Manifest, *, cancel: asyncio.Event | None = None
    ) -> None:
        """Wait until every replica of an Alertmanager is updated and available."""
        await self._wait_for_replicas(
            ResourceIdentity.of(ALERTMANAGER, alertmanager),
            self.replica_status.alertmanager,
            cancel,
        )

    async def delete_prometheus(
        self, prometheus: Manifest, *, cancel: asyncio.Event | None = None
    ) -> None:
        """Delete a Prometheus and wait until all of its pods are gone.

        The object can disappear while its pods are still terminating, so
        the pod list is polled separately.
        """
        identity = ResourceIdentity.of(PROMETHEUS, prometheus)
        await self._delete(identity)
        await self._wait_for_pods_gone(
            identity.namespace,
            DEFAULT_CONSTANTS.prometheus_pod_selector(identity.name),
            str(identity),
            cancel,
        )

    async def delete_alertmanager(
        self, alertmanager: Manifest, *, cancel: asyncio.Event | None = None
    ) -> None:
        """Delete an Alertmanager and wait until all of its pods are gone."""
        identity = ResourceIdentity.of(ALERTMANAGER, alertmanager)
        await self._delete(identity)
        await self._wait_for_pods_gone(
            identity.namespace,
            DEFAULT_CONSTANTS.alertmanager_pod_selector(identity.name),
            str(identity),
            cancel,
        )

    async def delete_service_monitor(self, namespace: str, name: str) -> None:
        await self._delete(ResourceIdentity(SERVICE_MONITOR, name, namespace))

    # =========================================================================
    # CustomResourceDefinitions
    # =========================================================================

    async def crd_ready(self, crd: Manifest) -> bool:
        """Check once whether a CRD is established.

        Raises:
            CRDNamingConflictError: If the CRD's names were rejected
            ResourceOperationError: If the CRD could not be fetched
        """
        identity = ResourceIdentity.of(CUSTOM_RESOURCE_DEFINITION, crd)
        try:
            observed = await self.repository.get(identity)
        except Exception as e:
            raise wrap_error("retrieving", identity, e) from e
        if observed is None:
            return False
        return readiness.crd_established(observed).ready

    async def wait_for_crd_ready(
        self, crd: Manifest, *, cancel: asyncio.Event | None = None
    ) -> None:
        """Wait until a CRD is established.

        A naming conflict ends the wait at once with CRDNamingConflictError.
        """
        await self._wait_for(
            ResourceIdentity.of(CUSTOM_RESOURCE_DEFINITION, crd),
            readiness.crd_established,
            POLL_TIMINGS.crd_established,
            cancel,
        )

    async def wait_for_prometheus_operator_crds_ready(
        self, *, cancel: asyncio.Event | None = None
    ) -> None:
        """Wait until prometheus-operator's CRDs are established and usable.

        Usable means the Prometheus, Alertmanager and ServiceMonitor kinds can
        be listed in the client's namespace.
        """

        async def check() -> Readiness:
            for name in DEFAULT_CONSTANTS.operator_crd_names:
                crd = {"metadata": {"name": name}}
                if not await self.crd_ready(crd):
                    return Readiness.pending(f"{name} not established")
            for kind in (PROMETHEUS, ALERTMANAGER, SERVICE_MONITOR):
                await self._list(kind, self.namespace)
            return Readiness.done()

        settings = POLL_TIMINGS.operator_crds_ready
        await poll_until(
            check,
            interval=settings.interval,
            timeout=settings.timeout,
            resource="prometheus-operator CRDs",
            cancel=cancel,
        )

    # =========================================================================
    # Routes and ingress
    # =========================================================================

    async def create_route_if_not_exists(self, route: Manifest) -> None:
        await self.reconciler.create_if_not_exists(ROUTE, route)

    async def wait_for_route_ready(
        self, route: Manifest, *, cancel: asyncio.Event | None = None
    ) -> str:
        """Wait until a Route is admitted.

        Returns:
            The host the route is reachable at
        """
        verdict = await self._wait_for(
            ResourceIdentity.of(ROUTE, route),
            readiness.route_admitted,
            POLL_TIMINGS.route_admitted,
            cancel,
        )
        return str(verdict.value or "")

    async def create_or_update_ingress(self, ingress: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(INGRESS, ingress)

    # =========================================================================
    # Core objects
    # =========================================================================

    async def create_or_update_secret(self, secret: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(SECRET, secret)

    async def create_if_not_exist_secret(self, secret: Manifest) -> None:
        await self.reconciler.create_if_not_exists(SECRET, secret)

    async def create_or_update_config_map(self, config_map: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(CONFIG_MAP, config_map)

    async def create_or_update_config_map_list(
        self, config_maps: Iterable[Manifest]
    ) -> None:
        """Reconcile ConfigMaps in order, stopping at the first failure."""
        await self.reconciler.create_or_update_all(CONFIG_MAP, config_maps)

    async def create_if_not_exist_config_map(self, config_map: Manifest) -> None:
        await self.reconciler.create_if_not_exists(CONFIG_MAP, config_map)

    async def create_or_update_service(self, service: Manifest) -> Manifest:
        """Reconcile a Service, keeping its allocated cluster IP."""
        return await self.reconciler.create_or_update(SERVICE, service)

    async def create_or_update_endpoints(self, endpoints: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(ENDPOINTS, endpoints)

    async def create_or_update_service_account(
        self, service_account: Manifest
    ) -> Manifest:
        """Create a ServiceAccount if absent; existing accounts are not updated."""
        return await self.reconciler.create_or_update(
            SERVICE_ACCOUNT, service_account
        )

    # =========================================================================
    # RBAC and security
    # =========================================================================

    async def create_or_update_role(self, role: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(ROLE, role)

    async def create_or_update_role_binding(self, binding: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(ROLE_BINDING, binding)

    async def create_or_update_cluster_role(self, role: Manifest) -> Manifest:
        return await self.reconciler.create_or_update(CLUSTER_ROLE, role)

    async def create_or_update_cluster_role_binding(
        self, binding: Manifest
    ) -> Manifest:
        return await self.reconciler.create_or_update(CLUSTER_ROLE_BINDING, binding)

    async def create_or_update_security_context_constraints(
        self, constraints: Manifest
    ) -> Manifest:
        return await self.reconciler.create_or_update(
            SECURITY_CONTEXT_CONSTRAINTS, constraints
        )
