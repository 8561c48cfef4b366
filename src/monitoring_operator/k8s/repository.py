"""Abstract resource repository interface.

Defines the per-kind access contract to the Kubernetes object store that
the reconciler, the poller checks and the deletion waits are built on.
Implementations hold no state besides their connection handle and make
exactly one remote call per method; retrying is left to the poller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from .kinds import Manifest, ResourceIdentity, ResourceKind

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class WatchEvent:
    """A change notification from a watch stream."""

    type: str  # "ADDED", "MODIFIED", "DELETED"
    object: Manifest


# =============================================================================
# Abstract Repository
# =============================================================================


class ResourceRepository(ABC):
    """Abstract base class for typed access to the object store.

    All methods are async to match the kr8s asyncio API.
    """

    @abstractmethod
    async def get(self, identity: ResourceIdentity) -> Manifest | None:
        """Fetch an object.

        Args:
            identity: Object to fetch

        Returns:
            The observed object, or None if it does not exist
        """
        ...

    @abstractmethod
    async def create(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        """Create an object.

        Fails if an object with the same identity already exists.

        Args:
            kind: Kind of the object
            manifest: Desired object

        Returns:
            The created object as stored by the API server
        """
        ...

    @abstractmethod
    async def update(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        """Replace an object.

        The manifest must carry the current metadata.resourceVersion.

        Args:
            kind: Kind of the object
            manifest: Desired object including its version token

        Returns:
            The updated object as stored by the API server

        Raises:
            ConflictError: If the version token is stale
        """
        ...

    @abstractmethod
    async def delete(
        self,
        identity: ResourceIdentity,
        *,
        propagation: str = "Foreground",
    ) -> bool:
        """Delete an object.

        A missing object is not an error.

        Args:
            identity: Object to delete
            propagation: Delete propagation policy

        Returns:
            True if an object was deleted, False if there was none
        """
        ...

    @abstractmethod
    async def list(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        *,
        label_selector: str | None = None,
    ) -> list[Manifest]:
        """List objects of a kind.

        Args:
            kind: Kind to list
            namespace: Namespace to list in (ignored for cluster-scoped kinds)
            label_selector: Optional label selector (e.g. "app=prometheus")

        Returns:
            Matching objects
        """
        ...

    @abstractmethod
    def watch(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        *,
        label_selector: str | None = None,
    ) -> AsyncIterator[WatchEvent]:
        """Stream change events for a kind.

        Args:
            kind: Kind to watch
            namespace: Namespace to watch (ignored for cluster-scoped kinds)
            label_selector: Optional label selector

        Returns:
            Async iterator of WatchEvent
        """
        ...


@dataclass
class ListWatch:
    """List-and-watch handle for one kind in one namespace.

    Change-notification consumers call list() for the current snapshot and
    then iterate watch() for subsequent changes.
    """

    repository: ResourceRepository
    kind: ResourceKind
    namespace: str | None = None
    label_selector: str | None = None

    async def list(self) -> list[Manifest]:
        """Get the current snapshot."""
        return await self.repository.list(
            self.kind, self.namespace, label_selector=self.label_selector
        )

    def watch(self) -> AsyncIterator[WatchEvent]:
        """Stream changes after the snapshot."""
        return self.repository.watch(
            self.kind, self.namespace, label_selector=self.label_selector
        )

    def describe(self) -> dict[str, Any]:
        """Describe the subscription for logging."""
        return {
            "kind": self.kind.name,
            "namespace": self.namespace,
            "label_selector": self.label_selector,
        }
