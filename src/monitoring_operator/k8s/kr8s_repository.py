"""Kr8s-based implementation of ResourceRepository.

Uses the kr8s library for native async Kubernetes operations. Full object
replacement (PUT) has no kr8s object method and APIObject.get() retries on
its own, so updates and reads go through the low-level call_api().
"""

from __future__ import annotations

import copy
import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import kr8s
from loguru import logger
from typing_extensions import override

from .errors import ConflictError
from .kinds import Manifest, ResourceIdentity, ResourceKind
from .repository import ResourceRepository, WatchEvent


def _status_code(error: Exception) -> int | None:
    """Get the HTTP status code behind a kr8s error, if there is one."""
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


class Kr8sRepository(ResourceRepository):
    """Resource repository using the kr8s library.

    The API handle is injected so one connection can be shared by every
    caller. Note that kr8s API handles are tied to the event loop that
    created them; build the repository inside the loop that will use it.
    """

    def __init__(self, api: Any) -> None:  # kr8s.asyncio.Api
        """Initialize the repository.

        Args:
            api: Connected kr8s asyncio API handle
        """
        self._api = api

    @classmethod
    async def connect(
        cls,
        *,
        kubeconfig: Path | None = None,
        context: str | None = None,
        namespace: str | None = None,
    ) -> Kr8sRepository:
        """Create a repository with a fresh kr8s API handle.

        Args:
            kubeconfig: Path to a kubeconfig file (default: kr8s discovery)
            context: kubeconfig context to use
            namespace: Default namespace of the handle

        Returns:
            Connected repository
        """
        api = await kr8s.asyncio.api(
            kubeconfig=str(kubeconfig) if kubeconfig else None,
            context=context,
            namespace=namespace,
        )
        return cls(api)

    @property
    def api(self) -> Any:
        return self._api

    def _bind(self, kind: ResourceKind, manifest: Manifest) -> Any:
        """Wrap a manifest in the kr8s class of its kind."""
        body = copy.deepcopy(manifest)
        body.setdefault("apiVersion", kind.api_version)
        body.setdefault("kind", kind.name)
        return kind.object_class(body, api=self._api)

    def _reference(self, identity: ResourceIdentity) -> Any:
        """Build a kr8s object that only carries the identity."""
        metadata: dict[str, str] = {"name": identity.name}
        if identity.namespace:
            metadata["namespace"] = identity.namespace
        return self._bind(identity.kind, {"metadata": metadata})

    # =========================================================================
    # Single-object Operations
    # =========================================================================

    @override
    async def get(self, identity: ResourceIdentity) -> Manifest | None:
        """Fetch an object, returning None if it does not exist.

        APIObject.get() retries until its own timeout, so the request is
        issued directly to keep this a single call.
        """
        obj = self._reference(identity)
        try:
            async with self._api.call_api(
                "GET",
                version=obj.version,
                url=f"{obj.endpoint}/{obj.name}",
                namespace=obj.namespace,
            ) as response:
                observed: Manifest = response.json()
        except kr8s.NotFoundError:
            return None
        except kr8s.ServerError as e:
            if _status_code(e) == 404:
                return None
            raise
        return observed

    @override
    async def create(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        """Create an object (POST)."""
        obj = self._bind(kind, manifest)
        await obj.create()
        logger.debug(f"Created {kind.name} {obj.name}")
        return dict(obj.raw)

    @override
    async def update(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        """Replace an object (PUT), honouring metadata.resourceVersion."""
        obj = self._bind(kind, manifest)
        try:
            async with self._api.call_api(
                "PUT",
                version=obj.version,
                url=f"{obj.endpoint}/{obj.name}",
                namespace=obj.namespace,
                data=json.dumps(obj.raw),
            ) as response:
                updated: Manifest = response.json()
        except kr8s.ServerError as e:
            if _status_code(e) == 409:
                raise ConflictError(str(e)) from e
            raise
        logger.debug(f"Updated {kind.name} {obj.name}")
        return updated

    @override
    async def delete(
        self,
        identity: ResourceIdentity,
        *,
        propagation: str = "Foreground",
    ) -> bool:
        """Delete an object; a missing object is not an error."""
        obj = self._reference(identity)
        try:
            await obj.delete(propagation_policy=propagation)
        except kr8s.NotFoundError:
            return False
        except kr8s.ServerError as e:
            if _status_code(e) == 404:
                return False
            raise
        return True

    # =========================================================================
    # Collection Operations
    # =========================================================================

    @override
    async def list(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        *,
        label_selector: str | None = None,
    ) -> list[Manifest]:
        """List objects of a kind."""
        kwargs: dict[str, Any] = {"api": self._api}
        if kind.namespaced and namespace:
            kwargs["namespace"] = namespace
        if label_selector:
            kwargs["label_selector"] = label_selector
        return [dict(obj.raw) async for obj in kind.object_class.list(**kwargs)]

    @override
    async def watch(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        *,
        label_selector: str | None = None,
    ) -> AsyncIterator[WatchEvent]:
        """Stream change events for a kind."""
        kwargs: dict[str, Any] = {}
        if kind.namespaced and namespace:
            kwargs["namespace"] = namespace
        if label_selector:
            kwargs["label_selector"] = label_selector
        async for event, obj in self._api.watch(kind.object_class, **kwargs):
            yield WatchEvent(type=event, object=dict(obj.raw))
