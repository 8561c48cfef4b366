"""Generic create-or-update reconciliation.

The same algorithm serves every kind:

1. get the object
2. absent: create it
3. get failed: give up without writing
4. present: carry server-owned fields onto the desired object, then update

Kinds differ only in which fields are carried over (see kinds.py) and in
the one ServiceAccount exception documented on create_or_update().
"""

from __future__ import annotations

import copy
from collections.abc import Iterable

from loguru import logger

from .errors import wrap_error
from .kinds import SERVICE_ACCOUNT, Manifest, ResourceIdentity, ResourceKind
from .repository import ResourceRepository


class Reconciler:
    """Converges single objects towards a desired manifest."""

    def __init__(self, repository: ResourceRepository) -> None:
        """Initialize the reconciler.

        Args:
            repository: Repository to read and write objects through
        """
        self.repository = repository

    async def _get(self, identity: ResourceIdentity) -> Manifest | None:
        try:
            return await self.repository.get(identity)
        except Exception as e:
            raise wrap_error("retrieving", identity, e) from e

    async def _create(
        self, identity: ResourceIdentity, desired: Manifest
    ) -> Manifest:
        try:
            created = await self.repository.create(identity.kind, desired)
        except Exception as e:
            raise wrap_error("creating", identity, e) from e
        logger.info(f"Created {identity}")
        return created

    async def create_or_update(
        self, kind: ResourceKind, desired: Manifest
    ) -> Manifest:
        """Create the object if absent, otherwise update it.

        ServiceAccounts are only ever created: updating one makes the token
        controller mint a new token secret for it, so an existing account is
        returned untouched.

        Args:
            kind: Kind of the object
            desired: Desired manifest; it is not modified

        Returns:
            The object as stored after the call

        Raises:
            ResourceOperationError: If the get, create or update failed
            VersionConflictError: If the update lost an optimistic-concurrency
                race
        """
        identity = ResourceIdentity.of(kind, desired)
        observed = await self._get(identity)
        if observed is None:
            return await self._create(identity, desired)

        if kind is SERVICE_ACCOUNT:
            logger.debug(f"{identity} exists, not updating it")
            return observed

        merged = copy.deepcopy(desired)
        kind.merge_observed(observed, merged)
        try:
            updated = await self.repository.update(kind, merged)
        except Exception as e:
            raise wrap_error("updating", identity, e) from e
        logger.info(f"Updated {identity}")
        return updated

    async def create_if_not_exists(
        self, kind: ResourceKind, desired: Manifest
    ) -> Manifest | None:
        """Create the object if absent, never update it.

        Returns:
            The created object, or None if it already existed
        """
        identity = ResourceIdentity.of(kind, desired)
        if await self._get(identity) is not None:
            logger.debug(f"{identity} exists, leaving it as is")
            return None
        return await self._create(identity, desired)

    async def create_or_update_all(
        self, kind: ResourceKind, manifests: Iterable[Manifest]
    ) -> list[Manifest]:
        """Reconcile several objects of one kind in order.

        Stops at the first failure; objects before it stay reconciled.
        """
        return [await self.create_or_update(kind, m) for m in manifests]
