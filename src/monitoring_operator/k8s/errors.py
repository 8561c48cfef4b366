"""Errors raised by the reconciliation and readiness layer.

Every remote failure is wrapped with the operation and the resource it was
acting on, so callers can log actionable context. Poll outcomes get their
own branch of the hierarchy so a timeout can be told apart from a transport
failure or a permanent condition.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .kinds import ResourceIdentity


class ClusterClientError(Exception):
    """Base class for all errors raised by this package."""


class ConflictError(ClusterClientError):
    """The version token sent with an update was stale.

    Raised by repositories; callers see it wrapped in a
    VersionConflictError.
    """


class ResourceOperationError(ClusterClientError):
    """A get, create, update or delete call against the API failed."""

    def __init__(
        self,
        operation: str,
        kind: str,
        name: str,
        namespace: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.operation = operation
        self.kind = kind
        self.name = name
        self.namespace = namespace
        self.cause = cause

        target = f"{namespace}/{name}" if namespace else name
        message = f"{operation} {kind} object failed ({target})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class VersionConflictError(ResourceOperationError):
    """An update lost an optimistic-concurrency race.

    Not retried here; retry-on-conflict is a caller policy.
    """


class FatalConditionError(ClusterClientError):
    """A readiness check hit a permanent failure.

    Raising this from a poll check stops the poll immediately instead of
    waiting out the timeout.
    """


class CRDNamingConflictError(FatalConditionError):
    """A CustomResourceDefinition's names were rejected by the API server."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"CRD naming conflict ({name}): {reason}")


class WaitError(ClusterClientError):
    """Base class for a wait that ended without the resource becoming ready."""

    def __init__(self, message: str, resource: str, elapsed: float) -> None:
        self.resource = resource
        self.elapsed = elapsed
        super().__init__(message)


class WaitTimeoutError(WaitError):
    """The deadline passed while the resource was still pending."""

    def __init__(
        self,
        resource: str,
        elapsed: float,
        last_error: BaseException | None = None,
    ) -> None:
        self.last_error = last_error
        message = f"timed out waiting for {resource} after {elapsed:.1f}s"
        if last_error is not None:
            message = f"{message} (last error: {last_error})"
        super().__init__(message, resource, elapsed)


class WaitCancelledError(WaitError):
    """The caller cancelled the wait before the resource became ready."""

    def __init__(self, resource: str, elapsed: float) -> None:
        super().__init__(
            f"waiting for {resource} cancelled after {elapsed:.1f}s",
            resource,
            elapsed,
        )


def wrap_error(
    operation: str,
    identity: ResourceIdentity,
    error: BaseException,
) -> ResourceOperationError:
    """Wrap a remote failure with the operation and resource it came from.

    Args:
        operation: Gerund describing the call (e.g. "creating", "updating")
        identity: Resource the call was acting on
        error: Underlying exception

    Returns:
        VersionConflictError when the cause is a ConflictError,
        ResourceOperationError otherwise. Raise it ``from error``.
    """
    error_cls = (
        VersionConflictError
        if isinstance(error, ConflictError)
        else ResourceOperationError
    )
    return error_cls(
        operation,
        identity.kind.name,
        identity.name,
        identity.namespace,
        cause=error,
    )
