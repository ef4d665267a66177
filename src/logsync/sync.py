"""Apply driver: converge a service's logging endpoints to the desired set.

The remote service follows a clone-then-activate discipline:
1. Read the endpoints of the active version
2. Diff them against the desired set (nothing else happens if empty)
3. Clone a new version; only this version is ever mutated
4. Apply deletes, creates and updates in that order
5. Activate the new version

A failing remote call or a cancellation stops the apply immediately. The
cloned version is left un-activated for inspection and is never rolled back;
re-activating the previous version is the rollback path and belongs to the
caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, TypeVar

from .client import RemoteOperations
from .differ import Create, Delete, Operation, Update, diff
from .errors import OperationLimitExceeded, RemoteCallFailed, SyncCancelled
from .models import LocalRecord, ServiceVersion
from .translator import to_local, to_remote

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Remote calls that target the cloned version
APPLY_OPERATIONS = frozenset({"delete", "create", "update", "activate"})


class CancelSignal(Protocol):
    """Anything that reports cancellation, such as ``threading.Event``."""

    def is_set(self) -> bool: ...


@dataclass(frozen=True)
class Plan:
    """Operations needed to converge the active version."""

    service_id: str
    version: int
    operations: list[Operation] = field(default_factory=list)

    @property
    def drift_found(self) -> bool:
        return bool(self.operations)


@dataclass
class SyncResult:
    """Outcome of a single sync call."""

    service_id: str
    previous_version: int
    version: int
    operations: list[Operation] = field(default_factory=list)
    activated: bool = False
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None

    @property
    def changed(self) -> bool:
        """Whether a new version was cloned and activated."""
        return self.version != self.previous_version

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()


def call_remote(
    operation: str,
    service_id: str,
    version: int | None,
    name: str | None,
    func: Callable[..., T],
    *args: Any,
) -> T:
    """Invoke a remote operation, wrapping any failure with its context.

    Raises:
        RemoteCallFailed: If the remote call raises.
    """
    try:
        return func(*args)
    except Exception as e:
        logger.error(
            "Remote call failed",
            extra={
                "operation": operation,
                "service_id": service_id,
                "version": version,
                "endpoint": name,
                "error": str(e),
            },
        )
        raise RemoteCallFailed(operation, service_id, version=version, name=name) from e


def _apply_operation(
    client: RemoteOperations, service_id: str, version: int, operation: Operation
) -> None:
    """Execute one operation against ``version``."""
    match operation:
        case Delete(observed=observed):
            call_remote(
                operation.kind.value,
                service_id,
                version,
                observed.name,
                client.delete_endpoint,
                service_id,
                version,
                observed.name,
            )

        case Create(desired=desired):
            payload = to_remote(desired, service_id, version)
            call_remote(
                operation.kind.value,
                service_id,
                version,
                desired.name,
                client.create_endpoint,
                payload.service_id,
                payload.version,
                to_local(payload),
            )

        case Update(desired=desired, observed=observed):
            payload = to_remote(desired, service_id, version)
            call_remote(
                operation.kind.value,
                service_id,
                version,
                observed.name,
                client.update_endpoint,
                payload.service_id,
                payload.version,
                observed.name,
                to_local(payload),
            )


def plan(
    service_id: str, desired: Iterable[LocalRecord], client: RemoteOperations
) -> Plan:
    """Read the active version and diff it against ``desired``.

    Nothing is mutated.

    Raises:
        DuplicateName: If two desired endpoints share a name.
        InvalidRecord: If an endpoint is missing a required field.
        RemoteCallFailed: If reading the remote state fails.
    """
    active = call_remote(
        "get_active_version", service_id, None, None, client.get_active_version, service_id
    )
    observed = call_remote(
        "list", service_id, active, None, client.list_endpoints, service_id, active
    )
    return Plan(service_id=service_id, version=active, operations=diff(desired, observed))


def sync(
    service_id: str,
    desired: Iterable[LocalRecord],
    client: RemoteOperations,
    *,
    cancel_event: CancelSignal | None = None,
    max_operations: int | None = None,
) -> SyncResult:
    """Converge the service's endpoints to ``desired``.

    Args:
        service_id: Target service.
        desired: Endpoints declared by configuration.
        client: Remote operation set.
        cancel_event: Checked before cloning and before every remote mutation.
        max_operations: Refuse to clone when more operations are needed.

    Returns:
        SyncResult. When nothing differs, ``version`` is the active version
        and no clone was made.

    Raises:
        DuplicateName: If two desired endpoints share a name.
        InvalidRecord: If an endpoint is missing a required field.
        OperationLimitExceeded: If ``max_operations`` would be exceeded.
        RemoteCallFailed: If a remote call fails. ``version`` on the error is
            the partially applied, un-activated version when one exists.
        SyncCancelled: If cancellation was requested. ``version`` on the
            error is None when it was honored before cloning.
    """
    planned = plan(service_id, desired, client)
    active = planned.version
    operations = planned.operations
    result = SyncResult(
        service_id=service_id,
        previous_version=active,
        version=active,
        operations=operations,
    )

    if max_operations is not None and len(operations) > max_operations:
        logger.error(
            "Operation limit exceeded, nothing applied",
            extra={
                "service_id": service_id,
                "operation_count": len(operations),
                "limit": max_operations,
            },
        )
        raise OperationLimitExceeded(len(operations), max_operations)

    if not operations:
        logger.info(
            "Endpoints already converged, no new version",
            extra={"service_id": service_id, "version": active},
        )
        result.end_time = datetime.now(UTC)
        return result

    if cancel_event is not None and cancel_event.is_set():
        logger.warning(
            "Sync cancelled before cloning, nothing applied",
            extra={"service_id": service_id, "version": active},
        )
        raise SyncCancelled(None, 0)

    # Clone failures carry no version: nothing was mutated
    cloned = call_remote("clone", service_id, None, None, client.clone_version, service_id)
    draft = ServiceVersion(number=cloned)

    logger.info(
        "Cloned version for endpoint changes",
        extra={
            "service_id": service_id,
            "from_version": active,
            "version": draft.number,
            "operation_count": len(operations),
        },
    )

    applied = 0
    for operation in operations:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(
                "Sync cancelled, version left un-activated",
                extra={"service_id": service_id, "version": draft.number, "applied": applied},
            )
            raise SyncCancelled(draft.number, applied)

        draft.ensure_mutable()
        logger.info(
            "Applying endpoint operation",
            extra={
                "service_id": service_id,
                "version": draft.number,
                "operation": operation.kind.value,
                "endpoint": operation.name,
            },
        )
        _apply_operation(client, service_id, draft.number, operation)
        draft = draft.mark_dirty()
        applied += 1

    if cancel_event is not None and cancel_event.is_set():
        raise SyncCancelled(draft.number, applied)

    call_remote(
        "activate",
        service_id,
        draft.number,
        None,
        client.activate_version,
        service_id,
        draft.number,
    )
    draft = draft.activate()

    result.version = draft.number
    result.activated = True
    result.end_time = datetime.now(UTC)

    logger.info(
        "Activated version",
        extra={
            "service_id": service_id,
            "previous_version": active,
            "version": draft.number,
            "operations_applied": applied,
            "duration_seconds": result.duration_seconds,
        },
    )
    return result
