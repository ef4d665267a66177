"""Error taxonomy for endpoint synchronization.

Every error carries enough structured context (operation, endpoint name,
version) to be logged or asserted on. None of them is retried by the engine:
repeating the same call would reproduce the same mismatch.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .differ import Operation


class SyncError(Exception):
    """Base class for all synchronization errors."""

    pass


class InvalidRecord(SyncError):
    """Raised when an endpoint record has an empty or malformed field.

    ``reason`` describes a malformed value; without it the field is empty.
    """

    def __init__(self, field: str, name: str = "", reason: str | None = None) -> None:
        self.field = field
        self.name = name
        self.reason = reason
        target = f"'{name}'" if name else "<unnamed>"
        if reason is None:
            message = f"Endpoint {target} has an empty required field: {field}"
        else:
            message = f"Endpoint {target} has an invalid {field}: {reason}"
        super().__init__(message)


class DuplicateName(SyncError):
    """Raised when two desired endpoints share a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Duplicate endpoint name in desired state: '{name}'")


class RemoteCallFailed(SyncError):
    """Raised when a remote operation returns an error.

    When raised during apply, ``version`` is the cloned version that was
    partially mutated and left un-activated.
    """

    def __init__(
        self,
        operation: str,
        service_id: str,
        version: int | None = None,
        name: str | None = None,
    ) -> None:
        self.operation = operation
        self.service_id = service_id
        self.version = version
        self.name = name

        parts = [f"Remote call '{operation}' failed for service {service_id}"]
        if version is not None:
            parts.append(f"version {version}")
        if name is not None:
            parts.append(f"endpoint '{name}'")
        super().__init__(", ".join(parts))


class ConvergenceMismatch(SyncError):
    """Raised when the remote state does not match the desired state after apply."""

    def __init__(
        self,
        version: int,
        operations: Sequence[Operation] = (),
        expected_count: int | None = None,
        observed_count: int | None = None,
    ) -> None:
        self.version = version
        self.operations = tuple(operations)
        self.expected_count = expected_count
        self.observed_count = observed_count

        if expected_count is not None and expected_count != observed_count:
            message = (
                f"Version {version} endpoint count mismatch: "
                f"expected {expected_count}, got {observed_count}"
            )
        else:
            pending = ", ".join(f"{op.kind.value} {op.name}" for op in self.operations)
            message = f"Version {version} has not converged: {pending}"
        super().__init__(message)


class SyncCancelled(SyncError):
    """Raised when a sync is cancelled before cloning or between remote mutations.

    ``version`` is None when no version was cloned.
    """

    def __init__(self, version: int | None, applied: int) -> None:
        self.version = version
        self.applied = applied
        if version is None:
            message = "Sync cancelled before cloning; nothing applied"
        else:
            message = (
                f"Sync cancelled after {applied} operation(s); "
                f"version {version} left un-activated"
            )
        super().__init__(message)


class OperationLimitExceeded(SyncError):
    """Raised before cloning when a sync would apply too many operations."""

    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(
            f"Sync would apply {count} operations, exceeding limit of {limit}. "
            f"Review the desired state before applying."
        )


class VersionStateError(SyncError):
    """Raised on an illegal service version lifecycle transition."""

    pass
