"""Diff engine for logging endpoints.

Compares the desired endpoint set against the endpoints observed on a service
version and produces the operations that converge them.

ORDERING: deletes come first, then creates, then updates. A name freed by a
delete can therefore be recreated within the same apply. A name never produces
both a delete and an update, so updates cannot collide with deletes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .errors import DuplicateName
from .models import USER_FIELDS, LocalRecord, RemoteRecord
from .translator import apply_defaults, to_local

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    """Kinds of endpoint operations, in apply order."""

    DELETE = "delete"
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class Create:
    """Create a desired endpoint that does not exist remotely."""

    desired: LocalRecord

    @property
    def kind(self) -> OperationKind:
        return OperationKind.CREATE

    @property
    def name(self) -> str:
        return self.desired.name


@dataclass(frozen=True)
class Update:
    """Bring an existing remote endpoint in line with the desired one."""

    desired: LocalRecord
    observed: RemoteRecord
    changed_fields: tuple[str, ...] = ()

    @property
    def kind(self) -> OperationKind:
        return OperationKind.UPDATE

    @property
    def name(self) -> str:
        return self.desired.name


@dataclass(frozen=True)
class Delete:
    """Remove a remote endpoint that is no longer desired."""

    observed: RemoteRecord

    @property
    def kind(self) -> OperationKind:
        return OperationKind.DELETE

    @property
    def name(self) -> str:
        return self.observed.name


Operation = Create | Update | Delete


@dataclass(frozen=True)
class DiffSummary:
    """Operation counts by kind."""

    create_count: int = 0
    update_count: int = 0
    delete_count: int = 0

    @property
    def total(self) -> int:
        return self.create_count + self.update_count + self.delete_count


def index_desired(desired: Iterable[LocalRecord]) -> dict[str, LocalRecord]:
    """Map desired endpoints by name, with defaults applied.

    Raises:
        DuplicateName: If two desired endpoints share a name.
        InvalidRecord: If a desired endpoint is missing a required field.
    """
    indexed: dict[str, LocalRecord] = {}
    for record in desired:
        defaulted = apply_defaults(record)
        if defaulted.name in indexed:
            raise DuplicateName(defaulted.name)
        indexed[defaulted.name] = defaulted
    return indexed


def changed_fields(desired: LocalRecord, current: LocalRecord) -> tuple[str, ...]:
    """List user fields whose values differ.

    Comparison is exact: no whitespace, case or numeric normalization.
    """
    return tuple(
        field_name
        for field_name in USER_FIELDS
        if getattr(desired, field_name) != getattr(current, field_name)
    )


def diff(desired: Iterable[LocalRecord], observed: Iterable[RemoteRecord]) -> list[Operation]:
    """Compute the operations that converge ``observed`` to ``desired``.

    Args:
        desired: Endpoints declared by configuration.
        observed: Endpoints currently stored on one service version.

    Returns:
        Deletes, then creates, then updates, each group sorted by name.
        Empty when the two sets already match.

    Raises:
        DuplicateName: If two desired endpoints share a name.
        InvalidRecord: If any endpoint is missing a required field.
    """
    wanted = index_desired(desired)
    current = {record.name: record for record in observed}

    deletes: list[Operation] = [
        Delete(observed=current[name]) for name in sorted(current.keys() - wanted.keys())
    ]
    creates: list[Operation] = [
        Create(desired=wanted[name]) for name in sorted(wanted.keys() - current.keys())
    ]

    updates: list[Operation] = []
    for name in sorted(wanted.keys() & current.keys()):
        fields = changed_fields(wanted[name], to_local(current[name]))
        if fields:
            updates.append(
                Update(desired=wanted[name], observed=current[name], changed_fields=fields)
            )

    operations = deletes + creates + updates

    logger.debug(
        "Computed endpoint diff",
        extra={
            "desired_count": len(wanted),
            "observed_count": len(current),
            "delete_count": len(deletes),
            "create_count": len(creates),
            "update_count": len(updates),
        },
    )
    return operations


def summarize(operations: Iterable[Operation]) -> DiffSummary:
    """Count operations by kind."""
    counts = {kind: 0 for kind in OperationKind}
    for operation in operations:
        counts[operation.kind] += 1
    return DiffSummary(
        create_count=counts[OperationKind.CREATE],
        update_count=counts[OperationKind.UPDATE],
        delete_count=counts[OperationKind.DELETE],
    )
