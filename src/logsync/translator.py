"""Translation between remote endpoint records and local declarative records.

The remote side stores endpoints as typed records scoped to one service
version, with server-assigned timestamps. The local side only knows the
fields a user may set. ``to_local`` is the single projection applied before
every comparison, so server-only fields never leak into a diff.
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import InvalidRecord
from .models import DEFAULT_FORMAT_VERSION, USER_FIELDS, LocalRecord, RemoteRecord

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("name", "credential")


def validate_record(record: LocalRecord | RemoteRecord) -> None:
    """Check that required endpoint fields are set.

    Raises:
        InvalidRecord: If ``name`` or ``credential`` is empty.
    """
    for field_name in _REQUIRED_FIELDS:
        if not getattr(record, field_name):
            raise InvalidRecord(field_name, record.name)


def _normalize_format_version(value: Any) -> int | None:
    """Surface a remote format version as a plain integer.

    The remote may report the value with any numeric width or as a string;
    the logical value is kept, the representation is not.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            value = float(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"format_version is not integral: {value}")
        return int(value)
    return int(value)


def apply_defaults(record: LocalRecord) -> LocalRecord:
    """Return ``record`` with defaults for omitted fields filled in.

    Raises:
        InvalidRecord: If a required field is empty.
    """
    validate_record(record)
    if record.format_version is not None:
        return record
    return record.model_copy(update={"format_version": DEFAULT_FORMAT_VERSION})


def to_local(remote: RemoteRecord) -> LocalRecord:
    """Project a remote record onto the user-settable fields.

    Raises:
        InvalidRecord: If a required field is empty or the format version
            is not an integer.
    """
    validate_record(remote)
    try:
        format_version = _normalize_format_version(remote.format_version)
    except ValueError as e:
        raise InvalidRecord(
            "format_version", remote.name, reason=f"not an integer: {remote.format_version!r}"
        ) from e

    return LocalRecord(
        name=remote.name,
        credential=remote.credential,
        format=remote.format,
        format_version=format_version,
        placement=remote.placement,
        response_condition=remote.response_condition,
    )


def to_remote(local: LocalRecord, service_id: str, version: int) -> RemoteRecord:
    """Build the remote record a local endpoint should become on ``version``.

    Timestamps are left unknown; they are assigned by the remote service.

    Raises:
        InvalidRecord: If a required field is empty.
    """
    record = apply_defaults(local)
    return RemoteRecord(
        service_id=service_id,
        version=version,
        name=record.name,
        credential=record.credential,
        format=record.format,
        format_version=record.format_version,
        placement=record.placement,
        response_condition=record.response_condition,
        created_at=None,
        updated_at=None,
    )


def flatten(remotes: list[RemoteRecord]) -> list[dict[str, Any]]:
    """Convert remote records to the key/value maps of the declarative layer.

    Fields that are unset or empty are omitted.
    """
    flattened: list[dict[str, Any]] = []
    for remote in remotes:
        local = to_local(remote)
        values = {key: getattr(local, key) for key in USER_FIELDS}
        flattened.append({key: value for key, value in values.items() if value not in (None, "")})

    logger.debug("Flattened remote endpoints", extra={"count": len(flattened)})
    return flattened
