"""Desired-state and snapshot file loading with validation.

All file operations enforce size limits. Input validation is performed at the
boundary: callers only ever see validated models or a SpecLoadError.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .config import MAX_SNAPSHOT_FILE_SIZE_BYTES, MAX_SPEC_FILE_SIZE_BYTES
from .models import LoggingSpec, ObservedSnapshot

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SpecLoadError(Exception):
    """Raised when spec or snapshot loading or validation fails."""

    pass


def _read_mapping(path: Path, max_size: int, kind: str) -> dict[str, Any]:
    """Read a YAML (or JSON) file that must contain a mapping."""
    if not path.exists():
        raise SpecLoadError(f"{kind} file not found: {path}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat {kind.lower()} file {path}: {e}") from e

    if file_size > max_size:
        raise SpecLoadError(f"{kind} file exceeds maximum size of {max_size} bytes: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read {kind.lower()} file {path}: {e}") from e

    # JSON is a subset of YAML, so one parser covers both formats
    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"{kind} file must contain a YAML mapping: {path}")

    # Support both flat format and Kubernetes-style wrapper
    if "apiVersion" in raw_data and "spec" in raw_data:
        spec_data = raw_data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {path}")
        return spec_data

    return raw_data


def _validate(model: type[ModelT], data: dict[str, Any], path: Path) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")

        error_list = "\n".join(errors)
        raise SpecLoadError(f"Validation failed for {path}:\n{error_list}") from e


def load_spec(spec_path: Path) -> LoggingSpec:
    """Load and validate the desired logging endpoints from YAML.

    Args:
        spec_path: Path to the spec file.

    Returns:
        Validated spec.

    Raises:
        SpecLoadError: If the file cannot be read or fails validation.
    """
    data = _read_mapping(spec_path, MAX_SPEC_FILE_SIZE_BYTES, "Spec")
    spec = _validate(LoggingSpec, data, spec_path)

    logger.info(
        "Loaded spec for service '%s' from %s (%d endpoints)",
        spec.service_id,
        spec_path,
        len(spec.endpoints),
    )
    return spec


def load_snapshot(snapshot_path: Path) -> ObservedSnapshot:
    """Load a captured remote state of a service's active version.

    Args:
        snapshot_path: Path to a YAML or JSON snapshot.

    Returns:
        Validated snapshot.

    Raises:
        SpecLoadError: If the file cannot be read or fails validation.
    """
    data = _read_mapping(snapshot_path, MAX_SNAPSHOT_FILE_SIZE_BYTES, "Snapshot")

    # Endpoints inherit the snapshot's service and version unless they carry their own
    endpoints = data.get("endpoints")
    if isinstance(endpoints, list):
        scope = {"serviceId": data.get("serviceId"), "version": data.get("version")}
        data = {
            **data,
            "endpoints": [
                {**scope, **entry} if isinstance(entry, dict) else entry for entry in endpoints
            ],
        }

    snapshot = _validate(ObservedSnapshot, data, snapshot_path)

    logger.info(
        "Loaded snapshot for service '%s' version %d from %s",
        snapshot.service_id,
        snapshot.version,
        snapshot_path,
    )
    return snapshot
