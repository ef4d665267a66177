"""Configuration management with validation.

Constraints are enforced at configuration load time so a misconfigured sync
fails before any remote call is made.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class SyncMode(str, Enum):
    """How detected drift is handled."""

    OBSERVE = "observe"  # Report drift only, never mutate the service
    ENFORCE = "enforce"  # Clone, apply and activate


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_SPEC_PATH = "/specs/logging.yaml"
DEFAULT_MAX_OPERATIONS_PER_SYNC = 100
MAX_OPERATIONS_PER_SYNC_LIMIT = 1000

# Spec and snapshot files are small; anything larger is a mistake
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024  # 1MB
MAX_SNAPSHOT_FILE_SIZE_BYTES = 1024 * 1024  # 1MB

# Input validation patterns
VALID_SERVICE_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"


@dataclass(frozen=True)
class Config:
    """Sync configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-sync.
    """

    # Required fields
    service_id: str

    # Paths
    spec_path: Path = field(default_factory=lambda: Path(DEFAULT_SPEC_PATH))

    # Behavior
    mode: SyncMode = SyncMode.OBSERVE
    verify_after_apply: bool = True

    # Blast radius: refuse to apply more operations than this in one sync
    max_operations_per_sync: int = DEFAULT_MAX_OPERATIONS_PER_SYNC

    # Emit provenance records for every reconciliation
    enable_audit_logging: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        import re

        errors: list[str] = []

        if not self.service_id:
            errors.append("SERVICE_ID is required")
        elif not re.match(VALID_SERVICE_ID_PATTERN, self.service_id):
            errors.append(
                f"SERVICE_ID must match pattern {VALID_SERVICE_ID_PATTERN}: {self.service_id}"
            )

        if not self.spec_path.is_file():
            errors.append(f"Spec file does not exist: {self.spec_path}")

        if not (1 <= self.max_operations_per_sync <= MAX_OPERATIONS_PER_SYNC_LIMIT):
            errors.append(
                f"MAX_OPERATIONS_PER_SYNC must be between 1 and {MAX_OPERATIONS_PER_SYNC_LIMIT}"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            SERVICE_ID: The service whose logging endpoints are synced
            SPEC_FILE: Path to the YAML desired state (default: /specs/logging.yaml)
            SYNC_MODE: One of observe, enforce (default: observe)
            VERIFY_AFTER_APPLY: Re-read and verify after activation (default: true)
            MAX_OPERATIONS_PER_SYNC: Max operations applied in one sync (default: 100)
            ENABLE_AUDIT_LOGGING: Emit provenance records (default: true)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        def get_mode(value: str | None) -> SyncMode:
            if not value:
                return SyncMode.OBSERVE
            try:
                return SyncMode(value.lower())
            except ValueError as e:
                valid = [m.value for m in SyncMode]
                raise ConfigurationError(f"SYNC_MODE must be one of {valid}: {value}") from e

        return cls(
            service_id=os.environ.get("SERVICE_ID", ""),
            spec_path=Path(os.environ.get("SPEC_FILE", DEFAULT_SPEC_PATH)),
            mode=get_mode(os.environ.get("SYNC_MODE")),
            verify_after_apply=get_bool("VERIFY_AFTER_APPLY", True),
            max_operations_per_sync=get_int(
                "MAX_OPERATIONS_PER_SYNC", DEFAULT_MAX_OPERATIONS_PER_SYNC
            ),
            enable_audit_logging=get_bool("ENABLE_AUDIT_LOGGING", True),
        )
