"""Sync provenance tracking for audit.

Every reconciliation is stamped with a provenance record answering:
- "Which version was active before, and which one is active now?"
- "What was created, updated and deleted?"
- "Which revision of the configuration and of logsync produced it?"
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from .differ import DiffSummary, Operation

logger = logging.getLogger(__name__)

# Version is set at build time or falls back to dev
LOGSYNC_VERSION = os.environ.get("LOGSYNC_VERSION", "dev")


@dataclass
class SyncProvenance:
    """Complete provenance record for one reconciliation cycle."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Identity
    service_id: str = ""
    logsync_version: str = LOGSYNC_VERSION
    instance_id: str = ""

    # Git source of truth
    git_commit_sha: str = ""
    git_branch: str = ""
    git_repo: str = ""

    # Outcome
    mode: str = "observe"
    previous_version: int | None = None
    new_version: int | None = None
    drift_detected: bool = False
    changes_applied: int = 0
    changes_blocked: int = 0
    verified: bool = False
    change_summary: DiffSummary = field(default_factory=DiffSummary)

    duration_seconds: float = 0.0

    error: str | None = None
    error_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = asdict(self)
        result["timestamp"] = self.timestamp.isoformat()
        return result


class ProvenanceLogger:
    """Logs provenance records through the structured logger."""

    def __init__(self) -> None:
        self._git_commit_sha = os.environ.get("GIT_COMMIT_SHA", "")
        self._git_branch = os.environ.get("GIT_BRANCH", "")
        self._git_repo = os.environ.get("GIT_REPO", "")
        self._instance_id = os.environ.get("CONTAINER_INSTANCE_ID", "")

    def create_provenance(self, service_id: str, mode: str) -> SyncProvenance:
        """Create a new provenance record for a reconciliation cycle.

        Args:
            service_id: The service being reconciled.
            mode: Sync mode (observe, enforce).

        Returns:
            Initialized provenance record.
        """
        return SyncProvenance(
            service_id=service_id,
            logsync_version=LOGSYNC_VERSION,
            instance_id=self._instance_id,
            git_commit_sha=self._git_commit_sha,
            git_branch=self._git_branch,
            git_repo=self._git_repo,
            mode=mode,
        )

    def log_provenance(self, provenance: SyncProvenance) -> None:
        """Log a completed provenance record.

        Args:
            provenance: Completed provenance record.
        """
        log_level = logging.INFO
        if provenance.error:
            log_level = logging.ERROR
        elif provenance.changes_blocked > 0:
            log_level = logging.WARNING

        logger.log(
            log_level,
            "Sync provenance",
            extra={
                "provenance": provenance.to_dict(),
                # Flatten key fields for easier querying
                "service_id": provenance.service_id,
                "mode": provenance.mode,
                "previous_version": provenance.previous_version,
                "new_version": provenance.new_version,
                "drift_detected": provenance.drift_detected,
                "changes_applied": provenance.changes_applied,
                "git_commit": provenance.git_commit_sha,
                "duration_seconds": provenance.duration_seconds,
            },
        )

    def log_operation(
        self, provenance: SyncProvenance, operation: Operation, version: int | None
    ) -> None:
        """Log one endpoint operation for fine-grained audit.

        Credentials are never logged.
        """
        logger.info(
            "Endpoint operation",
            extra={
                "service_id": provenance.service_id,
                "git_commit": provenance.git_commit_sha,
                "endpoint": operation.name,
                "operation": operation.kind.value,
                "changed_fields": list(getattr(operation, "changed_fields", ())),
                "version": version,
            },
        )


# Global singleton for provenance logging
_provenance_logger: ProvenanceLogger | None = None


def get_provenance_logger() -> ProvenanceLogger:
    """Get the global provenance logger instance."""
    global _provenance_logger
    if _provenance_logger is None:
        _provenance_logger = ProvenanceLogger()
    return _provenance_logger
