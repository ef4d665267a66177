"""Single-cycle reconciliation of a service's logging endpoints.

One cycle:
1. Load desired endpoints from the YAML spec
2. OBSERVE mode: diff the active version and report drift
3. ENFORCE mode: clone, apply, activate (see ``sync``)
4. Verify the activated version converged
5. Log a provenance record for audit

Errors are captured on the result, logged, and recorded in provenance.
The reconciler keeps no reference to any version between cycles.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .client import RemoteOperations
from .config import Config, ConfigurationError, SyncMode
from .differ import Operation, summarize
from .errors import (
    ConvergenceMismatch,
    DuplicateName,
    InvalidRecord,
    OperationLimitExceeded,
    RemoteCallFailed,
    SyncCancelled,
    SyncError,
)
from .models import LoggingSpec
from .provenance import SyncProvenance, get_provenance_logger
from .spec_loader import SpecLoadError, load_spec
from .sync import APPLY_OPERATIONS, CancelSignal, plan, sync
from .verifier import verify

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result of a single reconciliation cycle."""

    service_id: str
    mode: SyncMode = SyncMode.OBSERVE
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    previous_version: int | None = None
    version: int | None = None
    pending_version: int | None = None  # Cloned but never activated
    operations: list[Operation] = field(default_factory=list)
    drift_found: bool = False
    changes_applied: int = 0
    changes_blocked: int = 0
    verified: bool = False
    error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success(self) -> bool:
        """Check if reconciliation succeeded."""
        return self.error is None


class Reconciler:
    """Reconciles one service's logging endpoints against its YAML spec."""

    def __init__(self, config: Config, client: RemoteOperations) -> None:
        """Initialize reconciler.

        Args:
            config: Validated configuration.
            client: Remote operation set for the service.
        """
        self._config = config
        self._client = client

    @property
    def config(self) -> Config:
        """Get the reconciler configuration."""
        return self._config

    def reconcile_once(self, cancel_event: CancelSignal | None = None) -> ReconcileResult:
        """Execute a single reconciliation cycle.

        Args:
            cancel_event: Checked before cloning and before every remote mutation
                in ENFORCE mode.

        Returns:
            ReconcileResult with details of the cycle.
        """
        result = ReconcileResult(service_id=self._config.service_id, mode=self._config.mode)

        provenance_logger = get_provenance_logger()
        provenance = provenance_logger.create_provenance(
            service_id=self._config.service_id,
            mode=self._config.mode.value,
        )

        try:
            spec = self._load_spec()

            match self._config.mode:
                case SyncMode.OBSERVE:
                    self._observe(spec, result)
                case SyncMode.ENFORCE:
                    self._enforce(spec, result, cancel_event)

        except SpecLoadError as e:
            logger.error("Failed to load spec", extra={"error": str(e)})
            result.error = e
        except ConfigurationError as e:
            logger.error("Configuration error", extra={"error": str(e)})
            result.error = e
        except (DuplicateName, InvalidRecord) as e:
            logger.error(
                "Invalid desired state",
                extra={"service_id": self._config.service_id, "error": str(e)},
            )
            result.error = e
        except OperationLimitExceeded as e:
            result.changes_blocked = e.count
            result.error = e
        except RemoteCallFailed as e:
            # A failure after cloning leaves an un-activated version behind
            if e.operation in APPLY_OPERATIONS:
                result.pending_version = e.version
            logger.error(
                "Remote call failed",
                extra={
                    "service_id": e.service_id,
                    "operation": e.operation,
                    "endpoint": e.name,
                    "version": e.version,
                    "error": str(e.__cause__ or e),
                },
            )
            result.error = e
        except SyncCancelled as e:
            result.pending_version = e.version
            result.changes_applied = e.applied
            logger.warning(
                "Sync cancelled",
                extra={"service_id": self._config.service_id, "version": e.version},
            )
            result.error = e
        except ConvergenceMismatch as e:
            logger.error(
                "Convergence verification failed",
                extra={"service_id": self._config.service_id, "error": str(e)},
            )
            result.error = e
        except SyncError as e:
            logger.error("Sync error", extra={"error": str(e)})
            result.error = e
        except Exception as e:
            logger.exception("Unexpected error during reconciliation")
            result.error = e

        if result.end_time is None:
            result.end_time = datetime.now(UTC)

        if self._config.enable_audit_logging:
            self._record_provenance(provenance, result)

        self._log_result(result)
        return result

    def _load_spec(self) -> LoggingSpec:
        spec = load_spec(self._config.spec_path)
        if spec.service_id != self._config.service_id:
            raise ConfigurationError(
                f"Spec {self._config.spec_path} targets service '{spec.service_id}', "
                f"configured service is '{self._config.service_id}'"
            )
        return spec

    def _observe(self, spec: LoggingSpec, result: ReconcileResult) -> None:
        """Report drift without mutating the service."""
        planned = plan(spec.service_id, spec.endpoints, self._client)

        result.previous_version = planned.version
        result.version = planned.version
        result.operations = planned.operations
        result.drift_found = planned.drift_found

        if planned.drift_found:
            logger.info(
                "OBSERVE mode: drift reported but not remediated",
                extra={
                    "service_id": spec.service_id,
                    "version": planned.version,
                    "operation_count": len(planned.operations),
                },
            )
        else:
            logger.info("No drift detected", extra={"service_id": spec.service_id})

    def _enforce(
        self,
        spec: LoggingSpec,
        result: ReconcileResult,
        cancel_event: CancelSignal | None,
    ) -> None:
        """Apply drift on a cloned version, activate it, then verify."""
        synced = sync(
            spec.service_id,
            spec.endpoints,
            self._client,
            cancel_event=cancel_event,
            max_operations=self._config.max_operations_per_sync,
        )

        result.previous_version = synced.previous_version
        result.version = synced.version
        result.operations = synced.operations
        result.drift_found = bool(synced.operations)
        result.changes_applied = len(synced.operations) if synced.activated else 0

        if synced.changed and self._config.verify_after_apply:
            verify(spec.service_id, synced.version, spec.endpoints, self._client)
            result.verified = True

    def _record_provenance(self, provenance: SyncProvenance, result: ReconcileResult) -> None:
        provenance_logger = get_provenance_logger()

        provenance.previous_version = result.previous_version
        provenance.new_version = result.version
        provenance.drift_detected = result.drift_found
        provenance.changes_applied = result.changes_applied
        provenance.changes_blocked = result.changes_blocked
        provenance.verified = result.verified
        provenance.change_summary = summarize(result.operations)
        provenance.duration_seconds = result.duration_seconds
        if result.error:
            provenance.error = str(result.error)
            provenance.error_type = type(result.error).__name__

        if result.changes_applied:
            for operation in result.operations:
                provenance_logger.log_operation(provenance, operation, result.version)

        provenance_logger.log_provenance(provenance)

    def _log_result(self, result: ReconcileResult) -> None:
        """Log reconciliation result with structured data."""
        extra: dict[str, Any] = {
            "service_id": result.service_id,
            "mode": result.mode.value,
            "duration_seconds": result.duration_seconds,
            "previous_version": result.previous_version,
            "version": result.version,
            "drift_found": result.drift_found,
            "changes_applied": result.changes_applied,
            "changes_blocked": result.changes_blocked,
            "verified": result.verified,
        }

        if result.pending_version is not None:
            extra["pending_version"] = result.pending_version

        if result.error is not None:
            extra["error"] = str(result.error)
            logger.error("Reconciliation failed", extra=extra)
        elif result.changes_blocked > 0:
            logger.warning("Reconciliation: changes blocked", extra=extra)
        else:
            logger.info("Reconciliation result", extra=extra)
