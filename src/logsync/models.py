"""Pydantic models for logging endpoints and service versions.

These models provide:
1. Type-safe YAML parsing of the desired state
2. Immutable value types for local and remote endpoint records
3. An explicit lifecycle for cloned service versions
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .errors import VersionStateError

# Format version applied when a desired endpoint leaves it unset
DEFAULT_FORMAT_VERSION = 2

# Fields the user may set on an endpoint, in comparison order
USER_FIELDS: tuple[str, ...] = (
    "name",
    "credential",
    "format",
    "format_version",
    "placement",
    "response_condition",
)


# =============================================================================
# Endpoint Records
# =============================================================================


class LocalRecord(BaseModel):
    """User-declared logging endpoint.

    Only user-settable fields. ``format_version`` stays ``None`` when the
    configuration omits it; the default is substituted during translation.
    """

    model_config = {"extra": "ignore", "frozen": True, "populate_by_name": True}

    name: str
    credential: str
    format: str = ""
    format_version: int | None = Field(None, alias="formatVersion")
    placement: str | None = None
    response_condition: str | None = Field(None, alias="responseCondition")


class RemoteRecord(BaseModel):
    """Logging endpoint as stored by the remote service.

    ``created_at`` and ``updated_at`` are server-assigned. ``None`` means
    unknown; they never take part in comparisons.
    """

    model_config = {"extra": "ignore", "frozen": True, "populate_by_name": True}

    service_id: str = Field(alias="serviceId")
    version: int
    name: str
    credential: str
    format: str = ""
    # Remote payloads are not consistent about the numeric type
    format_version: int | float | str | None = Field(None, alias="formatVersion")
    placement: str | None = None
    response_condition: str | None = Field(None, alias="responseCondition")
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")


# =============================================================================
# Configuration Files
# =============================================================================


class LoggingSpec(BaseModel):
    """Desired logging endpoints for one service."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    service_id: str = Field(alias="serviceId", min_length=1)
    endpoints: list[LocalRecord] = Field(default_factory=list)


class ObservedSnapshot(BaseModel):
    """Captured remote state of a service's active version."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    service_id: str = Field(alias="serviceId", min_length=1)
    version: int = Field(ge=1)
    endpoints: list[RemoteRecord] = Field(default_factory=list)


# =============================================================================
# Service Versions
# =============================================================================


class VersionState(str, Enum):
    """Lifecycle states of a service configuration version."""

    DRAFT = "draft"  # Freshly cloned, inactive, untouched
    DIRTY = "dirty"  # Inactive, at least one mutation applied
    ACTIVE = "active"  # Serving traffic, immutable


_ALLOWED_TRANSITIONS: dict[VersionState, frozenset[VersionState]] = {
    VersionState.DRAFT: frozenset({VersionState.DIRTY, VersionState.ACTIVE}),
    VersionState.DIRTY: frozenset({VersionState.DIRTY, VersionState.ACTIVE}),
    VersionState.ACTIVE: frozenset(),
}


@dataclass(frozen=True)
class ServiceVersion:
    """Handle on one configuration version and its lifecycle state."""

    number: int
    state: VersionState = VersionState.DRAFT

    @property
    def mutable(self) -> bool:
        """Whether endpoints on this version may be changed."""
        return self.state != VersionState.ACTIVE

    def ensure_mutable(self) -> None:
        """Raise if this version must not be mutated.

        Raises:
            VersionStateError: If the version is active.
        """
        if not self.mutable:
            raise VersionStateError(f"Version {self.number} is active and cannot be mutated")

    def transition(self, target: VersionState) -> ServiceVersion:
        """Return this version moved to ``target``.

        Raises:
            VersionStateError: If the transition is not allowed.
        """
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise VersionStateError(
                f"Version {self.number} cannot move from {self.state.value} to {target.value}"
            )
        return ServiceVersion(number=self.number, state=target)

    def mark_dirty(self) -> ServiceVersion:
        """Record that a mutation has been applied."""
        return self.transition(VersionState.DIRTY)

    def activate(self) -> ServiceVersion:
        """Record that the version has been promoted to active."""
        return self.transition(VersionState.ACTIVE)
