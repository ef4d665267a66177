"""Remote operation set consumed by the sync engine.

Transport, authentication and retry policy live behind these protocols.
A client signals failure by raising; ``RemoteError`` is the conventional
exception, but the engine wraps anything a remote call raises.
"""

from __future__ import annotations

from typing import Protocol

from .models import LocalRecord, RemoteRecord


class RemoteError(Exception):
    """Raised by a client when a remote operation fails."""

    pass


class EndpointLister(Protocol):
    """Read access to the endpoints of a service version."""

    def list_endpoints(self, service_id: str, version: int) -> list[RemoteRecord]: ...


class RemoteOperations(EndpointLister, Protocol):
    """Full operation set of a versioned logging configuration service."""

    def get_active_version(self, service_id: str) -> int: ...

    def create_endpoint(
        self, service_id: str, version: int, record: LocalRecord
    ) -> RemoteRecord: ...

    def update_endpoint(
        self, service_id: str, version: int, name: str, record: LocalRecord
    ) -> RemoteRecord: ...

    def delete_endpoint(self, service_id: str, version: int, name: str) -> None: ...

    def clone_version(self, service_id: str) -> int:
        """Clone the active version and return the new, inactive version number."""
        ...

    def activate_version(self, service_id: str, version: int) -> None: ...
