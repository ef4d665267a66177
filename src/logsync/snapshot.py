"""Read-only remote operations backed by a captured snapshot.

Lets ``plan`` and ``verify`` run offline against an exported copy of the
service state. Every mutating call fails.
"""

from __future__ import annotations

from .client import RemoteError
from .models import LocalRecord, ObservedSnapshot, RemoteRecord


class SnapshotClient:
    """RemoteOperations implementation over an ObservedSnapshot."""

    def __init__(self, snapshot: ObservedSnapshot) -> None:
        self._snapshot = snapshot

    def _check_service(self, service_id: str) -> None:
        if service_id != self._snapshot.service_id:
            raise RemoteError(
                f"Snapshot holds service '{self._snapshot.service_id}', not '{service_id}'"
            )

    def get_active_version(self, service_id: str) -> int:
        self._check_service(service_id)
        return self._snapshot.version

    def list_endpoints(self, service_id: str, version: int) -> list[RemoteRecord]:
        self._check_service(service_id)
        if version != self._snapshot.version:
            return []
        return list(self._snapshot.endpoints)

    def _read_only(self, operation: str) -> RemoteError:
        return RemoteError(f"Cannot {operation}: snapshot is read-only")

    def create_endpoint(self, service_id: str, version: int, record: LocalRecord) -> RemoteRecord:
        raise self._read_only("create endpoint")

    def update_endpoint(
        self, service_id: str, version: int, name: str, record: LocalRecord
    ) -> RemoteRecord:
        raise self._read_only("update endpoint")

    def delete_endpoint(self, service_id: str, version: int, name: str) -> None:
        raise self._read_only("delete endpoint")

    def clone_version(self, service_id: str) -> int:
        raise self._read_only("clone version")

    def activate_version(self, service_id: str, version: int) -> None:
        raise self._read_only("activate version")
