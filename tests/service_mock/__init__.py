"""Versioned logging service mock for integration testing.

This package provides an in-memory implementation of the remote operation
set that enables sync and reconciliation tests without a real service.

Key Features:
- Versioned endpoint state with clone-then-activate semantics
- Active versions reject every mutation, as the real service does
- Server-assigned timestamps on create and update
- Call history for asserting on the order of remote calls
- Error injection for testing failure scenarios

Usage:
    from service_mock import MockLoggingService

    service = MockLoggingService("svc-1", initial_endpoints=[...])
    result = sync("svc-1", desired, service)

    assert service.active_version == 2
    assert service.operations() == ["get_active_version", "list", "clone", ...]
"""

from .service import MockLoggingService, MockVersion, remote_record

__all__ = [
    "MockLoggingService",
    "MockVersion",
    "remote_record",
]
