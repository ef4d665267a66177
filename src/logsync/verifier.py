"""Convergence verification after apply.

Re-reads a service version and confirms it matches the desired endpoints
under the ``to_local`` projection.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .client import EndpointLister
from .differ import diff, index_desired
from .errors import ConvergenceMismatch
from .models import LocalRecord
from .sync import call_remote

logger = logging.getLogger(__name__)


def verify(
    service_id: str,
    version: int,
    desired: Iterable[LocalRecord],
    lister: EndpointLister,
) -> None:
    """Confirm that ``version`` holds exactly the desired endpoints.

    A count mismatch is reported with the counts and whatever operations
    the structural diff still finds.

    Raises:
        ConvergenceMismatch: If any operation would still be needed.
        DuplicateName: If two desired endpoints share a name.
        InvalidRecord: If an endpoint is missing a required field.
        RemoteCallFailed: If listing the version fails.
    """
    desired = list(desired)
    expected = index_desired(desired)

    observed = call_remote(
        "list", service_id, version, None, lister.list_endpoints, service_id, version
    )

    remaining = diff(desired, observed)

    if len(observed) != len(expected):
        logger.error(
            "Endpoint count mismatch",
            extra={
                "service_id": service_id,
                "version": version,
                "expected_count": len(expected),
                "observed_count": len(observed),
                "remaining": [f"{op.kind.value}:{op.name}" for op in remaining],
            },
        )
        raise ConvergenceMismatch(
            version, remaining, expected_count=len(expected), observed_count=len(observed)
        )

    if remaining:
        logger.error(
            "Endpoints have not converged",
            extra={
                "service_id": service_id,
                "version": version,
                "remaining": [f"{op.kind.value}:{op.name}" for op in remaining],
            },
        )
        raise ConvergenceMismatch(version, remaining)

    logger.info(
        "Endpoints converged",
        extra={"service_id": service_id, "version": version, "count": len(observed)},
    )
