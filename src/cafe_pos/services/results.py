"""
ServiceResult - the value collaborator calls return to the order-entry flow.

A failed storage call becomes ok=False with a user-facing message; it is
never raised into pricing code.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..data.service import DataServiceError


logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    ok: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None) -> 'ServiceResult':
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> 'ServiceResult':
        return cls(ok=False, error=error)


def call_service(action: str, fn: Callable, *args, **kwargs) -> ServiceResult:
    """Run a data-service call, turning DataServiceError into a failed result."""
    try:
        return ServiceResult.success(fn(*args, **kwargs))
    except DataServiceError as e:
        logger.error("Failed to %s: %s", action, e)
        return ServiceResult.failure(f"Failed to {action}: {e}")
