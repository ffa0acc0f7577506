"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import (
    AvailabilityResult,
    AvailabilitySourceProtocol,
    RescheduleAvailabilityService,
    build_selection_key,
)

__all__ = [
    "AvailabilityResult",
    "AvailabilitySourceProtocol",
    "RescheduleAvailabilityService",
    "build_selection_key",
]
