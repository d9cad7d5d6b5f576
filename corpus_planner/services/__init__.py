"""Service entry points for the projection engine."""

from .retirement_service import RetirementService

__all__ = ["RetirementService"]
