"""
Validation module for the BI executor.

Provides structural plan validation ahead of execution.
"""

from .plan_validator import (
    PlanIssue,
    PlanValidationResult,
    ensure_valid,
    validate_plan,
)

__all__ = [
    "PlanIssue",
    "PlanValidationResult",
    "ensure_valid",
    "validate_plan",
]
