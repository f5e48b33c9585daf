"""Visibility conditions and their evaluator."""

from .conditions import (
    Condition,
    AndCondition,
    OrCondition,
    NotCondition,
    PathCondition,
    AuthCondition,
    RoleTest,
    CompareCondition,
    parse_condition,
)
from .evaluator import VisibilityContext, is_visible, evaluate

__all__ = [
    "Condition",
    "AndCondition",
    "OrCondition",
    "NotCondition",
    "PathCondition",
    "AuthCondition",
    "RoleTest",
    "CompareCondition",
    "parse_condition",
    "VisibilityContext",
    "is_visible",
    "evaluate",
]
