"""Visibility evaluation against a data/auth snapshot."""

import operator
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from ..core import get_logger
from ..data import get_in, is_truthy, parse_path, resolve_value
from ..models import AuthState
from .conditions import (
    AndCondition,
    AuthCondition,
    CompareCondition,
    Condition,
    NotCondition,
    OrCondition,
    PathCondition,
    parse_condition,
)

logger = get_logger(__name__)

_COMPARATORS = {
    "eq": operator.eq,
    "neq": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


@dataclass(frozen=True)
class VisibilityContext:
    """Read-only snapshot a condition is evaluated against."""

    data: Any = None
    auth: AuthState = field(default_factory=AuthState)

    def read(self, path: str) -> Any:
        return get_in(self.data, parse_path(path))


def is_visible(condition: Any, context: VisibilityContext) -> bool:
    """
    Evaluate a visibility condition.

    A missing condition means always visible. Conditions that do not parse
    evaluate to not visible, as do paths that have not arrived yet.
    """
    if condition is None:
        return True
    try:
        parsed = parse_condition(condition)
    except ValidationError as e:
        logger.warning("invalid_condition", errors=e.error_count())
        return False
    return evaluate(parsed, context)


def evaluate(condition: Condition, context: VisibilityContext) -> bool:
    """Evaluate an already-parsed condition."""
    match condition:
        case bool():
            return condition
        case AndCondition():
            return all(evaluate(c, context) for c in condition.and_)
        case OrCondition():
            return any(evaluate(c, context) for c in condition.or_)
        case NotCondition():
            return not evaluate(condition.not_, context)
        case PathCondition():
            return is_truthy(context.read(condition.path))
        case AuthCondition():
            return _evaluate_auth(condition, context.auth)
        case CompareCondition():
            return _evaluate_compare(condition, context)
    return False


def _evaluate_auth(condition: AuthCondition, auth: AuthState) -> bool:
    test = condition.auth
    if test == "signedIn":
        return auth.signed_in
    if test == "signedOut":
        return not auth.signed_in
    if not auth.signed_in:
        return False
    wanted = [test.role] if test.role is not None else []
    wanted += test.roles or []
    return any(role in auth.roles for role in wanted)


def _evaluate_compare(condition: CompareCondition, context: VisibilityContext) -> bool:
    op, (left, right) = condition.operators()[0]
    left = resolve_value(left, context.read)
    right = resolve_value(right, context.read)
    try:
        return bool(_COMPARATORS[op](left, right))
    except TypeError:
        # Incomparable operands (e.g. a path that has not arrived yet)
        return False
