"""Catalog validation of individual elements."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import pydantic
from pydantic import BaseModel
from returns.result import Failure, Result, Success

from ..core import (
    ChildrenNotAllowedError,
    ElementValidationError,
    PropSchemaError,
    UnknownComponentError,
)
from ..models import UIElement
from ..visibility import Condition, parse_condition
from .catalog import Catalog


class ElementStatus(str, Enum):
    """Render eligibility of an element."""

    VALID = "valid"
    INCOMPLETE = "incomplete"  # still streaming: no type yet or required props missing
    INVALID = "invalid"
    PLACEHOLDER = "placeholder"  # referenced but never received


@dataclass(frozen=True)
class ValidElement:
    """Element whose props were validated against its component schema."""

    key: str
    type: str
    props: BaseModel
    children: tuple[str, ...]
    visible: Condition | None
    element: UIElement


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one element."""

    status: ElementStatus
    valid: ValidElement | None = None
    error: ElementValidationError | None = None
    missing: tuple[str, ...] = field(default_factory=tuple)


def validate_element(catalog: Catalog, element: UIElement) -> Result[ValidElement, ElementValidationError]:
    """
    Validate an element against the catalog.

    Args:
        catalog: Component vocabulary
        element: Element to check

    Returns:
        Success with the typed element, or Failure with the reason
    """
    definition = catalog.component(element.type) if element.type else None
    if definition is None:
        return Failure(UnknownComponentError(element.key, element.type or "<none>"))

    if element.children and not definition.has_children:
        return Failure(ChildrenNotAllowedError(element.key, element.type))

    try:
        props = definition.props.model_validate(element.props)
    except pydantic.ValidationError as e:
        return Failure(_prop_error(element.key, e))

    visible = None
    if element.visible is not None:
        try:
            visible = parse_condition(element.visible)
        except pydantic.ValidationError:
            return Failure(PropSchemaError(element.key, ["visible"], "not a visibility condition"))

    return Success(
        ValidElement(
            key=element.key,
            type=element.type,
            props=props,
            children=tuple(element.children),
            visible=visible,
            element=element,
        )
    )


def classify_element(catalog: Catalog, element: UIElement | None) -> Classification:
    """
    Classify an element as valid, incomplete, invalid or placeholder.

    An element without a type, or whose only prop problems are missing
    required fields, is still arriving and counts as incomplete rather
    than invalid.
    """
    if element is None:
        return Classification(ElementStatus.PLACEHOLDER)
    if element.type is None:
        return Classification(ElementStatus.INCOMPLETE, missing=("type",))

    result = validate_element(catalog, element)
    if isinstance(result, Success):
        return Classification(ElementStatus.VALID, valid=result.unwrap())

    error = result.failure()
    if isinstance(error, PropSchemaError) and error.missing and error.missing == error.fields:
        return Classification(ElementStatus.INCOMPLETE, error=error, missing=error.missing)
    return Classification(ElementStatus.INVALID, error=error)


def _prop_error(key: str, exc: pydantic.ValidationError) -> PropSchemaError:
    fields: list[str] = []
    missing: list[str] = []
    for err in exc.errors():
        name = _loc(err["loc"])
        if name not in fields:
            fields.append(name)
        if err["type"] == "missing" and name not in missing:
            missing.append(name)
    return PropSchemaError(key, fields, f"{exc.error_count()} error(s)", missing=missing)


def _loc(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc) or "<root>"
