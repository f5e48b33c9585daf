"""
Component Catalog
Closed vocabulary of components and actions, plus element validation
"""

from .catalog import Catalog, ComponentDefinition, ActionDefinition, define_catalog
from .validator import (
    ElementStatus,
    ValidElement,
    Classification,
    validate_element,
    classify_element,
)

__all__ = [
    "Catalog",
    "ComponentDefinition",
    "ActionDefinition",
    "define_catalog",
    "ElementStatus",
    "ValidElement",
    "Classification",
    "validate_element",
    "classify_element",
]
