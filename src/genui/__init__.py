"""
genui - runtime for model-generated user interfaces.

A catalog constrains what a model may emit; streamed element records are
assembled into a tree, checked against the catalog, and rendered against a
session holding data, auth, actions and validation.
"""

from .catalog import ActionDefinition, Catalog, ComponentDefinition, define_catalog
from .core import configure_logging, get_settings
from .models import Action, AuthState, UIElement, UITree, ValidationCheck, ValidationConfig
from .render import RenderProps, render
from .session import Session
from .streaming import StreamAssembler, UIStream, flat_to_tree, load_tree

__version__ = "0.1.0"

__all__ = [
    "ActionDefinition",
    "Catalog",
    "ComponentDefinition",
    "define_catalog",
    "configure_logging",
    "get_settings",
    "Action",
    "AuthState",
    "UIElement",
    "UITree",
    "ValidationCheck",
    "ValidationConfig",
    "RenderProps",
    "render",
    "Session",
    "StreamAssembler",
    "UIStream",
    "flat_to_tree",
    "load_tree",
]
