"""Pytest configuration and fixtures."""

import os
from typing import Any

import pytest
from pydantic import BaseModel

from genui.catalog import ActionDefinition, ComponentDefinition, define_catalog
from genui.core import get_settings, safe_json_dumps
from genui.data import DataStore
from genui.models import Action
from genui.session import Session


# ============================================================================
# Pytest Hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with environment variables."""
    os.environ["GENUI_LOG_LEVEL"] = "DEBUG"
    get_settings.cache_clear()


# ============================================================================
# Catalog Fixtures
# ============================================================================

class CardProps(BaseModel):
    title: str | None = None
    subtitle: str | None = None


class ButtonProps(BaseModel):
    label: str
    action: Action | None = None


class TextProps(BaseModel):
    content: str


class TextFieldProps(BaseModel):
    label: str
    path: str


class GoParams(BaseModel):
    to: str


@pytest.fixture
def catalog():
    """Small catalog: a container, a button, text and an input."""
    return define_catalog(
        [
            ComponentDefinition(name="Card", props=CardProps, has_children=True, description="Grouping box"),
            ComponentDefinition(name="Button", props=ButtonProps, description="Clickable button"),
            ComponentDefinition(name="Text", props=TextProps),
            ComponentDefinition(name="TextField", props=TextFieldProps),
        ],
        [
            ActionDefinition(name="go", params=GoParams, description="Navigate"),
            ActionDefinition(name="submit"),
            ActionDefinition(name="delete"),
        ],
    )


# ============================================================================
# Runtime Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """Test settings."""
    return get_settings()


@pytest.fixture
def store():
    """Store with a small form document."""
    return DataStore({"form": {"email": "", "name": "Ada"}, "user": {"id": 7}})


@pytest.fixture
def calls() -> list[tuple[str, dict[str, Any]]]:
    """Handler invocations recorded by the session fixture."""
    return []


@pytest.fixture
def session(catalog, calls):
    """Session with recording handlers for go and submit (no delete handler)."""

    def go(params):
        calls.append(("go", params))
        return {"navigated": params.get("to")}

    async def submit(params):
        calls.append(("submit", params))
        return "ok"

    return Session(
        catalog,
        handlers={"go": go, "submit": submit},
        initial_data={"form": {"email": "", "name": "Ada"}, "user": {"id": 7}},
        auth={"signedIn": True, "roles": ["editor"]},
    )


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def sample_records():
    """Card with a button and a text, in arrival order."""
    return [
        {"key": "root", "type": "Card", "props": {"title": "Hello"}, "children": ["btn", "txt"]},
        {"key": "btn", "type": "Button", "props": {"label": "Go", "action": {"name": "go", "params": {"to": "/home"}}}},
        {"key": "txt", "type": "Text", "props": {"content": "Welcome"}},
    ]


@pytest.fixture
def sample_jsonl(sample_records):
    """The sample records as JSON Lines."""
    return "\n".join(safe_json_dumps(record) for record in sample_records) + "\n"
