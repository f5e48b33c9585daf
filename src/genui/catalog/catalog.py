"""Catalog - the closed vocabulary of components and actions."""

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core import SchemaDefinitionError, get_logger

logger = get_logger(__name__)


# ============================================================================
# Definitions
# ============================================================================

class ComponentDefinition(BaseModel):
    """Allowed component type."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Component type name")
    props: type[BaseModel] = Field(..., description="Prop schema")
    has_children: bool = Field(default=False, description="Whether children are permitted")
    description: str = Field(default="", description="What the component shows")


class ActionDefinition(BaseModel):
    """Allowed action."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Action name")
    params: type[BaseModel] | None = Field(default=None, description="Parameter schema")
    description: str = Field(default="", description="What the action does")


# ============================================================================
# Catalog
# ============================================================================

class Catalog:
    """
    Immutable registry of component types and actions.

    Build with define_catalog(); the mappings are read-only views.
    """

    def __init__(
        self,
        components: Mapping[str, ComponentDefinition],
        actions: Mapping[str, ActionDefinition],
    ) -> None:
        self._components = MappingProxyType(dict(components))
        self._actions = MappingProxyType(dict(actions))

    @property
    def components(self) -> Mapping[str, ComponentDefinition]:
        return self._components

    @property
    def actions(self) -> Mapping[str, ActionDefinition]:
        return self._actions

    def component(self, name: str) -> ComponentDefinition | None:
        """Get component definition by type name."""
        return self._components.get(name)

    def action(self, name: str) -> ActionDefinition | None:
        """Get action definition by name."""
        return self._actions.get(name)

    def has_component(self, name: str) -> bool:
        return name in self._components

    def has_action(self, name: str) -> bool:
        return name in self._actions

    def describe(self) -> str:
        """Get formatted description of the catalog for model instructions."""
        lines = ["=== COMPONENTS ==="]
        for name, comp in self._components.items():
            fields = _describe_fields(comp.props)
            suffix = " [accepts children]" if comp.has_children else ""
            line = f"  - {name}({fields}){suffix}"
            if comp.description:
                line += f": {comp.description}"
            lines.append(line)

        if self._actions:
            lines.append("\n=== ACTIONS ===")
            for name, action in self._actions.items():
                params = _describe_fields(action.params) if action.params else ""
                line = f"  - {name}({params})"
                if action.description:
                    line += f": {action.description}"
                lines.append(line)

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """JSON-schema projection of the catalog."""
        return {
            "components": {
                name: {
                    "props": comp.props.model_json_schema(),
                    "hasChildren": comp.has_children,
                    "description": comp.description,
                }
                for name, comp in self._components.items()
            },
            "actions": {
                name: {
                    "params": action.params.model_json_schema() if action.params else None,
                    "description": action.description,
                }
                for name, action in self._actions.items()
            },
        }

    def __repr__(self) -> str:
        return f"Catalog(components={list(self._components)}, actions={list(self._actions)})"


def define_catalog(
    components: Iterable[ComponentDefinition] | Mapping[str, ComponentDefinition],
    actions: Iterable[ActionDefinition] | Mapping[str, ActionDefinition] | None = None,
) -> Catalog:
    """
    Build an immutable catalog.

    Args:
        components: Component definitions, or a mapping of name to definition
        actions: Action definitions, or a mapping of name to definition

    Returns:
        Catalog

    Raises:
        SchemaDefinitionError: Duplicate or empty names, or schemas that are
            not pydantic models
    """
    component_map = _index("component", components, ComponentDefinition)
    action_map = _index("action", actions or [], ActionDefinition)

    logger.info("catalog_defined", components=len(component_map), actions=len(action_map))
    return Catalog(component_map, action_map)


def _index(kind: str, definitions: Any, expected: type) -> dict[str, Any]:
    if isinstance(definitions, Mapping):
        pairs = []
        for name, definition in definitions.items():
            if isinstance(definition, expected) and definition.name and definition.name != name:
                raise SchemaDefinitionError(
                    f"{kind} registered as '{name}' but named '{definition.name}'"
                )
            pairs.append((name, definition))
    else:
        pairs = [(getattr(d, "name", ""), d) for d in definitions]

    result: dict[str, Any] = {}
    for name, definition in pairs:
        if not isinstance(definition, expected):
            raise SchemaDefinitionError(
                f"{kind} '{name}' must be a {expected.__name__}, got {type(definition).__name__}"
            )
        if not name:
            raise SchemaDefinitionError(f"{kind} definition without a name")
        if name in result:
            raise SchemaDefinitionError(f"Duplicate {kind} name: '{name}'")
        result[name] = definition.model_copy(update={"name": name})
    return result


def _describe_fields(model: type[BaseModel]) -> str:
    schema = model.model_json_schema()
    required = set(schema.get("required", []))
    parts = []
    for field_name, prop in schema.get("properties", {}).items():
        marker = "" if field_name in required else "?"
        parts.append(f"{field_name}{marker}: {_schema_type(prop)}")
    return ", ".join(parts)


def _schema_type(prop: dict[str, Any]) -> str:
    if "enum" in prop:
        return " | ".join(repr(v) for v in prop["enum"])
    if "anyOf" in prop:
        return " | ".join(_schema_type(p) for p in prop["anyOf"])
    if "$ref" in prop:
        return prop["$ref"].rsplit("/", 1)[-1]
    kind = prop.get("type", "any")
    if kind == "array":
        return f"{_schema_type(prop.get('items', {}))}[]"
    return kind
