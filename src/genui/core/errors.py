"""Error taxonomy for the runtime."""

from typing import Sequence


class GenUIError(Exception):
    """Base class for all runtime errors."""

    pass


class SchemaDefinitionError(GenUIError):
    """The catalog itself is malformed (programming error in the host)."""

    pass


class ElementValidationError(GenUIError):
    """A single element failed catalog validation."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(message)
        self.key = key


class UnknownComponentError(ElementValidationError):
    """Element type is not part of the catalog."""

    def __init__(self, key: str, type_name: str) -> None:
        super().__init__(key, f"Unknown component type '{type_name}' for element '{key}'")
        self.type_name = type_name


class PropSchemaError(ElementValidationError):
    """Element props do not match the component's prop schema."""

    def __init__(
        self, key: str, fields: Sequence[str], details: str = "", missing: Sequence[str] = ()
    ) -> None:
        listed = ", ".join(fields) if fields else "<root>"
        message = f"Invalid props for element '{key}': {listed}"
        if details:
            message = f"{message} ({details})"
        super().__init__(key, message)
        self.fields = tuple(fields)
        # Fields that are absent rather than wrong (element may still be streaming)
        self.missing = tuple(missing)


class ChildrenNotAllowedError(ElementValidationError):
    """Element has children but its component type forbids them."""

    def __init__(self, key: str, type_name: str) -> None:
        super().__init__(key, f"Component '{type_name}' does not accept children (element '{key}')")
        self.type_name = type_name


class DispatchError(GenUIError):
    """Action could not be dispatched."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(message)
        self.action = action


class UnknownActionError(DispatchError):
    """Action name is not part of the catalog."""

    def __init__(self, action: str) -> None:
        super().__init__(action, f"Unknown action '{action}'")


class HandlerNotFoundError(DispatchError):
    """Action is in the catalog but the host registered no handler."""

    def __init__(self, action: str) -> None:
        super().__init__(action, f"No handler registered for action '{action}'")


class InvalidParamsError(DispatchError):
    """Resolved params do not match the action's parameter schema."""

    def __init__(self, action: str, fields: tuple[str, ...]) -> None:
        super().__init__(action, f"Invalid params for action '{action}': {', '.join(fields)}")
        self.fields = fields


class JSONParseError(GenUIError):
    """JSON parsing failed."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


__all__ = [
    "GenUIError",
    "SchemaDefinitionError",
    "ElementValidationError",
    "UnknownComponentError",
    "PropSchemaError",
    "ChildrenNotAllowedError",
    "DispatchError",
    "UnknownActionError",
    "HandlerNotFoundError",
    "InvalidParamsError",
    "JSONParseError",
]
