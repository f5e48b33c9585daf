"""UI Data Models."""

from typing import Any, Literal
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class UIElement(BaseModel):
    """One entry in a UI tree, identified by a stable key."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="Stable identity, unique within one tree")
    type: str | None = Field(default=None, description="Catalog component type (None while streaming)")
    props: dict[str, Any] = Field(default_factory=dict)
    children: list[str] = Field(default_factory=list)
    visible: Any = Field(default=None, description="Visibility condition; None means always visible")


class UITree(BaseModel):
    """Flat element map plus the root key."""

    root: str | None = None
    elements: dict[str, UIElement] = Field(default_factory=dict)


class ConfirmSpec(BaseModel):
    """Confirmation step shown before an action runs."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    message: str
    variant: Literal["default", "danger"] = "default"
    confirm_label: str = Field(default="Confirm", alias="confirmLabel")
    cancel_label: str = Field(default="Cancel", alias="cancelLabel")


class SetEffect(BaseModel):
    """Write values (literals or path references) into the data store."""

    model_config = ConfigDict(extra="forbid")

    set: dict[str, Any]


class ActionEffect(BaseModel):
    """Dispatch a follow-up action."""

    model_config = ConfigDict(extra="forbid")

    action: "Action"


Effect = SetEffect | ActionEffect


class Action(BaseModel):
    """Declarative action attached to a component."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)
    confirm: ConfirmSpec | None = None
    on_success: list[Effect] = Field(default_factory=list, alias="onSuccess")
    on_error: list[Effect] = Field(default_factory=list, alias="onError")

    @field_validator("on_success", "on_error", mode="before")
    @classmethod
    def wrap_single_effect(cls, v: Any) -> Any:
        """Accept a single effect object as a one-item list."""
        if v is None:
            return []
        if isinstance(v, dict):
            return [v]
        return v


ActionEffect.model_rebuild()


class ValidationCheck(BaseModel):
    """Named validator call with its failure message."""

    fn: str
    args: dict[str, Any] = Field(default_factory=dict)
    message: str


class ValidationConfig(BaseModel):
    """Checks attached to one data path and when to run them."""

    model_config = ConfigDict(populate_by_name=True)

    checks: list[ValidationCheck] = Field(default_factory=list)
    validate_on: Literal["change", "blur", "submit"] = Field(default="submit", alias="validateOn")


class AuthState(BaseModel):
    """Externally supplied authentication snapshot."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    signed_in: bool = Field(
        default=False,
        validation_alias=AliasChoices("signedIn", "isSignedIn", "signed_in"),
        serialization_alias="signedIn",
    )
    roles: list[str] = Field(default_factory=list)
