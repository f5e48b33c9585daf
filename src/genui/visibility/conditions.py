"""Visibility condition grammar."""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, TypeAdapter, model_validator


class _Condition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class PathCondition(_Condition):
    """Truthy-at-path test."""

    path: str


class RoleTest(_Condition):
    """Signed-in user holds the role (or any of the roles)."""

    role: str | None = None
    roles: list[str] | None = None

    @model_validator(mode="after")
    def require_one(self) -> "RoleTest":
        if self.role is None and not self.roles:
            raise ValueError("role test needs 'role' or 'roles'")
        return self


class AuthCondition(_Condition):
    """Test against the auth snapshot only."""

    auth: Literal["signedIn", "signedOut"] | RoleTest


class AndCondition(_Condition):
    and_: list["Condition"] = Field(alias="and")


class OrCondition(_Condition):
    or_: list["Condition"] = Field(alias="or")


class NotCondition(_Condition):
    not_: "Condition" = Field(alias="not")


class CompareCondition(_Condition):
    """Binary comparison; operands are literals or path references."""

    eq: tuple[Any, Any] | None = None
    neq: tuple[Any, Any] | None = None
    gt: tuple[Any, Any] | None = None
    gte: tuple[Any, Any] | None = None
    lt: tuple[Any, Any] | None = None
    lte: tuple[Any, Any] | None = None

    @model_validator(mode="after")
    def require_exactly_one(self) -> "CompareCondition":
        if len(self.operators()) != 1:
            raise ValueError("comparison needs exactly one operator")
        return self

    def operators(self) -> list[tuple[str, tuple[Any, Any]]]:
        return [
            (op, operands)
            for op in ("eq", "neq", "gt", "gte", "lt", "lte")
            if (operands := getattr(self, op)) is not None
        ]


Condition = Union[
    StrictBool,
    AndCondition,
    OrCondition,
    NotCondition,
    PathCondition,
    AuthCondition,
    CompareCondition,
]

for _model in (AndCondition, OrCondition, NotCondition):
    _model.model_rebuild()

_adapter: TypeAdapter[Condition] = TypeAdapter(Condition)


def parse_condition(raw: Any) -> Condition:
    """
    Convert raw JSON into a typed condition.

    Raises:
        pydantic.ValidationError: If raw is outside the condition grammar
    """
    if isinstance(raw, (bool, _Condition)):
        return raw
    return _adapter.validate_python(raw)
