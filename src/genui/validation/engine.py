"""Field validation with touched/error state."""

import inspect
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Literal

from ..core import get_logger
from ..data import DataStore, resolve_value
from ..models import ValidationCheck, ValidationConfig
from .functions import BUILTIN_VALIDATORS, ValidatorFn

logger = get_logger(__name__)


class FieldStatus(str, Enum):
    """Field validation state."""

    UNTOUCHED = "untouched"
    TOUCHED = "touched"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class ValidationFailure:
    """Field-level failure carrying every failing check's message."""

    path: str
    messages: tuple[str, ...]


@dataclass(frozen=True)
class ValidationContext:
    """What a check can see besides the field value."""

    read: Callable[[str], Any]
    functions: Mapping[str, ValidatorFn] = field(default_factory=dict)


def run_check(
    check: ValidationCheck, value: Any, context: ValidationContext
) -> bool | Awaitable[bool]:
    """
    Run one check against a value.

    Host functions take precedence over built-ins. Arguments that are path
    references are resolved first. Unknown function names pass.

    Returns:
        The validator's result, possibly awaitable
    """
    fn = context.functions.get(check.fn) or BUILTIN_VALIDATORS.get(check.fn)
    if fn is None:
        logger.warning("unknown_validator", fn=check.fn)
        return True

    args = {name: resolve_value(arg, context.read) for name, arg in check.args.items()}
    return fn(value, args)


class FieldValidation:
    """
    Validation state for one data path.

    State machine: UNTOUCHED -> TOUCHED -> VALID | INVALID. Checks run on an
    explicit validate() call, or on the configured trigger once the field
    has been touched.
    """

    def __init__(self, path: str, config: ValidationConfig, store: DataStore, context: ValidationContext) -> None:
        self.path = path
        self.config = config
        self._store = store
        self._context = context
        self._status = FieldStatus.UNTOUCHED
        self._errors: tuple[str, ...] = ()
        self._run = 0

    @property
    def status(self) -> FieldStatus:
        return self._status

    @property
    def touched(self) -> bool:
        return self._status is not FieldStatus.UNTOUCHED

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    @property
    def is_valid(self) -> bool:
        return not self._errors

    @property
    def failure(self) -> ValidationFailure | None:
        if not self._errors:
            return None
        return ValidationFailure(self.path, self._errors)

    def touch(self) -> None:
        """Mark the field as touched without running checks."""
        if self._status is FieldStatus.UNTOUCHED:
            self._status = FieldStatus.TOUCHED

    def clear(self) -> None:
        """Back to untouched with no errors."""
        self._run += 1
        self._status = FieldStatus.UNTOUCHED
        self._errors = ()

    async def validate(self) -> bool:
        """
        Run every check in order and collect all failing messages.

        When validations overlap, only the most recent one updates state.

        Returns:
            True if every check passed
        """
        self._run += 1
        run = self._run
        value = self._store.get(self.path)

        messages = []
        for check in self.config.checks:
            try:
                result = run_check(check, value, self._context)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.warning("validator_failed", path=self.path, fn=check.fn, error=str(e))
                result = False
            if not result:
                messages.append(check.message)

        if run == self._run:
            self._errors = tuple(messages)
            self._status = FieldStatus.INVALID if messages else FieldStatus.VALID
            logger.debug("field_validated", path=self.path, errors=len(messages))
        return not messages

    async def handle_event(self, event: Literal["change", "blur"]) -> bool | None:
        """
        React to a UI event on the field.

        Blur touches the field. Checks run only when the event matches the
        configured trigger and the field is touched.

        Returns:
            Validation result, or None when no checks ran
        """
        if event == "blur":
            self.touch()
        if event != self.config.validate_on or not self.touched:
            return None
        return await self.validate()


class ValidationEngine:
    """Registry of field validations for one session."""

    def __init__(self, store: DataStore, functions: Mapping[str, ValidatorFn] | None = None) -> None:
        self._store = store
        self._context = ValidationContext(read=store.get, functions=dict(functions or {}))
        self._fields: dict[str, FieldValidation] = {}

    def register(self, path: str, config: ValidationConfig | dict[str, Any]) -> FieldValidation:
        """Attach checks to a data path, replacing any previous registration."""
        if not isinstance(config, ValidationConfig):
            config = ValidationConfig.model_validate(config)
        validation = FieldValidation(path, config, self._store, self._context)
        self._fields[path] = validation
        return validation

    def unregister(self, path: str) -> None:
        self._fields.pop(path, None)

    def field(self, path: str) -> FieldValidation | None:
        return self._fields.get(path)

    def run_check(self, check: ValidationCheck, value: Any) -> bool | Awaitable[bool]:
        return run_check(check, value, self._context)

    async def validate_all(self) -> bool:
        """Touch and validate every registered field (form submit)."""
        results = []
        for validation in list(self._fields.values()):
            validation.touch()
            results.append(await validation.validate())
        valid = all(results)
        logger.info("form_validated", fields=len(results), valid=valid)
        return valid

    def failures(self) -> list[ValidationFailure]:
        return [v.failure for v in self._fields.values() if v.failure is not None]
