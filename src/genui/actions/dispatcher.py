"""Action dispatch: parameter resolution, confirmation, handler, effects."""

import asyncio
import copy
import inspect
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

import pydantic

from ..catalog import Catalog
from ..core import (
    DispatchError,
    HandlerNotFoundError,
    InvalidParamsError,
    Settings,
    UnknownActionError,
    get_logger,
    get_settings,
)
from ..data import DataStore, get_in, parse_path, resolve_value
from ..models import Action, ActionEffect, ConfirmSpec, Effect, SetEffect

logger = get_logger(__name__)

ActionHandler = Callable[[dict[str, Any]], Any | Awaitable[Any]]


class OutcomeStatus(str, Enum):
    """How a dispatch ended."""

    SUCCESS = "success"
    FAILED = "failed"  # handler or effect raised
    CANCELLED = "cancelled"  # confirmation declined or aborted
    REJECTED = "rejected"  # unknown action, missing handler, malformed action or params


@dataclass(frozen=True)
class Outcome:
    """Result of one dispatch."""

    status: OutcomeStatus
    action: str
    params: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


class PendingConfirmation:
    """A dispatch suspended until the host confirms or cancels."""

    def __init__(self, action: Action, params: dict[str, Any]) -> None:
        self.action = action
        self.params = params
        self._future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()

    @property
    def spec(self) -> ConfirmSpec | None:
        return self.action.confirm

    @property
    def done(self) -> bool:
        return self._future.done()

    def confirm(self) -> None:
        if not self._future.done():
            self._future.set_result(True)

    def cancel(self) -> None:
        if not self._future.done():
            self._future.set_result(False)

    async def wait(self) -> bool:
        return await self._future


class ActionDispatcher:
    """
    Dispatches catalog actions to host handlers.

    Failures never raise out of dispatch(); they come back as an Outcome.
    """

    def __init__(
        self,
        catalog: Catalog,
        store: DataStore,
        handlers: Mapping[str, ActionHandler] | None = None,
        on_confirm_request: Callable[[PendingConfirmation], None] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self._handlers: dict[str, ActionHandler] = dict(handlers or {})
        self._on_confirm_request = on_confirm_request
        self._settings = settings or get_settings()
        self._pending: list[PendingConfirmation] = []
        self._loading: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Handlers and state
    # ------------------------------------------------------------------

    def register(self, name: str, handler: ActionHandler) -> None:
        """Register (or replace) the handler for an action."""
        self._handlers[name] = handler
        logger.debug("handler_registered", action=name)

    @property
    def pending_confirmation(self) -> PendingConfirmation | None:
        """Oldest confirmation awaiting a host decision."""
        return self._pending[0] if self._pending else None

    def is_loading(self, name: str) -> bool:
        """Whether a handler for this action is currently running."""
        return self._loading.get(name, 0) > 0

    def cancel_pending(self) -> None:
        """Resolve every outstanding confirmation as cancelled."""
        for pending in list(self._pending):
            pending.cancel()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, name: str, params: dict[str, Any] | None = None) -> Outcome:
        """Dispatch an action by name with plain parameters."""
        return await self.dispatch(Action(name=name, params=params or {}))

    async def dispatch(self, action: Action | dict[str, Any], snapshot: Any = None) -> Outcome:
        """
        Dispatch an action.

        Args:
            action: Action model or its raw JSON form
            snapshot: Document to resolve path references against
                (defaults to the live store)

        Returns:
            Outcome describing how the dispatch ended
        """
        return await self._dispatch(action, snapshot, depth=0)

    async def _dispatch(self, action: Action | dict[str, Any], snapshot: Any, depth: int) -> Outcome:
        if not isinstance(action, Action):
            try:
                action = Action.model_validate(action)
            except pydantic.ValidationError as e:
                name = action.get("name", "") if isinstance(action, dict) else ""
                logger.warning("malformed_action", action=name, errors=e.error_count())
                return Outcome(OutcomeStatus.REJECTED, str(name), error=e)

        # Catalog gate comes before any resolution
        if not self.catalog.has_action(action.name):
            return self._reject(UnknownActionError(action.name))

        handler = self._handlers.get(action.name)
        if handler is None:
            return self._reject(HandlerNotFoundError(action.name))

        params = self._resolve_params(action.params, snapshot)
        schema = self.catalog.action(action.name).params
        if schema is not None:
            try:
                schema.model_validate(params)
            except pydantic.ValidationError as e:
                fields = tuple(".".join(str(part) for part in err["loc"]) or "<root>" for err in e.errors())
                return self._reject(InvalidParamsError(action.name, fields))

        if action.confirm is not None:
            try:
                confirmed = await self._await_confirmation(action, params)
            except Exception as e:
                logger.warning("confirm_request_failed", action=action.name, error=str(e))
                return Outcome(OutcomeStatus.CANCELLED, action.name, params, error=e)
            if not confirmed:
                logger.info("action_cancelled", action=action.name)
                return Outcome(OutcomeStatus.CANCELLED, action.name, params)

        logger.info("action_dispatch", action=action.name, depth=depth)
        self._loading[action.name] = self._loading.get(action.name, 0) + 1
        result: Any = None
        failure: Exception | None = None
        try:
            result = handler(params)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning("action_failed", action=action.name, error=str(e))
            failure = e
        finally:
            self._loading[action.name] -= 1
            if not self._loading[action.name]:
                del self._loading[action.name]

        if failure is not None:
            await self._run_effects(action.on_error, failure, depth)
            return Outcome(OutcomeStatus.FAILED, action.name, params, error=failure)

        effect_error = await self._run_effects(action.on_success, None, depth)
        if effect_error is not None:
            return Outcome(OutcomeStatus.FAILED, action.name, params, result, effect_error)
        return Outcome(OutcomeStatus.SUCCESS, action.name, params, result)

    def _reject(self, error: DispatchError) -> Outcome:
        logger.warning("action_rejected", action=error.action, error=str(error))
        return Outcome(OutcomeStatus.REJECTED, error.action, error=error)

    def _resolve_params(self, params: dict[str, Any], snapshot: Any) -> dict[str, Any]:
        if snapshot is None:
            lookup = self.store.get
        else:
            def lookup(path: str) -> Any:
                return get_in(snapshot, parse_path(path))

        return {name: resolve_value(value, lookup) for name, value in params.items()}

    async def _await_confirmation(self, action: Action, params: dict[str, Any]) -> bool:
        pending = PendingConfirmation(action, params)
        self._pending.append(pending)
        logger.info("confirmation_requested", action=action.name)
        try:
            if self._on_confirm_request is not None:
                self._on_confirm_request(pending)
            return await pending.wait()
        finally:
            self._pending.remove(pending)

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    async def _run_effects(
        self, effects: list[Effect], error: Exception | None, depth: int
    ) -> Exception | None:
        """Apply effects in order; returns the first effect failure, if any."""
        for effect in effects:
            try:
                if isinstance(effect, SetEffect):
                    self._apply_set(effect, error)
                elif isinstance(effect, ActionEffect):
                    await self._apply_action(effect, error, depth)
            except Exception as e:
                logger.error("effect_failed", error=str(e))
                return e
        return None

    def _apply_set(self, effect: SetEffect, error: Exception | None) -> None:
        for path, value in effect.set.items():
            value = self._substitute_error(value, error)
            self.store.set(path, copy.deepcopy(resolve_value(value, self.store.get)))

    async def _apply_action(self, effect: ActionEffect, error: Exception | None, depth: int) -> None:
        if depth >= self._settings.max_effect_depth:
            raise RuntimeError(f"Action effects nested deeper than {self._settings.max_effect_depth}")
        chained = effect.action.model_copy(
            update={"params": self._substitute_error(effect.action.params, error)}
        )
        outcome = await self._dispatch(chained, None, depth + 1)
        if outcome.error is not None:
            raise outcome.error

    def _substitute_error(self, value: Any, error: Exception | None) -> Any:
        """Replace the error token with the error message (strings only)."""
        if error is None:
            return value
        if value == self._settings.error_token:
            return str(error)
        if isinstance(value, dict):
            return {k: self._substitute_error(v, error) for k, v in value.items()}
        if isinstance(value, list):
            return [self._substitute_error(v, error) for v in value]
        return value
