"""
Session
One rendering context: catalog, data, auth, actions and validation.
"""

import weakref
from collections.abc import Mapping
from typing import Any, Callable

from .actions import ActionDispatcher, ActionHandler, PendingConfirmation
from .catalog import Catalog
from .core import Settings, get_logger, get_settings
from .data import DataStore
from .models import AuthState
from .render import Component, Fallback, render
from .streaming import AssembledTree, ChunkSource, UIStream
from .validation import ValidationEngine, ValidatorFn
from .visibility import VisibilityContext, is_visible

logger = get_logger(__name__)


class Session:
    """
    Holds the shared state a generated UI renders against.

    Everything a component needs is reachable from here, so several
    independent sessions can live in one process.
    """

    def __init__(
        self,
        catalog: Catalog,
        handlers: Mapping[str, ActionHandler] | None = None,
        initial_data: dict[str, Any] | None = None,
        auth: AuthState | dict[str, Any] | None = None,
        functions: Mapping[str, ValidatorFn] | None = None,
        on_confirm_request: Callable[[PendingConfirmation], None] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.catalog = catalog
        self.settings = settings or get_settings()
        self.store = DataStore(initial_data)
        self.dispatcher = ActionDispatcher(
            catalog, self.store, handlers, on_confirm_request, self.settings
        )
        self.validation = ValidationEngine(self.store, functions)
        self.auth = _coerce_auth(auth)
        self._streams: weakref.WeakSet[UIStream] = weakref.WeakSet()

    def set_auth(self, auth: AuthState | dict[str, Any] | None) -> None:
        self.auth = _coerce_auth(auth)
        logger.debug("auth_updated", signed_in=self.auth.signed_in, roles=len(self.auth.roles))

    def visibility_context(self) -> VisibilityContext:
        """Snapshot of data and auth for evaluating conditions."""
        return VisibilityContext(self.store.snapshot(), self.auth)

    def is_visible(self, condition: Any) -> bool:
        return is_visible(condition, self.visibility_context())

    def create_stream(self, source: ChunkSource | None = None) -> UIStream:
        """New stream validated against this session's catalog."""
        stream = UIStream(source, self.catalog, self.settings)
        self._streams.add(stream)
        return stream

    def render(
        self,
        tree: AssembledTree,
        registry: Mapping[str, Component],
        loading: bool = False,
        fallback: Fallback | None = None,
    ) -> Any:
        return render(tree, registry, self, loading, fallback)

    def abort(self) -> None:
        """Abort every stream and resolve pending confirmations as cancelled."""
        for stream in list(self._streams):
            stream.abort()
        self.dispatcher.cancel_pending()


def _coerce_auth(auth: AuthState | dict[str, Any] | None) -> AuthState:
    if auth is None:
        return AuthState()
    if isinstance(auth, AuthState):
        return auth
    return AuthState.model_validate(auth)
