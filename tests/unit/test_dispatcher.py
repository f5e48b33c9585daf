"""Action dispatcher tests."""

import asyncio

import pytest

from genui.actions import ActionDispatcher, OutcomeStatus
from genui.core import HandlerNotFoundError, InvalidParamsError, UnknownActionError
from genui.core.config import Settings
from genui.data import DataStore


CONFIRM = {"title": "Delete?", "message": "This cannot be undone", "variant": "danger"}


def make_dispatcher(catalog, store, handlers, **kwargs):
    return ActionDispatcher(catalog, store, handlers, **kwargs)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_execute_resolves_path_params(catalog, store):
    received = []
    dispatcher = make_dispatcher(catalog, store, {"go": lambda p: received.append(p) or "done"})

    outcome = await dispatcher.dispatch({"name": "go", "params": {"to": {"path": "/form/name"}, "n": 1}})

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.ok
    assert outcome.result == "done"
    assert received == [{"to": "Ada", "n": 1}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_params_resolve_against_snapshot(catalog, store):
    received = []
    dispatcher = make_dispatcher(catalog, store, {"go": received.append})
    snapshot = store.snapshot()
    store.set("/form/name", "Changed")

    await dispatcher.dispatch({"name": "go", "params": {"to": {"path": "/form/name"}}}, snapshot=snapshot)

    assert received == [{"to": "Ada"}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_action_rejected_before_handler(catalog, store):
    called = []
    dispatcher = make_dispatcher(catalog, store, {"launch": called.append})

    outcome = await dispatcher.execute("launch")

    assert outcome.status is OutcomeStatus.REJECTED
    assert isinstance(outcome.error, UnknownActionError)
    assert called == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_handler(catalog, store):
    outcome = await make_dispatcher(catalog, store, {}).execute("delete")
    assert outcome.status is OutcomeStatus.REJECTED
    assert isinstance(outcome.error, HandlerNotFoundError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_malformed_action_rejected(catalog, store):
    outcome = await make_dispatcher(catalog, store, {}).dispatch({"params": {}})
    assert outcome.status is OutcomeStatus.REJECTED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_async_handler_and_loading_flag(catalog, store):
    gate = asyncio.Event()

    async def submit(params):
        await gate.wait()
        return "saved"

    dispatcher = make_dispatcher(catalog, store, {"submit": submit})
    task = asyncio.create_task(dispatcher.execute("submit"))
    await asyncio.sleep(0)
    assert dispatcher.is_loading("submit")

    gate.set()
    outcome = await task
    assert outcome.result == "saved"
    assert not dispatcher.is_loading("submit")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_confirm_gates_handler(catalog, store):
    """Nothing runs until the host confirms."""
    called = []
    requests = []
    dispatcher = make_dispatcher(
        catalog, store, {"delete": called.append}, on_confirm_request=requests.append
    )

    task = asyncio.create_task(dispatcher.dispatch({"name": "delete", "confirm": CONFIRM}))
    await asyncio.sleep(0)

    assert called == []
    assert dispatcher.pending_confirmation is requests[0]
    assert requests[0].spec.variant == "danger"

    requests[0].confirm()
    outcome = await task
    assert outcome.status is OutcomeStatus.SUCCESS
    assert called == [{}]
    assert dispatcher.pending_confirmation is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_declined_confirmation_has_no_side_effects(catalog, store):
    called = []
    dispatcher = make_dispatcher(
        catalog, store, {"delete": called.append}, on_confirm_request=lambda p: p.cancel()
    )
    before = store.snapshot()

    outcome = await dispatcher.dispatch(
        {"name": "delete", "confirm": CONFIRM, "onSuccess": {"set": {"/deleted": True}}}
    )

    assert outcome.status is OutcomeStatus.CANCELLED
    assert called == []
    assert store.snapshot() == before


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_pending(catalog, store):
    dispatcher = make_dispatcher(catalog, store, {"delete": lambda p: None})
    task = asyncio.create_task(dispatcher.dispatch({"name": "delete", "confirm": CONFIRM}))
    await asyncio.sleep(0)

    dispatcher.cancel_pending()
    assert (await task).status is OutcomeStatus.CANCELLED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_on_success_effects_run_in_order(catalog, store):
    dispatcher = make_dispatcher(catalog, store, {"submit": lambda p: "ok"})

    outcome = await dispatcher.dispatch(
        {
            "name": "submit",
            "onSuccess": [
                {"set": {"/status": "saved", "/copy": {"path": "/form/name"}}},
                {"set": {"/status": "done"}},
            ],
        }
    )

    assert outcome.ok
    assert store.get("/status") == "done"
    assert store.get("/copy") == "Ada"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_on_error_substitutes_message(catalog, store):
    def failing(params):
        raise ValueError("server down")

    dispatcher = make_dispatcher(catalog, store, {"submit": failing})

    outcome = await dispatcher.dispatch(
        {"name": "submit", "onError": {"set": {"/error": "$error.message", "/flags": ["$error.message"]}}}
    )

    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, ValueError)
    assert store.get("/error") == "server down"
    assert store.get("/flags") == ["server down"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_chained_action_effect(catalog, store):
    calls = []
    dispatcher = make_dispatcher(
        catalog, store, {"submit": lambda p: calls.append("submit"), "go": lambda p: calls.append(p["to"])}
    )

    outcome = await dispatcher.dispatch(
        {"name": "submit", "onSuccess": {"action": {"name": "go", "params": {"to": "/thanks"}}}}
    )

    assert outcome.ok
    assert calls == ["submit", "/thanks"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rejected_chained_action_fails_outcome(catalog, store):
    dispatcher = make_dispatcher(catalog, store, {"submit": lambda p: None})

    outcome = await dispatcher.dispatch({"name": "submit", "onSuccess": {"action": {"name": "delete"}}})

    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, HandlerNotFoundError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_effect_depth_limit(catalog):
    store = DataStore()
    settings = Settings(max_effect_depth=1)
    chain = {"name": "submit", "onSuccess": {"action": {"name": "submit", "onSuccess": {"action": {"name": "submit"}}}}}
    dispatcher = make_dispatcher(catalog, store, {"submit": lambda p: None}, settings=settings)

    outcome = await dispatcher.dispatch(chain)

    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, RuntimeError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_register_handler_later(catalog, store):
    dispatcher = make_dispatcher(catalog, store, {})
    dispatcher.register("delete", lambda p: "gone")
    assert (await dispatcher.execute("delete")).result == "gone"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_params_checked_against_action_schema(catalog, store):
    """Resolved params must satisfy the catalog's parameter model."""
    called = []
    dispatcher = make_dispatcher(catalog, store, {"go": called.append})

    outcome = await dispatcher.dispatch({"name": "go", "params": {"to": {"path": "/missing"}}})

    assert outcome.status is OutcomeStatus.REJECTED
    assert isinstance(outcome.error, InvalidParamsError)
    assert outcome.error.fields == ("to",)
    assert called == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_confirm_request_callback_error_cancels(catalog, store):
    called = []

    def broken_prompt(pending):
        raise RuntimeError("dialog unavailable")

    dispatcher = make_dispatcher(
        catalog, store, {"delete": called.append}, on_confirm_request=broken_prompt
    )

    outcome = await dispatcher.dispatch({"name": "delete", "confirm": CONFIRM})

    assert outcome.status is OutcomeStatus.CANCELLED
    assert isinstance(outcome.error, RuntimeError)
    assert called == []
    assert dispatcher.pending_confirmation is None
