import pytest

from scootcare.config import FALLBACK_REPLY, UNRESOLVED_REPLY, DEGRADED_REPLY
from scootcare.errors import UnknownResolverError, UpstreamError
from scootcare.orders import AUTH_REQUIRED_REPLY, NO_ORDERS_REPLY
from scootcare.responders import (
    ResolverRegistry, ResponderDispatch, TurnContext, TurnState, default_registry,
)
from scootcare.storage import InMemoryBackend
from conftest import static_entry, dynamic_entry


@pytest.fixture
def order_backend():
    backend = InMemoryBackend()
    backend.insert("orders", {"id": "O-1", "owner_id": "u1", "model_name": "ScootLite Urban", "status": "shipped",
                              "expected_delivery_date": "2030-05-17", "created_at": "2030-05-10T09:00:00+00:00"})
    return backend


@pytest.fixture
def dispatch(order_backend):
    return ResponderDispatch(default_registry(order_backend))


def test_static_entry_answers_with_body(dispatch):
    entry = static_entry("battery charge", "Check the charger.")
    result = dispatch.answer("battery", [entry], TurnContext(user_id="u1"))
    assert result.text == "Check the charger."
    assert result.matched and result.entry is entry
    assert not result.offer_escalation
    assert result.path == [TurnState.RECEIVED, TurnState.MATCHED, TurnState.STATIC, TurnState.RESPONDED]


def test_battery_question_gets_static_answer(dispatch):
    entries = [static_entry("battery charge", "Check charging port.")]
    result = dispatch.answer("my battery won't charge", entries, TurnContext(user_id="u1"))
    assert result.matched
    assert result.text == "Check charging port."

    result = dispatch.answer("purple elephant", entries, TurnContext(user_id="u1"))
    assert result.text == FALLBACK_REPLY


def test_order_tracking_reports_latest_order(dispatch):
    entry = dynamic_entry("where is my order", "order_tracking")
    result = dispatch.answer("where is my order?", [entry], TurnContext(user_id="u1"))
    assert "shipped" in result.text
    assert "May 17, 2030" in result.text
    assert "ScootLite Urban" in result.text
    assert result.path == [TurnState.RECEIVED, TurnState.MATCHED, TurnState.DYNAMIC, TurnState.RESPONDED]


def test_order_tracking_uses_most_recent_order(order_backend, dispatch):
    order_backend.insert("orders", {"id": "O-2", "owner_id": "u1", "model_name": "ScootMax Elite",
                                    "status": "processing", "expected_delivery_date": None,
                                    "created_at": "2030-06-01T09:00:00+00:00"})
    text = dispatch.resolve(dynamic_entry("order", "order_tracking"), TurnContext(user_id="u1"))
    assert "ScootMax Elite" in text
    assert "not yet scheduled" in text


def test_order_tracking_without_user_or_orders(dispatch):
    entry = dynamic_entry("order", "order_tracking")
    assert dispatch.resolve(entry, TurnContext()) == AUTH_REQUIRED_REPLY
    assert dispatch.resolve(entry, TurnContext(user_id="someone-else")) == NO_ORDERS_REPLY


def test_unmatched_query_gets_fallback(dispatch):
    result = dispatch.answer("purple elephant", [static_entry("battery", "x")], TurnContext(user_id="u1"))
    assert result.text == FALLBACK_REPLY
    assert not result.matched
    assert result.offer_escalation
    assert result.path == [TurnState.RECEIVED, TurnState.UNMATCHED, TurnState.RESPONDED]


def test_unknown_resolver(dispatch):
    entry = dynamic_entry("warranty", "warranty_lookup")
    with pytest.raises(UnknownResolverError):
        dispatch.resolve(entry, TurnContext(user_id="u1"))
    result = dispatch.answer("warranty", [entry], TurnContext(user_id="u1"))
    assert result.text == UNRESOLVED_REPLY
    assert result.degraded and result.offer_escalation
    assert result.path[0] == TurnState.RECEIVED and result.path[-1] == TurnState.RESPONDED


def test_failing_resolver_degrades_distinctly_from_fallback():
    def broken(context):
        raise UpstreamError("orders table unavailable")

    registry = ResolverRegistry()
    registry.register("order_tracking", broken)
    result = ResponderDispatch(registry).answer("order", [dynamic_entry("order", "order_tracking")],
                                                TurnContext(user_id="u1"))
    assert result.text == DEGRADED_REPLY
    assert result.text != FALLBACK_REPLY
    assert result.matched and result.degraded


def test_registry_keys():
    registry = default_registry(InMemoryBackend())
    assert registry.keys() == ["order_tracking"]
    with pytest.raises(UnknownResolverError):
        registry.get(None)
