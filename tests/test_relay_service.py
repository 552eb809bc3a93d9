import pytest

from chatrelay.services.errors import ProviderError
from chatrelay.services.history_store import JsonHistoryStore
from chatrelay.services.relay_service import RelayService
from tests.stubs import BrokenStore, StubGateway


def test_turn_returns_text_and_records_pair(relay, gateway, memory_store):
    result = relay.run_turn("Hello", "u1")

    assert result.text == "Hi there"
    assert result.user_id == "u1"
    assert result.delivered and result.persisted
    assert gateway.prompts == ["Hello"]
    assert [(m.text, m.is_user) for m in memory_store.get("u1")] == [
        ("Hello", True),
        ("Hi there", False),
    ]


@pytest.mark.parametrize("prompt, user_id", [(None, None), ("", ""), ("   ", "\t")])
def test_blank_fields_use_defaults(relay, gateway, memory_store, prompt, user_id):
    result = relay.run_turn(prompt, user_id)

    assert gateway.prompts == ["Hi"]
    assert result.user_id == "anonymous"
    assert [m.text for m in memory_store.get("anonymous")] == ["Hi", "Hi there"]


def test_custom_defaults(memory_store):
    gateway = StubGateway()
    relay = RelayService(gateway, memory_store, default_prompt="Hello?", default_user_id="guest")

    relay.run_turn(None, None)

    assert gateway.prompts == ["Hello?"]
    assert len(memory_store.get("guest")) == 2


def test_provider_error_propagates_and_leaves_history_unchanged(memory_store):
    memory_store.append("u1", "earlier", "reply")
    relay = RelayService(StubGateway(error="upstream down"), memory_store)

    with pytest.raises(ProviderError):
        relay.run_turn("Hello", "u1")

    assert [m.text for m in memory_store.get("u1")] == ["earlier", "reply"]


def test_store_failure_does_not_fail_the_turn():
    relay = RelayService(StubGateway(reply="still here"), BrokenStore())

    result = relay.run_turn("Hello", "u1")

    assert result.text == "still here"
    assert result.delivered
    assert not result.persisted


def test_history_grows_by_two_per_turn(relay):
    for n in range(3):
        relay.run_turn(f"q{n}", "u1")
        assert len(relay.get_history("u1")) == 2 * (n + 1)


def test_clear_history(relay):
    relay.run_turn("Hello", "u1")
    relay.clear_history("u1")
    relay.clear_history("never-seen")

    assert relay.get_history("u1") == []
    assert relay.get_history("never-seen") == []


def test_json_store_rejecting_user_id_does_not_fail_the_turn(tmp_path):
    relay = RelayService(StubGateway(reply="Hi there"), JsonHistoryStore(tmp_path))

    result = relay.run_turn("Hello", "u" * 300)

    assert result.text == "Hi there"
    assert not result.persisted
