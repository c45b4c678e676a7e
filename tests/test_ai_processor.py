from datetime import date

import pytest

from app.db import dynamo
from app.utils import ai_client, ai_processor


@pytest.fixture
def store(monkeypatch):
    saved = []
    monkeypatch.setattr(dynamo, "list_categories", lambda user_id: [{"name": "Transporte", "type": "expense"}])
    monkeypatch.setattr(dynamo, "put_transaction", lambda item: saved.append(item) or True)
    monkeypatch.setattr(ai_client, "get_openai_client", lambda: object())
    return saved


def fake_chat(reply, calls=None):
    def chat_json(messages, **kwargs):
        if calls is not None:
            calls.append(messages)
        return reply
    return chat_json


def test_high_confidence_transaction_is_created(store, monkeypatch):
    reply = {
        "has_transaction": True,
        "transaction": {
            "type": "expense",
            "description": "Uber",
            "amount": 45,
            "category": "Transporte",
            "date": None,
            "confidence": 0.95,
        },
        "response": "Got it: 45.00 on Uber.",
    }
    monkeypatch.setattr(ai_client, "chat_json", fake_chat(reply))

    result = ai_processor.process_transaction_message("user-1", "Spent 45 on Uber")

    assert result["transaction_created"] is True
    assert result["amount"] == 45
    assert result["category"] == "Transporte"
    assert result["transaction_id"] == store[0]["id"]
    assert store[0]["date"] == date.today().isoformat()
    assert store[0]["user_id"] == "user-1"
    assert result["response"].startswith("✅")


def test_confidence_at_threshold_is_only_suggested(store, monkeypatch):
    transaction = {"type": "expense", "description": "Lunch", "amount": 35, "category": "Alimentação", "confidence": 0.8}
    monkeypatch.setattr(ai_client, "chat_json", fake_chat({"has_transaction": True, "transaction": transaction, "response": "Lunch?"}))

    result = ai_processor.process_transaction_message("user-1", "lunch 35")

    assert result == {"success": True, "response": "Lunch?", "suggestion": transaction}
    assert store == []


def test_zero_amount_is_not_created(store, monkeypatch):
    transaction = {"type": "expense", "description": "Gift", "amount": 0, "confidence": 0.99}
    monkeypatch.setattr(ai_client, "chat_json", fake_chat({"has_transaction": True, "transaction": transaction, "response": "ok"}))

    result = ai_processor.process_transaction_message("user-1", "gift")

    assert "transaction_created" not in result
    assert result["suggestion"] == transaction


def test_conversation_only(store, monkeypatch):
    monkeypatch.setattr(ai_client, "chat_json", fake_chat({"has_transaction": False, "response": "Hello!"}))
    assert ai_processor.process_transaction_message("user-1", "hi") == {"success": True, "response": "Hello!"}


def test_insert_failure_returns_suggestion(monkeypatch):
    monkeypatch.setattr(dynamo, "list_categories", lambda user_id: [])
    monkeypatch.setattr(dynamo, "put_transaction", lambda item: False)
    monkeypatch.setattr(ai_client, "get_openai_client", lambda: object())
    transaction = {"type": "income", "description": "Salary", "amount": 3000, "confidence": 0.9}
    monkeypatch.setattr(ai_client, "chat_json", fake_chat({"has_transaction": True, "transaction": transaction, "response": "Nice"}))

    result = ai_processor.process_transaction_message("user-1", "salary 3000")

    assert result["suggestion"] == transaction
    assert "⚠️" in result["response"]
    assert "transaction_created" not in result


def test_history_is_trimmed_to_last_messages(store, monkeypatch):
    calls = []
    monkeypatch.setattr(ai_client, "chat_json", fake_chat({"has_transaction": False, "response": "ok"}, calls))
    history = [{"role": "user" if i % 2 else "assistant", "content": f"msg {i}"} for i in range(15)]

    ai_processor.process_transaction_message("user-1", "and today?", conversation_history=history)

    messages = calls[0]
    assert messages[0]["role"] == "system"
    assert "Transporte (expense)" in messages[0]["content"]
    assert [m["content"] for m in messages[1:-1]] == [f"msg {i}" for i in range(5, 15)]
    assert messages[-1] == {"role": "user", "content": "and today?"}


def test_default_categories_when_user_has_none():
    assert "Alimentação" in ai_processor.category_list([])


def test_audio_is_transcribed_first(store, monkeypatch):
    calls = []
    monkeypatch.setattr(ai_client, "transcribe_audio", lambda data_url: "paid 20 for parking")
    monkeypatch.setattr(ai_client, "chat_json", fake_chat({"has_transaction": False, "response": "ok"}, calls))

    ai_processor.process_transaction_message("user-1", "data:audio/wav;base64,AAAA", input_type="audio")

    assert calls[0][-1]["content"] == "paid 20 for parking"


def test_confirmed_suggestion_is_saved_without_ai(store, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("AI must not be called")

    monkeypatch.setattr(ai_client, "chat_json", fail)
    suggestion = {"type": "expense", "description": "Cinema", "amount": 60.0, "category": "Lazer", "date": "2025-03-08"}

    result = ai_processor.process_transaction_message("user-1", "", confirm_suggestion=True, suggestion=suggestion)

    assert result["success"] is True
    assert result["transaction_id"] == store[0]["id"]
    assert store[0]["date"] == "2025-03-08"


def test_confirmed_suggestion_save_failure_raises(monkeypatch):
    monkeypatch.setattr(dynamo, "put_transaction", lambda item: False)
    suggestion = {"type": "expense", "description": "Cinema", "amount": 60.0}
    with pytest.raises(RuntimeError):
        ai_processor.process_transaction_message("user-1", "", confirm_suggestion=True, suggestion=suggestion)


def test_unparsable_confidence_or_amount_is_only_suggested(store, monkeypatch):
    for transaction in (
        {"type": "expense", "description": "Uber", "amount": 45, "confidence": "high"},
        {"type": "expense", "description": "Uber", "amount": None, "confidence": 0.99},
    ):
        reply = {"has_transaction": True, "transaction": transaction, "response": "Uber?"}
        monkeypatch.setattr(ai_client, "chat_json", fake_chat(reply))

        result = ai_processor.process_transaction_message("user-1", "uber")

        assert result == {"success": True, "response": "Uber?", "suggestion": transaction}
    assert store == []


def test_non_object_transaction_is_treated_as_conversation(store, monkeypatch):
    reply = {"has_transaction": True, "transaction": "Uber 45", "response": "Which date?"}
    monkeypatch.setattr(ai_client, "chat_json", fake_chat(reply))

    assert ai_processor.process_transaction_message("user-1", "uber") == {"success": True, "response": "Which date?"}
