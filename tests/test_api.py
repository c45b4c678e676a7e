from app.core.security import get_password_hash
from app.db import dynamo
from app.routers import ai as ai_router
from app.routers import lambda_trigger
from app.routers.admin import subscription_metrics
from app.utils import ai_client

USER_ID = "user-1"


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_protected_route_requires_token(client):
    assert client.get("/api/transactions/").status_code == 401
    response = client.get("/api/transactions/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


# Auth

def test_register_starts_trial_and_seeds_categories(client, monkeypatch):
    users, subscriptions, seeded = [], [], []
    monkeypatch.setattr(dynamo, "get_user_by_email", lambda email: None)
    monkeypatch.setattr(dynamo, "put_user", lambda item: users.append(item) or True)
    monkeypatch.setattr(dynamo, "put_subscription", lambda item: subscriptions.append(item) or True)
    monkeypatch.setattr(dynamo, "put_owned_items", lambda table, items: seeded.extend(items) or True)

    response = client.post(
        "/api/auth/register",
        json={
            "email": "ana@example.com",
            "password": "secret1",
            "full_name": "Ana Souza",
            "phone_number": "+55 (11) 99999-0000",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert "password_hash" not in body
    assert body["phone_number"] == "5511999990000"
    assert users[0]["password_hash"] != "secret1"
    assert subscriptions[0]["status"] == "trial"
    assert subscriptions[0]["plan"] == "premium"
    assert all(c["is_default"] and c["user_id"] == body["user_id"] for c in seeded)
    assert {c["name"] for c in seeded} >= {"Alimentação", "Salário"}


def test_register_existing_email(client, monkeypatch):
    monkeypatch.setattr(dynamo, "get_user_by_email", lambda email: {"user_id": "x"})
    response = client.post(
        "/api/auth/register",
        json={"email": "ana@example.com", "password": "secret1", "full_name": "Ana"},
    )
    assert response.status_code == 400


def test_login(client, monkeypatch):
    user = {
        "user_id": USER_ID,
        "email": "ana@example.com",
        "full_name": "Ana",
        "password_hash": get_password_hash("secret1"),
    }
    monkeypatch.setattr(dynamo, "get_user_by_email", lambda email: user)

    bad = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "wrong"})
    assert bad.status_code == 401

    good = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret1"})
    assert good.status_code == 200
    assert good.json()["token_type"] == "bearer"
    assert good.json()["user"]["user_id"] == USER_ID

    monkeypatch.setattr(dynamo, "get_user_by_id", lambda user_id: user)
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {good.json()['access_token']}"})
    assert me.json()["email"] == "ana@example.com"


# Transactions

def test_create_transaction(client, auth_headers, monkeypatch):
    saved = []
    monkeypatch.setattr(dynamo, "put_transaction", lambda item: saved.append(item) or True)

    response = client.post(
        "/api/transactions/",
        json={"type": "expense", "description": "Mercado", "amount": 100.5, "date": "2025-03-01"},
        headers=auth_headers,
    )

    assert response.status_code == 201
    assert response.json()["amount"] == 100.5
    assert saved[0]["user_id"] == USER_ID
    assert saved[0]["date"] == "2025-03-01"


def test_create_transaction_rejects_non_positive_amount(client, auth_headers):
    response = client.post(
        "/api/transactions/",
        json={"type": "expense", "description": "Mercado", "amount": -5},
        headers=auth_headers,
    )
    assert response.status_code == 422


def test_missing_transaction(client, auth_headers, monkeypatch):
    monkeypatch.setattr(dynamo, "get_transaction", lambda user_id, tx_id: None)
    assert client.get("/api/transactions/nope", headers=auth_headers).status_code == 404


def test_list_transactions_passes_filters(client, auth_headers, monkeypatch):
    calls = []

    def list_transactions(user_id, **kwargs):
        calls.append(kwargs)
        return [{"type": "expense", "amount": 10.0}, {"type": "income", "amount": 50.0}]

    monkeypatch.setattr(dynamo, "list_transactions", list_transactions)
    response = client.get(
        "/api/transactions/?start_date=2025-03-01&end_date=2025-03-31&type=expense",
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert calls[0]["start_date"] == "2025-03-01"
    assert calls[0]["tx_type"] == "expense"
    assert response.json()["summary"]["balance"] == 40.0


def test_export_csv(client, auth_headers, monkeypatch):
    rows = [{"date": "2025-03-01", "type": "expense", "description": "Mercado", "amount": 10.0}]
    monkeypatch.setattr(dynamo, "list_transactions", lambda user_id, **kwargs: rows)
    response = client.get("/api/transactions/export", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0] == "date,type,description,category,amount,observation"


# Categories

def test_default_category_cannot_be_deleted(client, auth_headers, monkeypatch):
    monkeypatch.setattr(dynamo, "get_owned_item", lambda table, user_id, item_id: {"id": item_id, "is_default": True})
    assert client.delete("/api/categories/c1", headers=auth_headers).status_code == 400


def test_duplicate_category(client, auth_headers, monkeypatch):
    monkeypatch.setattr(dynamo, "list_categories", lambda user_id: [{"name": "Lazer", "type": "expense"}])
    response = client.post("/api/categories/", json={"name": "lazer", "type": "expense"}, headers=auth_headers)
    assert response.status_code == 400


# Subscriptions and plan gating

def test_my_subscription(client, auth_headers, premium):
    response = client.get("/api/subscriptions/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["has_access"] is True


def test_expired_subscription_blocks_ai(client, auth_headers, monkeypatch):
    monkeypatch.setattr(
        dynamo, "get_subscription", lambda user_id: {"status": "expired", "plan": "premium"}
    )
    response = client.get("/api/ai/insights", headers=auth_headers)
    assert response.status_code == 403
    assert "expired" in response.json()["detail"]


def test_free_plan_blocks_ai(client, auth_headers, monkeypatch):
    monkeypatch.setattr(dynamo, "get_subscription", lambda user_id: {"status": "active", "plan": "free"})
    response = client.post("/api/ai/voice-command", json={"command": "hi"}, headers=auth_headers)
    assert response.status_code == 403


def test_ai_error_envelope(client, auth_headers, premium, audit_log, monkeypatch):
    def fail(*args, **kwargs):
        raise ai_client.AIServiceError("gateway down")

    monkeypatch.setattr(ai_router, "process_transaction_message", fail)
    response = client.post("/api/ai/transactions", json={"input": "lunch 35"}, headers=auth_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "gateway down"
    assert body["response"]
    # Granted premium access is audited
    assert audit_log[0][:2] == (USER_ID, "access_premium")


# Admin

def test_admin_routes_require_admin_role(client, auth_headers, monkeypatch):
    monkeypatch.setattr(dynamo, "get_user_by_id", lambda user_id: {"user_id": user_id, "role": "member"})
    assert client.get("/api/admin/metrics", headers=auth_headers).status_code == 403


def test_admin_metrics(client, auth_headers, monkeypatch):
    monkeypatch.setattr(dynamo, "get_user_by_id", lambda user_id: {"user_id": user_id, "role": "admin"})
    monkeypatch.setattr(
        dynamo, "list_subscriptions", lambda: [{"status": "active", "plan": "premium"}]
    )
    response = client.get("/api/admin/metrics", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["mrr"] == 29.9


def test_admin_quick_action_is_audited(client, auth_headers, audit_log, monkeypatch):
    saved = []
    monkeypatch.setattr(dynamo, "get_user_by_id", lambda user_id: {"user_id": user_id, "role": "admin"})
    monkeypatch.setattr(dynamo, "get_subscription", lambda user_id: {"user_id": user_id, "status": "expired", "plan": "family"})
    monkeypatch.setattr(dynamo, "put_subscription", lambda item: saved.append(item) or True)

    response = client.post("/api/admin/subscriptions/user-2/actions/trial?days=14", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "trial"
    assert response.json()["has_access"] is True
    assert saved[0]["plan"] == "family"
    assert audit_log[0][1] == "subscription_trial"
    assert audit_log[0][2]["target_user_id"] == "user-2"


def test_subscription_metrics():
    subscriptions = [
        {"status": "active", "plan": "premium"},
        {"status": "active", "plan": "family"},
        {"status": "active", "plan": "premium"},
        {"status": "canceled", "plan": "premium"},
        {"status": "trial", "plan": "premium"},
    ]
    metrics = subscription_metrics(subscriptions)

    assert metrics["total_subscriptions"] == 5
    assert metrics["active_paying"] == 3
    assert metrics["mrr"] == 109.7
    assert metrics["arpu"] == 36.57
    assert metrics["churn_rate"] == 20.0
    assert metrics["by_plan"] == {"premium": 4, "family": 1}


def test_subscription_metrics_empty():
    metrics = subscription_metrics([])
    assert metrics["mrr"] == 0
    assert metrics["arpu"] == 0.0
    assert metrics["churn_rate"] == 0.0


# Suggestions and curation schedule

def test_accept_category_suggestion(client, auth_headers, monkeypatch):
    suggestion = {
        "id": "s1",
        "transaction_id": "t1",
        "suggestion_type": "category",
        "suggested_value": {"category": "Transporte"},
        "confidence_score": 0.8,
        "status": "pending",
    }
    updates = []
    monkeypatch.setattr(dynamo, "get_suggestion", lambda user_id, suggestion_id: suggestion)
    monkeypatch.setattr(
        dynamo, "update_transaction", lambda user_id, tx_id, fields: {"id": tx_id, "description": "Uber"}
    )
    monkeypatch.setattr(dynamo, "upsert_pattern", lambda *args: True)
    monkeypatch.setattr(
        dynamo, "update_suggestion", lambda user_id, suggestion_id, fields: updates.append(fields) or {**suggestion, **fields}
    )

    response = client.post("/api/suggestions/s1/accept", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["suggestion"]["status"] == "accepted"
    assert updates[0]["reviewed_at"]


def test_reviewed_suggestion_cannot_be_rejected_again(client, auth_headers, monkeypatch):
    monkeypatch.setattr(dynamo, "get_suggestion", lambda user_id, suggestion_id: {"id": "s1", "status": "accepted"})
    assert client.post("/api/suggestions/s1/reject", headers=auth_headers).status_code == 400


def test_curation_settings(client, auth_headers, monkeypatch):
    saved = []
    monkeypatch.setattr(dynamo, "get_curation_settings", lambda user_id: {"hour": 9, "minute": 0, "enabled": True})
    monkeypatch.setattr(
        dynamo, "save_curation_settings", lambda user_id, hour, minute, enabled: saved.append((hour, minute, enabled)) or True
    )

    current = client.get("/api/settings/curation", headers=auth_headers)
    assert current.status_code == 200
    assert current.json()["service_running"] is False
    assert current.json()["schedule"]["hour"] == 9

    response = client.put("/api/settings/curation", json={"hour": 22, "minute": 30}, headers=auth_headers)
    assert response.status_code == 200
    assert saved == [(22, 30, True)]
    assert "22:30" in response.json()["message"]

    assert client.put("/api/settings/curation", json={"hour": 24, "minute": 0}, headers=auth_headers).status_code == 422


# Patrimony

def test_asset_current_value_defaults_to_value(client, auth_headers, monkeypatch):
    monkeypatch.setattr(dynamo, "put_owned_item", lambda table, item: True)
    response = client.post("/api/patrimony/assets", json={"name": "Carro", "value": 45000}, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["current_value"] == 45000


def test_liability_remaining_cannot_exceed_total(client, auth_headers):
    response = client.post(
        "/api/patrimony/liabilities",
        json={"name": "Financiamento", "total_amount": 1000, "remaining_amount": 1500},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_net_worth(client, auth_headers, monkeypatch):
    monkeypatch.setattr(
        dynamo,
        "get_patrimony",
        lambda user_id: ([{"value": 300000.0, "current_value": 350000.0}], [{"remaining_amount": 120000.0}]),
    )
    response = client.get("/api/patrimony/net-worth", headers=auth_headers)
    assert response.json() == {"total_assets": 350000.0, "total_liabilities": 120000.0, "net_worth": 230000.0}


# Error envelopes and gating of AI features

def test_unexpected_ai_failure_still_returns_envelope(client, auth_headers, premium, monkeypatch):
    def fail(*args, **kwargs):
        raise KeyError("transaction")

    monkeypatch.setattr(ai_router, "process_transaction_message", fail)
    response = client.post("/api/ai/transactions", json={"input": "lunch 35"}, headers=auth_headers)

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert response.json()["response"]


def test_non_numeric_confidence_becomes_suggestion(client, auth_headers, premium, monkeypatch):
    transaction = {"type": "expense", "description": "Uber", "amount": 45, "confidence": "high"}
    monkeypatch.setattr(dynamo, "list_categories", lambda user_id: [])
    monkeypatch.setattr(ai_client, "get_openai_client", lambda: object())
    monkeypatch.setattr(
        ai_client,
        "chat_json",
        lambda messages, **kwargs: {"has_transaction": True, "transaction": transaction, "response": "Uber?"},
    )

    response = client.post("/api/ai/transactions", json={"input": "uber 45"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["suggestion"] == transaction
    assert "transaction_created" not in response.json()


def test_manual_curation_trigger_requires_premium(client, auth_headers, monkeypatch):
    triggered = []
    monkeypatch.setattr(lambda_trigger, "trigger_curation", lambda user_ids: triggered.append(user_ids) or {"success": True})

    for subscription in ({"status": "expired", "plan": "premium"}, {"status": "active", "plan": "free"}):
        monkeypatch.setattr(dynamo, "get_subscription", lambda user_id, s=subscription: s)
        assert client.post("/api/curation/trigger", headers=auth_headers).status_code == 403
    assert triggered == []


def test_manual_curation_trigger(client, auth_headers, premium, monkeypatch):
    triggered = []
    monkeypatch.setattr(lambda_trigger, "trigger_curation", lambda user_ids: triggered.append(user_ids) or {"success": True})

    response = client.post("/api/curation/trigger", headers=auth_headers)

    assert response.status_code == 200
    assert triggered == [[USER_ID]]


# Profile

def test_clearing_phone_number_unlinks_it(client, auth_headers, monkeypatch):
    calls = []

    def update_user(user_id, fields, removes=()):
        calls.append((fields, list(removes)))
        return {"user_id": user_id, "email": "ana@example.com", "full_name": "Ana"}

    monkeypatch.setattr(dynamo, "update_user", update_user)
    response = client.put("/api/auth/me", json={"phone_number": ""}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["phone_number"] is None
    fields, removes = calls[0]
    assert "phone_number" not in fields
    assert removes == ["phone_number"]


def test_phone_number_is_normalized_on_update(client, auth_headers, monkeypatch):
    calls = []

    def update_user(user_id, fields, removes=()):
        calls.append((fields, list(removes)))
        return {"user_id": user_id, "email": "ana@example.com", "phone_number": fields["phone_number"]}

    monkeypatch.setattr(dynamo, "update_user", update_user)
    response = client.put("/api/auth/me", json={"phone_number": "+55 11 98888-7777"}, headers=auth_headers)

    assert response.json()["phone_number"] == "5511988887777"
    assert calls[0][1] == []
