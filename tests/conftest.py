from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.db import dynamo
from app.main import app

USER_ID = "user-1"


@pytest.fixture
def client():
    # Not used as a context manager: the lifespan would start the curation scheduler
    return TestClient(app)


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": USER_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def audit_log(monkeypatch):
    entries = []
    monkeypatch.setattr(dynamo, "put_audit_log", lambda *args: entries.append(args) or True)
    return entries


@pytest.fixture
def premium(monkeypatch, audit_log):
    subscription = {
        "user_id": USER_ID,
        "status": "trial",
        "plan": "premium",
        "trial_end": (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
        "current_period_end": None,
    }
    monkeypatch.setattr(dynamo, "get_subscription", lambda user_id: subscription)
    return subscription
