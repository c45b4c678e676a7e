from datetime import datetime, timedelta, timezone

import pytest

from app.utils.subscription import (
    build_subscription_update,
    has_access,
    plan_level,
    preview_subscription,
    quick_action_update,
    validate_access,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
PAST = (NOW - timedelta(days=1)).isoformat()
FUTURE = (NOW + timedelta(days=1)).isoformat()


def test_active_always_has_access():
    assert has_access({"status": "active", "trial_end": PAST, "current_period_end": PAST}, NOW)
    assert has_access({"status": "active"}, NOW)


def test_trial_depends_on_trial_end():
    assert has_access({"status": "trial", "trial_end": FUTURE}, NOW)
    assert not has_access({"status": "trial", "trial_end": PAST}, NOW)
    assert not has_access({"status": "trial", "trial_end": None}, NOW)


def test_trial_ignores_period_end():
    assert not has_access({"status": "trial", "trial_end": PAST, "current_period_end": FUTURE}, NOW)


def test_other_statuses_depend_on_period_end():
    assert has_access({"status": "canceled", "current_period_end": FUTURE}, NOW)
    assert not has_access({"status": "canceled", "current_period_end": PAST}, NOW)
    assert not has_access({"status": "expired"}, NOW)


def test_missing_subscription_has_no_access():
    assert not has_access(None, NOW)
    assert not has_access({}, NOW)


def test_timestamps_with_z_suffix_and_naive_values():
    assert has_access({"status": "trial", "trial_end": "2025-06-16T00:00:00Z"}, NOW)
    assert has_access({"status": "trial", "trial_end": "2025-06-16T00:00:00"}, NOW)
    assert not has_access({"status": "trial", "trial_end": "2025-06-15T11:59:59Z"}, NOW)


def test_plan_levels():
    assert plan_level("free") < plan_level("premium") < plan_level("family")
    assert plan_level(None) == 0
    assert plan_level("unknown") == 0


def test_validate_access_reasons():
    assert validate_access(None, "premium", NOW).reason == "no_subscription"
    assert validate_access({"status": "expired", "plan": "family"}, "premium", NOW).reason == "expired"

    free = {"status": "active", "plan": "free"}
    assert validate_access(free, "premium", NOW).reason == "insufficient_plan"
    assert validate_access(free, "free", NOW).allowed

    family = {"status": "trial", "plan": "family", "trial_end": FUTURE}
    decision = validate_access(family, "premium", NOW)
    assert decision.allowed and decision.reason == "ok"


def test_preview_subscription():
    assert preview_subscription("active", period_end=FUTURE, now=NOW).allowed
    assert preview_subscription("active", now=NOW).allowed
    assert preview_subscription("active", period_end=PAST, now=NOW).reason == "Period expired"
    assert preview_subscription("trial", trial_end=FUTURE, now=NOW).reason == "Trial valid"
    assert not preview_subscription("trial", trial_end=PAST, now=NOW).allowed
    assert preview_subscription("canceled", period_end=FUTURE, now=NOW).reason == "Canceled"
    assert preview_subscription("expired", now=NOW).reason == "Expired"


def test_build_update_for_trial_clears_period_end():
    update = build_subscription_update({"current_period_end": FUTURE}, "trial", "premium", trial_end=FUTURE)
    assert update["status"] == "trial"
    assert update["current_period_end"] is None
    assert update["trial_end"].startswith("2025-06-16")


def test_build_update_for_active_clears_trial_end():
    update = build_subscription_update({"trial_end": FUTURE}, "active", "family", period_end=FUTURE)
    assert update["trial_end"] is None
    assert update["plan"] == "family"


def test_build_update_requires_dates():
    with pytest.raises(ValueError):
        build_subscription_update({}, "trial", "premium")
    with pytest.raises(ValueError):
        build_subscription_update({}, "active", "premium")


def test_cancel_keeps_existing_dates():
    current = {"status": "active", "plan": "premium", "current_period_end": FUTURE, "trial_end": None}
    update = quick_action_update(current, "cancel", now=NOW)
    assert update["status"] == "canceled"
    assert update["plan"] == "premium"
    assert update["current_period_end"] == FUTURE


def test_quick_actions():
    trial = quick_action_update({"plan": "family"}, "trial", days=14, now=NOW)
    assert trial["status"] == "trial"
    assert trial["plan"] == "family"
    assert has_access(trial, NOW + timedelta(days=13))
    assert not has_access(trial, NOW + timedelta(days=15))

    active = quick_action_update({}, "activate", now=NOW)
    assert active["status"] == "active"
    assert active["current_period_end"].startswith("2025-07-15")

    with pytest.raises(ValueError):
        quick_action_update({}, "refund", now=NOW)
