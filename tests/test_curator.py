from app.db import dynamo
from app.utils import curator


def tx(tx_id, description, amount, date, tx_type="expense", **extra):
    return {"id": tx_id, "description": description, "amount": amount, "date": date, "type": tx_type, **extra}


# Duplicates

def test_duplicate_within_window_is_flagged():
    rows = [
        tx("a", "Mercado Extra", 120.50, "2025-03-01"),
        tx("b", "  mercado extra ", 120.50, "2025-03-03"),
    ]
    suggestions = curator.detect_duplicates(rows)
    assert len(suggestions) == 1
    assert suggestions[0]["transaction_id"] == "b"
    assert suggestions[0]["suggested_value"]["duplicate_of"] == "a"
    assert suggestions[0]["confidence_score"] == 0.85


def test_three_days_apart_is_not_a_duplicate():
    rows = [
        tx("a", "Mercado", 50.0, "2025-03-01"),
        tx("b", "Mercado", 50.0, "2025-03-04"),
    ]
    assert curator.detect_duplicates(rows) == []


def test_duplicate_needs_same_type_and_amount():
    rows = [
        tx("a", "Pix", 100.0, "2025-03-01", "income"),
        tx("b", "Pix", 100.0, "2025-03-01", "expense"),
        tx("c", "Pix", 100.02, "2025-03-01", "expense"),
    ]
    assert curator.detect_duplicates(rows) == []


def test_non_adjacent_duplicate_is_found():
    rows = [
        tx("a", "Farmácia", 35.0, "2025-03-01"),
        tx("x", "Uber", 20.0, "2025-03-01"),
        tx("b", "Farmácia", 35.0, "2025-03-02"),
    ]
    suggestions = curator.detect_duplicates(rows)
    assert [(s["transaction_id"], s["suggested_value"]["duplicate_of"]) for s in suggestions] == [("b", "a")]


def test_each_row_is_flagged_once():
    rows = [
        tx("a", "Café", 8.0, "2025-03-01"),
        tx("b", "Café", 8.0, "2025-03-01"),
        tx("c", "Café", 8.0, "2025-03-02"),
    ]
    suggestions = curator.detect_duplicates(rows)
    flagged = [s["transaction_id"] for s in suggestions]
    assert len(flagged) == len(set(flagged)) == 2
    # One original always remains unflagged
    assert len({"a", "b", "c"} - set(flagged)) == 1


# Recurrence

def test_monthly_recurrence():
    rows = [
        tx("1", "Netflix", 39.90, "2025-01-01"),
        tx("2", "Netflix", 39.90, "2025-01-31"),
        tx("3", "netflix", 39.90, "2025-03-02"),
    ]
    suggestions = curator.detect_recurring(rows)
    assert len(suggestions) == 1
    assert suggestions[0]["transaction_id"] == "3"
    assert suggestions[0]["suggested_value"] == {"pattern": "monthly", "interval_days": 30, "occurrences": 3}
    assert suggestions[0]["confidence_score"] == 0.90


def test_weekly_and_biweekly_recurrence():
    weekly = [tx(str(i), "Feira", 80.0, f"2025-03-{day:02d}") for i, day in enumerate((3, 10, 17, 24))]
    biweekly = [tx(f"b{i}", "Diarista", 150.0, f"2025-03-{day:02d}") for i, day in enumerate((1, 15, 29))]

    patterns = {s["transaction_id"]: s["suggested_value"]["pattern"] for s in curator.detect_recurring(weekly + biweekly)}
    assert patterns == {"3": "weekly", "b2": "biweekly"}


def test_irregular_intervals_are_not_recurring():
    rows = [
        tx("1", "Posto", 200.0, "2025-01-01"),
        tx("2", "Posto", 200.0, "2025-01-08"),
        tx("3", "Posto", 200.0, "2025-02-07"),
    ]
    assert curator.detect_recurring(rows) == []


def test_two_occurrences_are_not_enough():
    rows = [
        tx("1", "Academia", 99.0, "2025-01-05"),
        tx("2", "Academia", 99.0, "2025-02-05"),
    ]
    assert curator.detect_recurring(rows) == []


def test_already_recurring_or_same_day_groups_are_skipped():
    tagged = [
        tx("1", "Aluguel", 1500.0, "2025-01-10"),
        tx("2", "Aluguel", 1500.0, "2025-02-10"),
        tx("3", "Aluguel", 1500.0, "2025-03-12", is_recurring=True),
    ]
    same_day = [tx(f"s{i}", "Pão", 5.0, "2025-03-01") for i in range(3)]
    assert curator.detect_recurring(tagged + same_day) == []


def test_classify_interval_picks_nearest_period():
    assert curator.classify_interval(6) == "weekly"
    assert curator.classify_interval(12) == "biweekly"
    assert curator.classify_interval(25) == "monthly"
    assert curator.classify_interval(10.5) == "weekly"


# Routing

def test_route_suggestion_thresholds():
    assert curator.route_suggestion(0.95) == "apply"
    assert curator.route_suggestion(0.90) == "apply"
    assert curator.route_suggestion(0.89) == "review"
    assert curator.route_suggestion(0.70) == "review"
    assert curator.route_suggestion(0.69) == "discard"


def test_category_suggestions_prefer_learned_patterns():
    rows = [
        tx("1", "Uber para o trabalho", 25.0, "2025-03-01"),
        tx("2", "Padaria", 12.0, "2025-03-01"),
        tx("3", "Já categorizada", 10.0, "2025-03-01", category="Lazer"),
    ]
    patterns = [{
        "pattern_type": "category",
        "pattern_key": "UBER",
        "pattern_value": {"category": "Transporte"},
        "confidence_score": 0.95,
    }]
    asked = []

    def suggester(description, categories):
        asked.append(description)
        return {"category": "Alimentação", "confidence": 0.8, "reason": "bakery"}

    suggestions = curator.category_suggestions(rows, patterns, [], suggester)

    assert asked == ["Padaria"]
    by_id = {s["transaction_id"]: s for s in suggestions}
    assert by_id["1"]["suggested_value"] == {"category": "Transporte"}
    assert by_id["1"]["confidence_score"] == 0.95
    assert by_id["2"]["confidence_score"] == 0.8
    assert "3" not in by_id


def test_failed_ai_suggestion_is_skipped():
    rows = [tx("1", "???", 10.0, "2025-03-01")]
    assert curator.category_suggestions(rows, [], [], lambda d, c: None) == []


# Orchestration

def test_curate_user_applies_and_queues(monkeypatch):
    rows = [
        tx("t1", "Uber centro", 30.0, "2025-03-05"),
        tx("t2", "Padaria", 12.0, "2025-03-04"),
        tx("t3", "xyz", 7.0, "2025-03-01"),
    ]
    patterns = [{
        "pattern_type": "category",
        "pattern_key": "uber",
        "pattern_value": {"category": "Transporte"},
        "confidence_score": 0.95,
    }]
    updates, learned, stored = [], [], []

    monkeypatch.setattr(dynamo, "list_transactions", lambda user_id, **kwargs: rows)
    monkeypatch.setattr(dynamo, "list_patterns", lambda user_id: patterns)
    monkeypatch.setattr(dynamo, "list_categories", lambda user_id: [])
    monkeypatch.setattr(
        dynamo, "update_transaction", lambda user_id, tx_id, fields: updates.append((tx_id, fields)) or {"id": tx_id}
    )
    monkeypatch.setattr(dynamo, "upsert_pattern", lambda *args: learned.append(args) or True)
    monkeypatch.setattr(dynamo, "put_suggestions", lambda items: stored.extend(items) or True)

    confidences = {"Padaria": 0.75, "xyz": 0.4}
    result = curator.curate_user(
        "user-1",
        suggester=lambda description, categories: {"category": "Alimentação", "confidence": confidences[description]},
    )

    assert result["applied"] == 1
    assert result["pending"] == 1
    assert updates[0][0] == "t1"
    assert updates[0][1]["category"] == "Transporte"
    assert updates[0][1]["auto_categorized"] is True
    assert learned[0][:3] == ("user-1", "category", "Uber centro")

    assert len(stored) == 1
    assert stored[0]["transaction_id"] == "t2"
    assert stored[0]["status"] == "pending"
    assert stored[0]["user_id"] == "user-1"
    assert result["suggestions"] == stored


def test_curate_user_without_transactions(monkeypatch):
    monkeypatch.setattr(dynamo, "list_transactions", lambda user_id, **kwargs: [])
    assert curator.curate_user("user-1") == {"message": "No transactions to curate", "suggestions": []}


def test_apply_recurring_suggestion(monkeypatch):
    updates = []
    monkeypatch.setattr(
        dynamo, "update_transaction", lambda user_id, tx_id, fields: updates.append(fields) or {"id": tx_id}
    )
    suggestion = {
        "transaction_id": "t9",
        "suggestion_type": "recurring",
        "suggested_value": {"pattern": "monthly", "interval_days": 30, "occurrences": 4},
        "confidence_score": 0.9,
    }
    assert curator.apply_suggestion("user-1", suggestion)
    assert updates[0]["is_recurring"] is True
    assert updates[0]["recurrence_pattern"] == "monthly"
    assert updates[0]["metadata"]["occurrences"] == 4


def test_missing_ai_confidence_is_discarded(monkeypatch):
    rows = [
        tx("t1", "Cinema", 40.0, "2025-03-10"),
        tx("t2", "Show", 90.0, "2025-03-01"),
    ]
    monkeypatch.setattr(dynamo, "list_transactions", lambda user_id, **kwargs: rows)
    monkeypatch.setattr(dynamo, "list_patterns", lambda user_id: [])
    monkeypatch.setattr(dynamo, "list_categories", lambda user_id: [])

    confidences = {"Cinema": None, "Show": "very sure"}
    result = curator.curate_user(
        "user-1",
        suggester=lambda description, categories: {"category": "Lazer", "confidence": confidences[description]},
    )

    assert result["applied"] == 0
    assert result["pending"] == 0


def test_unparsable_pattern_confidence_counts_as_zero():
    rows = [tx("1", "Uber", 25.0, "2025-03-01")]
    patterns = [{"pattern_type": "category", "pattern_key": "uber", "pattern_value": {"category": "Transporte"}}]

    suggestions = curator.category_suggestions(rows, patterns, [])

    assert suggestions[0]["confidence_score"] == 0.0
    assert curator.route_suggestion(suggestions[0]["confidence_score"]) == "discard"


def test_timestamps_are_compared_in_utc():
    rows = [
        # 2025-03-02 04:00 UTC
        tx("a", "Mercado", 80.0, "2025-03-01T23:00:00-05:00"),
        tx("b", "Mercado", 80.0, "2025-03-05T01:00:00+00:00"),
    ]
    suggestions = curator.detect_duplicates(rows)
    assert [(s["transaction_id"], s["suggested_value"]["duplicate_of"]) for s in suggestions] == [("b", "a")]
