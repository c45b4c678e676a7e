from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class CategoryInsight:
    """Aggregated spend for a single category inside a period."""

    name: str
    amount: float
    count: int
    percentage: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _amount(tx: Dict[str, Any]) -> float:
    return float(tx.get("amount", 0) or 0)


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


class FinanceAnalyzer:
    """
    Summaries over transaction rows, shared by the dashboard, the AI
    insights and report endpoints, the voice assistant and the batch
    curator. Rows are plain dicts with at least type, amount and date.
    """

    def __init__(self, top_categories_limit: int = 5) -> None:
        self._top_limit = top_categories_limit

    def totals(self, transactions: List[Dict[str, Any]]) -> Dict[str, Any]:
        income = sum(_amount(t) for t in transactions if t.get("type") == "income")
        expenses = sum(_amount(t) for t in transactions if t.get("type") == "expense")
        return {
            "income": round(income, 2),
            "expenses": round(expenses, 2),
            "balance": round(income - expenses, 2),
            "transaction_count": len(transactions),
        }

    def category_breakdown(
        self,
        transactions: List[Dict[str, Any]],
        tx_type: str = "expense",
    ) -> Dict[str, Dict[str, float]]:
        breakdown: Dict[str, Dict[str, float]] = defaultdict(lambda: {"amount": 0.0, "count": 0})
        for tx in transactions:
            if tx.get("type") != tx_type or not tx.get("category"):
                continue
            entry = breakdown[tx["category"]]
            entry["amount"] += _amount(tx)
            entry["count"] += 1
        return dict(breakdown)

    def top_categories(
        self,
        transactions: List[Dict[str, Any]],
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Largest expense categories, each with its share of total expenses.
        """
        limit = limit or self._top_limit
        breakdown = self.category_breakdown(transactions)
        total_expenses = sum(_amount(t) for t in transactions if t.get("type") == "expense")

        ranked = sorted(breakdown.items(), key=lambda item: item[1]["amount"], reverse=True)[:limit]
        return [
            CategoryInsight(
                name=name,
                amount=round(data["amount"], 2),
                count=int(data["count"]),
                percentage=round(data["amount"] / total_expenses * 100, 1) if total_expenses else 0.0,
            ).to_dict()
            for name, data in ranked
        ]

    @staticmethod
    def in_month(transactions: List[Dict[str, Any]], year: int, month: int) -> List[Dict[str, Any]]:
        selected = []
        for tx in transactions:
            tx_date = _as_date(tx.get("date"))
            if tx_date and tx_date.year == year and tx_date.month == month:
                selected.append(tx)
        return selected

    @staticmethod
    def previous_month(year: int, month: int) -> Tuple[int, int]:
        return (year - 1, 12) if month == 1 else (year, month - 1)

    @staticmethod
    def percent_change(current: float, previous: float) -> float:
        if previous <= 0:
            return 0.0
        return round((current - previous) / previous * 100, 1)

    @staticmethod
    def calculate_net_worth(
        assets: List[Dict[str, Any]],
        liabilities: List[Dict[str, Any]],
    ) -> Dict[str, float]:
        """Assets count at current value (falling back to purchase value); liabilities at what is still owed."""
        total_assets = 0.0
        for asset in assets:
            value = asset.get("current_value")
            if value is None:
                value = asset.get("value", 0)
            total_assets += float(value or 0)
        total_liabilities = sum(float(l.get("remaining_amount", 0) or 0) for l in liabilities)
        return {
            "total_assets": round(total_assets, 2),
            "total_liabilities": round(total_liabilities, 2),
            "net_worth": round(total_assets - total_liabilities, 2),
        }

    def month_summary(self, transactions: List[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        return self.totals(self.in_month(transactions, today.year, today.month))

    def dashboard_summary(
        self,
        transactions: List[Dict[str, Any]],
        net_worth: Dict[str, float],
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Current vs previous month, top expense categories, patrimony and trends."""
        today = today or date.today()
        current = self.in_month(transactions, today.year, today.month)
        last = self.in_month(transactions, *self.previous_month(today.year, today.month))

        current_totals = self.totals(current)
        last_totals = self.totals(last)

        return {
            "current_month": current_totals,
            "last_month": {k: last_totals[k] for k in ("income", "expenses", "balance")},
            "top_expense_categories": [
                {"name": c["name"], "amount": c["amount"]} for c in self.top_categories(current)
            ],
            "patrimony": net_worth,
            "trends": {
                "income_change": self.percent_change(current_totals["income"], last_totals["income"]),
                "expenses_change": self.percent_change(current_totals["expenses"], last_totals["expenses"]),
            },
        }

    def period_summary(
        self,
        transactions: List[Dict[str, Any]],
        start: date,
        end: date,
        report_type: str,
        net_worth: Dict[str, float],
        family_member_count: int = 0,
    ) -> Dict[str, Any]:
        totals = self.totals(transactions)
        days = max(1, (end - start).days)
        return {
            "report_type": report_type,
            "period": {"start": start.isoformat(), "end": end.isoformat(), "days": days},
            "financial": {
                "income": totals["income"],
                "expenses": totals["expenses"],
                "balance": totals["balance"],
                "daily_avg_expense": round(totals["expenses"] / days, 2),
                "transaction_count": totals["transaction_count"],
            },
            "categories": self.top_categories(transactions),
            "patrimony": net_worth,
            "family_member_count": family_member_count,
        }
