"""Profit summary and profit trend composed from independent sub-aggregations.

Every branch receives the same resolved range and business timezone, so the
sales, expense and COGS figures are bounded and bucketed identically. Branches
run on separate sessions and may see slightly different snapshots under
concurrent writes; for reporting this is accepted.
"""

from __future__ import annotations

from datetime import date, tzinfo
from decimal import Decimal

from app.shopbook.repos.report_queries import ZERO
from app.shopbook.schemas.reports import ProfitSummary, ProfitTrendPoint
from app.shopbook.services import aggregations
from app.shopbook.services.date_range import ReportRange, business_timezone
from app.shopbook.services.fanout import fan_out


def _cogs_if_eligible(db, shop_id: str, date_range: ReportRange) -> Decimal:
    if not aggregations.shop_needs_cogs(db, shop_id):
        return ZERO
    return aggregations.cogs_total(db, shop_id, date_range)


def _cogs_by_day_if_eligible(db, shop_id: str, date_range: ReportRange, tz: tzinfo) -> dict[date, Decimal]:
    if not aggregations.shop_needs_cogs(db, shop_id):
        return {}
    return aggregations.cogs_by_day(db, shop_id, date_range, tz)


def compose_profit(sales_total: float, expense_total: float, cogs: Decimal) -> ProfitSummary:
    cogs_value = aggregations.to_number(cogs)
    total_expense = expense_total + cogs_value
    return ProfitSummary(
        sales_total=sales_total,
        expense_total=expense_total,
        cogs=cogs_value,
        total_expense=total_expense,
        profit=sales_total - total_expense,
    )


def compose_trend(
    sales_by_day: dict[date, Decimal],
    expenses_by_day: dict[date, Decimal],
    cogs_by_day: dict[date, Decimal],
) -> list[ProfitTrendPoint]:
    days = sorted(set(sales_by_day) | set(expenses_by_day) | set(cogs_by_day))
    return [
        ProfitTrendPoint(
            date=day,
            sales=aggregations.to_number(sales_by_day.get(day, ZERO)),
            expense=aggregations.to_number(expenses_by_day.get(day, ZERO) + cogs_by_day.get(day, ZERO)),
        )
        for day in days
    ]


class ProfitComposer:
    def __init__(self, session_factory, *, tz: tzinfo | None = None, max_workers: int | None = None):
        self.session_factory = session_factory
        self.tz = tz
        self.max_workers = max_workers

    def _tz(self) -> tzinfo:
        return self.tz or business_timezone()

    def profit_summary(self, shop_id: str, date_range: ReportRange) -> ProfitSummary:
        results = fan_out(
            self.session_factory,
            {
                "sales": lambda db: aggregations.sales_summary(db, shop_id, date_range),
                "expense": lambda db: aggregations.expense_summary(db, shop_id, date_range),
                "cogs": lambda db: _cogs_if_eligible(db, shop_id, date_range),
            },
            max_workers=self.max_workers,
        )
        return compose_profit(results["sales"].total_amount, results["expense"].total_amount, results["cogs"])

    def profit_trend(self, shop_id: str, date_range: ReportRange) -> list[ProfitTrendPoint]:
        tz = self._tz()
        results = fan_out(
            self.session_factory,
            {
                "sales": lambda db: aggregations.sales_by_day(db, shop_id, date_range, tz),
                "expenses": lambda db: aggregations.expenses_by_day(db, shop_id, date_range, tz),
                "cogs": lambda db: _cogs_by_day_if_eligible(db, shop_id, date_range, tz),
            },
            max_workers=self.max_workers,
        )
        return compose_trend(results["sales"], results["expenses"], results["cogs"])
