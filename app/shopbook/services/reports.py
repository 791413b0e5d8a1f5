from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Any, Callable

from sqlalchemy.exc import DBAPIError

from app.shopbook.core.config import settings
from app.shopbook.core.errors import storage_error_from
from app.shopbook.core.logging import REPORTS_LOGGER, log_event
from app.shopbook.core.metrics import metrics
from app.shopbook.core.security import Caller
from app.shopbook.core.timing import get_query_time_ms, stopwatch
from app.shopbook.repos.report_queries import ZERO
from app.shopbook.schemas.reports import (
    CashPage,
    CashSummary,
    CursorToken,
    ExpenseSummary,
    ExpensesPage,
    LowStockRow,
    PageLink,
    PageNavigation,
    PaymentMethodRow,
    ProfitSummary,
    ProfitTrendPoint,
    ReportSummaryBundle,
    SalesPage,
    SalesSummary,
    TodayCash,
    TodayExpenses,
    TodaySales,
    TodaySummary,
    TopProductRow,
)
from app.shopbook.services import aggregations
from app.shopbook.services.access_gate import PermissionGate
from app.shopbook.services.cursors import (
    CursorPageState,
    build_cursor_page_state,
    decode_cursor,
    decode_cursor_list,
    encode_cursor,
    encode_cursor_list,
    normalize_cursor_page_state,
)
from app.shopbook.services.date_range import (
    business_timezone,
    now_utc,
    resolve_list_range,
    resolve_profit_range,
    today_range,
)
from app.shopbook.services.fanout import fan_out
from app.shopbook.services.profit import ProfitComposer, compose_profit
from app.shopbook.services.report_cache import ReportCache, cache_key

logger = logging.getLogger(REPORTS_LOGGER)


def clamp_limit(value: int | None, default: int, maximum: int) -> int:
    if value is None:
        return default
    return max(1, min(int(value), maximum))


class ReportService:
    """Public report entry points.

    Every call authorizes first, then serves from the cache (or computes fresh
    when asked), then resolves the range and queries storage.
    """

    def __init__(
        self,
        db,
        *,
        caller: Caller,
        cache: ReportCache,
        session_factory,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.caller = caller
        self.cache = cache
        self.session_factory = session_factory
        self.tz = tz or business_timezone()
        self.clock = clock or now_utc
        self.gate = PermissionGate(db)
        self.profit = ProfitComposer(session_factory, tz=self.tz)

    def _run(self, report: str, key: tuple, compute: Callable[[], Any], *, fresh: bool) -> Any:
        outcome = "fresh"
        with stopwatch() as watch:
            try:
                if fresh:
                    metrics.record_report_cache(report, "fresh")
                    value = compute()
                else:
                    value, cached = self.cache.get_or_compute(report, key, compute)
                    outcome = "hit" if cached else "miss"
            except DBAPIError as exc:
                raise storage_error_from(exc) from exc
        if outcome != "hit":
            metrics.observe_report_duration(report, watch.elapsed_ms)
        log_event(
            logger,
            "report_computed",
            report=report,
            shop_id=key[1],
            user_id=self.caller.id,
            cache=outcome,
            elapsed_ms=watch.elapsed_ms,
            query_ms=get_query_time_ms(),
        )
        return value

    def _uncached(self, report: str, shop_id: str, compute: Callable[[], Any]) -> Any:
        with stopwatch() as watch:
            try:
                value = compute()
            except DBAPIError as exc:
                raise storage_error_from(exc) from exc
        log_event(
            logger,
            "report_computed",
            report=report,
            shop_id=shop_id,
            user_id=self.caller.id,
            cache="none",
            elapsed_ms=watch.elapsed_ms,
            query_ms=get_query_time_ms(),
        )
        return value

    def _list_range(self, from_value, to_value):
        return resolve_list_range(from_value, to_value, tz=self.tz, now=self.clock())

    def _profit_range(self, from_value, to_value):
        return resolve_profit_range(from_value, to_value, tz=self.tz, now=self.clock())

    # Summaries

    def sales_summary(self, shop_id, from_value=None, to_value=None, *, fresh: bool = False) -> SalesSummary:
        shop_id = self.gate.authorize(self.caller, "sales_summary", shop_id)

        def compute():
            return aggregations.sales_summary(self.db, shop_id, self._list_range(from_value, to_value))

        return self._run("sales_summary", cache_key("sales_summary", shop_id, from_value, to_value), compute, fresh=fresh)

    def expense_summary(self, shop_id, from_value=None, to_value=None, *, fresh: bool = False) -> ExpenseSummary:
        shop_id = self.gate.authorize(self.caller, "expense_summary", shop_id)

        def compute():
            return aggregations.expense_summary(self.db, shop_id, self._list_range(from_value, to_value))

        return self._run(
            "expense_summary", cache_key("expense_summary", shop_id, from_value, to_value), compute, fresh=fresh
        )

    def cash_summary(self, shop_id, from_value=None, to_value=None, *, fresh: bool = False) -> CashSummary:
        shop_id = self.gate.authorize(self.caller, "cash_summary", shop_id)

        def compute():
            return aggregations.cash_summary(self.db, shop_id, self._list_range(from_value, to_value))

        return self._run("cash_summary", cache_key("cash_summary", shop_id, from_value, to_value), compute, fresh=fresh)

    def profit_summary(self, shop_id, from_value=None, to_value=None, *, fresh: bool = False) -> ProfitSummary:
        shop_id = self.gate.authorize(self.caller, "profit_summary", shop_id)

        def compute():
            return self.profit.profit_summary(shop_id, self._profit_range(from_value, to_value))

        return self._run(
            "profit_summary", cache_key("profit_summary", shop_id, from_value, to_value), compute, fresh=fresh
        )

    def profit_trend(self, shop_id, from_value=None, to_value=None, *, fresh: bool = False) -> list[ProfitTrendPoint]:
        shop_id = self.gate.authorize(self.caller, "profit_trend", shop_id)

        def compute():
            return self.profit.profit_trend(shop_id, self._profit_range(from_value, to_value))

        return self._run("profit_trend", cache_key("profit_trend", shop_id, from_value, to_value), compute, fresh=fresh)

    def payment_methods(
        self, shop_id, from_value=None, to_value=None, *, fresh: bool = False
    ) -> list[PaymentMethodRow]:
        shop_id = self.gate.authorize(self.caller, "payment_methods", shop_id)

        def compute():
            return aggregations.payment_method_report(self.db, shop_id, self._list_range(from_value, to_value))

        return self._run(
            "payment_methods", cache_key("payment_methods", shop_id, from_value, to_value), compute, fresh=fresh
        )

    def top_products(self, shop_id, limit: int | None = None, *, fresh: bool = False) -> list[TopProductRow]:
        shop_id = self.gate.authorize(self.caller, "top_products", shop_id)
        maximum = settings.REPORTS_TOP_PRODUCTS_MAX_LIMIT
        safe_limit = clamp_limit(limit, maximum, maximum)

        def compute():
            return aggregations.top_products_report(self.db, shop_id, safe_limit)

        return self._run(
            "top_products", cache_key("top_products", shop_id, None, None, safe_limit), compute, fresh=fresh
        )

    def low_stock(self, shop_id, threshold: int | float | None = None, *, fresh: bool = False) -> list[LowStockRow]:
        shop_id = self.gate.authorize(self.caller, "low_stock", shop_id)
        if threshold is None:
            threshold = settings.REPORTS_LOW_STOCK_DEFAULT_THRESHOLD
        limit = settings.REPORTS_PAGE_MAX_LIMIT

        def compute():
            return aggregations.low_stock_report(self.db, shop_id, Decimal(str(threshold)), limit)

        return self._run("low_stock", cache_key("low_stock", shop_id, None, None, str(threshold)), compute, fresh=fresh)

    def today_summary(self, shop_id, *, fresh: bool = False) -> TodaySummary:
        shop_id = self.gate.authorize(self.caller, "today_summary", shop_id)
        day_range = today_range(self.tz, now=self.clock())
        business_day = day_range.start.astimezone(self.tz).date()

        def compute():
            results = fan_out(
                self.session_factory,
                {
                    "sales": lambda db: aggregations.sales_summary(db, shop_id, day_range),
                    "expenses": lambda db: aggregations.expense_summary(db, shop_id, day_range),
                    "cash": lambda db: aggregations.cash_summary_with_count(db, shop_id, day_range),
                    "cogs": lambda db: (
                        aggregations.cogs_total(db, shop_id, day_range)
                        if aggregations.shop_needs_cogs(db, shop_id)
                        else ZERO
                    ),
                },
            )
            sales = results["sales"]
            expenses = results["expenses"]
            cash, cash_count = results["cash"]
            cogs = aggregations.to_number(results["cogs"])
            return TodaySummary(
                business_date=business_day,
                sales=TodaySales(total=sales.total_amount, count=sales.completed_count),
                expenses=TodayExpenses(total=expenses.total_amount, count=expenses.count, cogs=cogs),
                profit=sales.total_amount - expenses.total_amount - cogs,
                cash=TodayCash(cash_in=cash.total_in, cash_out=cash.total_out, balance=cash.balance, count=cash_count),
            )

        key = cache_key("today_summary", shop_id, business_day.isoformat(), None)
        return self._run("today_summary", key, compute, fresh=fresh)

    def summary_bundle(self, shop_id, from_value=None, to_value=None, *, fresh: bool = False) -> ReportSummaryBundle:
        shop_id = self.gate.authorize(self.caller, "summary_bundle", shop_id)

        def compute():
            list_range = self._list_range(from_value, to_value)
            profit_range = self._profit_range(from_value, to_value)
            results = fan_out(
                self.session_factory,
                {
                    "sales": lambda db: aggregations.sales_summary(db, shop_id, list_range),
                    "expense": lambda db: aggregations.expense_summary(db, shop_id, list_range),
                    "cash": lambda db: aggregations.cash_summary(db, shop_id, list_range),
                    "profit": lambda db: self._profit_inline(db, shop_id, profit_range),
                },
            )
            return ReportSummaryBundle(**results)

        return self._run(
            "summary_bundle", cache_key("summary_bundle", shop_id, from_value, to_value), compute, fresh=fresh
        )

    @staticmethod
    def _profit_inline(db, shop_id: str, profit_range) -> ProfitSummary:
        sales = aggregations.sales_summary(db, shop_id, profit_range)
        expense = aggregations.expense_summary(db, shop_id, profit_range)
        cogs = aggregations.cogs_total(db, shop_id, profit_range) if aggregations.shop_needs_cogs(db, shop_id) else ZERO
        return compose_profit(sales.total_amount, expense.total_amount, cogs)

    # Pages

    def _page_state(self, page, cursors, cursor_base) -> CursorPageState:
        return normalize_cursor_page_state(
            page=page,
            cursors=decode_cursor_list(cursors),
            cursor_base=cursor_base,
            max_history=settings.REPORTS_CURSOR_HISTORY_MAX,
        )

    def _navigation(self, state: CursorPageState, next_cursor) -> PageNavigation:
        def link(target_page: int) -> PageLink | None:
            target = build_cursor_page_state(
                target_page=target_page,
                current_page=state.page,
                cursors=state.cursors,
                cursor_base=state.cursor_base,
                next_cursor=next_cursor,
                max_history=settings.REPORTS_CURSOR_HISTORY_MAX,
            )
            if target is None:
                return None
            return PageLink(page=target.page, cursors=encode_cursor_list(target.cursors), cursor_base=target.cursor_base)

        return PageNavigation(
            page=state.page,
            cursor_base=state.cursor_base,
            cursors=encode_cursor_list(state.cursors),
            next=link(state.page + 1) if next_cursor is not None else None,
            prev=link(state.page - 1) if state.page > 1 else None,
        )

    def _page(self, report: str, fetch, page_model, shop_id, from_value, to_value, *, limit, cursor, cursors, page, cursor_base):
        shop_id = self.gate.authorize(self.caller, report, shop_id)
        safe_limit = clamp_limit(limit, settings.REPORTS_PAGE_DEFAULT_LIMIT, settings.REPORTS_PAGE_MAX_LIMIT)
        state = self._page_state(page, cursors, cursor_base)
        # An explicit cursor wins over the one implied by the history.
        current = decode_cursor(cursor) if cursor else state.current_cursor

        def compute():
            rows, keyset = fetch(self.db, shop_id, self._list_range(from_value, to_value), current, safe_limit)
            next_cursor = keyset.next_cursor
            return page_model(
                rows=rows,
                next_cursor=CursorToken(**next_cursor.to_dict()) if next_cursor else None,
                next_cursor_token=encode_cursor(next_cursor),
                has_more=keyset.has_more,
                navigation=self._navigation(state, next_cursor),
            )

        return self._uncached(report, shop_id, compute)

    def sales_page(
        self, shop_id, from_value=None, to_value=None, *, limit=None, cursor=None, cursors=None, page=None, cursor_base=None
    ) -> SalesPage:
        return self._page(
            "sales_page",
            aggregations.sales_page,
            SalesPage,
            shop_id,
            from_value,
            to_value,
            limit=limit,
            cursor=cursor,
            cursors=cursors,
            page=page,
            cursor_base=cursor_base,
        )

    def expenses_page(
        self, shop_id, from_value=None, to_value=None, *, limit=None, cursor=None, cursors=None, page=None, cursor_base=None
    ) -> ExpensesPage:
        return self._page(
            "expenses_page",
            aggregations.expenses_page,
            ExpensesPage,
            shop_id,
            from_value,
            to_value,
            limit=limit,
            cursor=cursor,
            cursors=cursors,
            page=page,
            cursor_base=cursor_base,
        )

    def cash_page(
        self, shop_id, from_value=None, to_value=None, *, limit=None, cursor=None, cursors=None, page=None, cursor_base=None
    ) -> CashPage:
        return self._page(
            "cash_page",
            aggregations.cash_page,
            CashPage,
            shop_id,
            from_value,
            to_value,
            limit=limit,
            cursor=cursor,
            cursors=cursors,
            page=page,
            cursor_base=cursor_base,
        )
