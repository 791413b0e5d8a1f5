from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, datetime, tzinfo
from decimal import Decimal

from app.shopbook.core.config import settings
from app.shopbook.db.models import CASH_ENTRY_IN, CASH_ENTRY_OUT, CashEntry, Expense, Product, Sale
from app.shopbook.repos.report_queries import ZERO, KeysetPage, ReportQueryRepository, SumCount, as_decimal
from app.shopbook.repos.shops import ShopRepository
from app.shopbook.schemas.reports import (
    CashRow,
    CashSummary,
    ExpenseRow,
    ExpenseSummary,
    LowStockRow,
    PaymentMethodRow,
    SaleRow,
    SalesSummary,
    TopProductRow,
)
from app.shopbook.services.date_range import ReportRange, business_date, ensure_utc

UNKNOWN_PRODUCT = "Unknown"


def to_number(value) -> float:
    """Decimal sums become floats only here, at the response boundary."""
    number = float(as_decimal(value))
    return number if math.isfinite(number) else 0.0


def shop_needs_cogs(db, shop_id: str) -> bool:
    business_type = ShopRepository(db).get_business_type(shop_id)
    if not business_type:
        return False
    return business_type in set(settings.REPORTS_COGS_BUSINESS_TYPES)


def sales_summary(db, shop_id: str, date_range: ReportRange | None) -> SalesSummary:
    repo = ReportQueryRepository(db)
    completed = repo.sales_sum_count(shop_id, date_range)
    voided = repo.voided_sales_count(shop_id, date_range)
    return SalesSummary(
        total_amount=to_number(completed.total),
        completed_count=completed.count,
        voided_count=voided,
    )


def expense_summary(db, shop_id: str, date_range: ReportRange | None) -> ExpenseSummary:
    totals = ReportQueryRepository(db).expenses_sum_count(shop_id, date_range)
    return ExpenseSummary(total_amount=to_number(totals.total), count=totals.count)


def cash_summary(db, shop_id: str, date_range: ReportRange | None) -> CashSummary:
    summary, _count = cash_summary_with_count(db, shop_id, date_range)
    return summary


def cash_summary_with_count(db, shop_id: str, date_range: ReportRange | None) -> tuple[CashSummary, int]:
    groups = ReportQueryRepository(db).cash_by_entry_type(shop_id, date_range)
    empty = SumCount(total=ZERO, count=0)
    total_in = groups.get(CASH_ENTRY_IN, empty).total
    total_out = groups.get(CASH_ENTRY_OUT, empty).total
    summary = CashSummary(
        total_in=to_number(total_in),
        total_out=to_number(total_out),
        balance=to_number(total_in - total_out),
    )
    return summary, sum(group.count for group in groups.values())


def cogs_total(db, shop_id: str, date_range: ReportRange | None) -> Decimal:
    return ReportQueryRepository(db).cogs_total(shop_id, date_range)


def _bucket_by_day(rows: list[tuple[datetime, Decimal]], tz: tzinfo) -> dict[date, Decimal]:
    buckets: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for at, amount in rows:
        buckets[business_date(at, tz)] += amount
    return dict(buckets)


def cogs_by_day(db, shop_id: str, date_range: ReportRange | None, tz: tzinfo) -> dict[date, Decimal]:
    return _bucket_by_day(ReportQueryRepository(db).cogs_per_sale(shop_id, date_range), tz)


def sales_by_day(db, shop_id: str, date_range: ReportRange | None, tz: tzinfo) -> dict[date, Decimal]:
    return _bucket_by_day(ReportQueryRepository(db).sale_amounts(shop_id, date_range), tz)


def expenses_by_day(db, shop_id: str, date_range: ReportRange | None, tz: tzinfo) -> dict[date, Decimal]:
    return _bucket_by_day(ReportQueryRepository(db).expense_amounts(shop_id, date_range), tz)


def payment_method_report(db, shop_id: str, date_range: ReportRange | None) -> list[PaymentMethodRow]:
    rows = ReportQueryRepository(db).sales_by_payment_method(shop_id, date_range)
    merged: dict[str, SumCount] = {}
    for method, totals in rows:
        name = method or settings.REPORTS_DEFAULT_PAYMENT_METHOD
        previous = merged.get(name)
        if previous is not None:
            totals = SumCount(total=previous.total + totals.total, count=previous.count + totals.count)
        merged[name] = totals
    ordered = sorted(merged.items(), key=lambda item: (-item[1].total, item[0]))
    return [PaymentMethodRow(name=name, value=to_number(totals.total), count=totals.count) for name, totals in ordered]


def top_products_report(db, shop_id: str, limit: int) -> list[TopProductRow]:
    repo = ReportQueryRepository(db)
    rows = repo.top_products(shop_id, limit)
    names = repo.product_names([product_id for product_id, _qty, _revenue in rows])
    return [
        TopProductRow(
            product_id=product_id,
            name=names.get(product_id, UNKNOWN_PRODUCT),
            qty=to_number(qty),
            revenue=to_number(revenue),
        )
        for product_id, qty, revenue in rows
    ]


def low_stock_report(db, shop_id: str, threshold: Decimal, limit: int) -> list[LowStockRow]:
    products = ReportQueryRepository(db).low_stock_products(shop_id, threshold, limit)
    return [_low_stock_row(product) for product in products]


def _low_stock_row(product: Product) -> LowStockRow:
    return LowStockRow(id=str(product.id), name=product.name, stock_qty=to_number(product.stock_qty))


def sale_row(sale: Sale) -> SaleRow:
    return SaleRow(
        id=str(sale.id),
        sale_date=ensure_utc(sale.sale_date),
        total_amount=to_number(sale.total_amount),
        status=sale.status,
        payment_method=sale.payment_method,
    )


def expense_row(expense: Expense) -> ExpenseRow:
    return ExpenseRow(
        id=str(expense.id),
        expense_date=ensure_utc(expense.expense_date),
        amount=to_number(expense.amount),
        category=expense.category,
        note=expense.note,
    )


def cash_row(entry: CashEntry) -> CashRow:
    return CashRow(
        id=str(entry.id),
        created_at=ensure_utc(entry.created_at),
        entry_type=entry.entry_type,
        amount=to_number(entry.amount),
        reason=entry.reason,
    )


def sales_page(db, shop_id, date_range, cursor, limit) -> tuple[list[SaleRow], KeysetPage]:
    page = ReportQueryRepository(db).sales_page(shop_id, date_range, cursor, limit)
    return [sale_row(row) for row in page.rows], page


def expenses_page(db, shop_id, date_range, cursor, limit) -> tuple[list[ExpenseRow], KeysetPage]:
    page = ReportQueryRepository(db).expenses_page(shop_id, date_range, cursor, limit)
    return [expense_row(row) for row in page.rows], page


def cash_page(db, shop_id, date_range, cursor, limit) -> tuple[list[CashRow], KeysetPage]:
    page = ReportQueryRepository(db).cash_page(shop_id, date_range, cursor, limit)
    return [cash_row(row) for row in page.rows], page
