from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, func, or_, select

from app.shopbook.db.models import (
    SALE_STATUS_VOIDED,
    CashEntry,
    Expense,
    Product,
    Sale,
    SaleItem,
)
from app.shopbook.services.cursors import ReportCursor
from app.shopbook.services.date_range import ReportRange

ZERO = Decimal("0")


@dataclass(frozen=True)
class SumCount:
    total: Decimal
    count: int


@dataclass(frozen=True)
class KeysetPage:
    rows: list
    has_more: bool
    next_cursor: ReportCursor | None


def as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        parsed = Decimal(str(value))
    except (ArithmeticError, ValueError):
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def _within(column, date_range: ReportRange | None) -> list:
    if date_range is None:
        return []
    return [column >= date_range.start_naive_utc, column <= date_range.end_naive_utc]


def _unit_cost():
    return func.coalesce(SaleItem.cost_at_sale, Product.buy_price, 0)


class ReportQueryRepository:
    """Read-only aggregate and keyset queries over one shop's ledger."""

    def __init__(self, db):
        self.db = db

    def sales_sum_count(self, shop_id: str, date_range: ReportRange | None) -> SumCount:
        stmt = select(func.sum(Sale.total_amount), func.count(Sale.id)).where(
            Sale.shop_id == shop_id,
            Sale.status != SALE_STATUS_VOIDED,
            *_within(Sale.sale_date, date_range),
        )
        total, count = self.db.execute(stmt).one()
        return SumCount(total=as_decimal(total), count=int(count or 0))

    def voided_sales_count(self, shop_id: str, date_range: ReportRange | None) -> int:
        stmt = select(func.count(Sale.id)).where(
            Sale.shop_id == shop_id,
            Sale.status == SALE_STATUS_VOIDED,
            *_within(Sale.sale_date, date_range),
        )
        return int(self.db.execute(stmt).scalar_one() or 0)

    def expenses_sum_count(self, shop_id: str, date_range: ReportRange | None) -> SumCount:
        stmt = select(func.sum(Expense.amount), func.count(Expense.id)).where(
            Expense.shop_id == shop_id,
            *_within(Expense.expense_date, date_range),
        )
        total, count = self.db.execute(stmt).one()
        return SumCount(total=as_decimal(total), count=int(count or 0))

    def cash_by_entry_type(self, shop_id: str, date_range: ReportRange | None) -> dict[str, SumCount]:
        stmt = (
            select(CashEntry.entry_type, func.sum(CashEntry.amount), func.count(CashEntry.id))
            .where(CashEntry.shop_id == shop_id, *_within(CashEntry.created_at, date_range))
            .group_by(CashEntry.entry_type)
        )
        return {
            str(entry_type).upper(): SumCount(total=as_decimal(total), count=int(count or 0))
            for entry_type, total, count in self.db.execute(stmt).all()
        }

    def cogs_total(self, shop_id: str, date_range: ReportRange | None) -> Decimal:
        stmt = (
            select(func.sum(SaleItem.quantity * _unit_cost()))
            .select_from(SaleItem)
            .join(Sale, Sale.id == SaleItem.sale_id)
            .outerjoin(Product, Product.id == SaleItem.product_id)
            .where(
                Sale.shop_id == shop_id,
                Sale.status != SALE_STATUS_VOIDED,
                *_within(Sale.sale_date, date_range),
            )
        )
        return as_decimal(self.db.execute(stmt).scalar_one())

    def cogs_per_sale(self, shop_id: str, date_range: ReportRange | None) -> list[tuple[datetime, Decimal]]:
        """COGS per sale with its instant; callers bucket the instants into business days."""
        stmt = (
            select(Sale.sale_date, func.sum(SaleItem.quantity * _unit_cost()))
            .select_from(SaleItem)
            .join(Sale, Sale.id == SaleItem.sale_id)
            .outerjoin(Product, Product.id == SaleItem.product_id)
            .where(
                Sale.shop_id == shop_id,
                Sale.status != SALE_STATUS_VOIDED,
                *_within(Sale.sale_date, date_range),
            )
            .group_by(Sale.id, Sale.sale_date)
        )
        return [(sale_date, as_decimal(total)) for sale_date, total in self.db.execute(stmt).all()]

    def sale_amounts(self, shop_id: str, date_range: ReportRange | None) -> list[tuple[datetime, Decimal]]:
        stmt = select(Sale.sale_date, Sale.total_amount).where(
            Sale.shop_id == shop_id,
            Sale.status != SALE_STATUS_VOIDED,
            *_within(Sale.sale_date, date_range),
        )
        return [(sale_date, as_decimal(total)) for sale_date, total in self.db.execute(stmt).all()]

    def expense_amounts(self, shop_id: str, date_range: ReportRange | None) -> list[tuple[datetime, Decimal]]:
        stmt = select(Expense.expense_date, Expense.amount).where(
            Expense.shop_id == shop_id,
            *_within(Expense.expense_date, date_range),
        )
        return [(expense_date, as_decimal(amount)) for expense_date, amount in self.db.execute(stmt).all()]

    def sales_by_payment_method(self, shop_id: str, date_range: ReportRange | None) -> list[tuple[str | None, SumCount]]:
        total = func.sum(Sale.total_amount)
        stmt = (
            select(Sale.payment_method, total, func.count(Sale.id))
            .where(
                Sale.shop_id == shop_id,
                Sale.status != SALE_STATUS_VOIDED,
                *_within(Sale.sale_date, date_range),
            )
            .group_by(Sale.payment_method)
            .order_by(total.desc(), Sale.payment_method)
        )
        return [
            (method, SumCount(total=as_decimal(amount), count=int(count or 0)))
            for method, amount, count in self.db.execute(stmt).all()
        ]

    def top_products(self, shop_id: str, limit: int) -> list[tuple[str, Decimal, Decimal]]:
        revenue = func.sum(SaleItem.line_total)
        stmt = (
            select(SaleItem.product_id, func.sum(SaleItem.quantity), revenue)
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(Sale.shop_id == shop_id, Sale.status != SALE_STATUS_VOIDED)
            .group_by(SaleItem.product_id)
            .order_by(revenue.desc(), SaleItem.product_id)
            .limit(limit)
        )
        return [
            (str(product_id), as_decimal(qty), as_decimal(line_total))
            for product_id, qty, line_total in self.db.execute(stmt).all()
        ]

    def product_names(self, product_ids: list[str]) -> dict[str, str]:
        if not product_ids:
            return {}
        stmt = select(Product.id, Product.name).where(Product.id.in_(product_ids))
        return {str(product_id): name for product_id, name in self.db.execute(stmt).all()}

    def low_stock_products(self, shop_id: str, threshold: Decimal, limit: int) -> list[Product]:
        stmt = (
            select(Product)
            .where(
                Product.shop_id == shop_id,
                Product.is_active.is_(True),
                Product.track_stock.is_(True),
                Product.stock_qty <= threshold,
            )
            .order_by(Product.stock_qty.asc(), Product.name.asc(), Product.id.asc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def sales_page(self, shop_id: str, date_range: ReportRange | None, cursor: ReportCursor | None, limit: int) -> KeysetPage:
        return self._keyset_page(
            Sale,
            Sale.sale_date,
            [Sale.shop_id == shop_id, Sale.status != SALE_STATUS_VOIDED],
            date_range,
            cursor,
            limit,
        )

    def expenses_page(self, shop_id: str, date_range: ReportRange | None, cursor: ReportCursor | None, limit: int) -> KeysetPage:
        return self._keyset_page(Expense, Expense.expense_date, [Expense.shop_id == shop_id], date_range, cursor, limit)

    def cash_page(self, shop_id: str, date_range: ReportRange | None, cursor: ReportCursor | None, limit: int) -> KeysetPage:
        return self._keyset_page(CashEntry, CashEntry.created_at, [CashEntry.shop_id == shop_id], date_range, cursor, limit)

    def _keyset_page(self, model, at_column, filters: list, date_range, cursor, limit: int) -> KeysetPage:
        conditions = [*filters, *_within(at_column, date_range)]
        if cursor is not None:
            cursor_at = cursor.at_naive_utc
            conditions.append(
                or_(
                    at_column < cursor_at,
                    and_(at_column == cursor_at, model.id < cursor.id),
                )
            )
        stmt = select(model).where(*conditions).order_by(at_column.desc(), model.id.desc()).limit(limit + 1)
        rows = list(self.db.execute(stmt).scalars().all())
        has_more = len(rows) > limit
        rows = rows[:limit]
        next_cursor = None
        if has_more and rows:
            last = rows[-1]
            next_cursor = ReportCursor(at=getattr(last, at_column.key), id=str(last.id))
        return KeysetPage(rows=rows, has_more=has_more, next_cursor=next_cursor)
