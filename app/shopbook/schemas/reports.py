from __future__ import annotations

import datetime as dt

from pydantic import BaseModel


class SalesSummary(BaseModel):
    total_amount: float
    completed_count: int
    voided_count: int


class ExpenseSummary(BaseModel):
    total_amount: float
    count: int


class CashSummary(BaseModel):
    total_in: float
    total_out: float
    balance: float


class ProfitSummary(BaseModel):
    sales_total: float
    expense_total: float
    cogs: float
    total_expense: float
    profit: float


class ProfitTrendPoint(BaseModel):
    date: dt.date
    sales: float
    expense: float


class PaymentMethodRow(BaseModel):
    name: str
    value: float
    count: int


class TopProductRow(BaseModel):
    product_id: str
    name: str
    qty: float
    revenue: float


class LowStockRow(BaseModel):
    id: str
    name: str
    stock_qty: float


class TodaySales(BaseModel):
    total: float
    count: int


class TodayExpenses(BaseModel):
    total: float
    count: int
    cogs: float


class TodayCash(BaseModel):
    cash_in: float
    cash_out: float
    balance: float
    count: int


class TodaySummary(BaseModel):
    business_date: dt.date
    sales: TodaySales
    expenses: TodayExpenses
    profit: float
    cash: TodayCash


class ReportSummaryBundle(BaseModel):
    sales: SalesSummary
    expense: ExpenseSummary
    cash: CashSummary
    profit: ProfitSummary


class CursorToken(BaseModel):
    at: dt.datetime
    id: str


class SaleRow(BaseModel):
    id: str
    sale_date: dt.datetime
    total_amount: float
    status: str
    payment_method: str | None


class ExpenseRow(BaseModel):
    id: str
    expense_date: dt.datetime
    amount: float
    category: str
    note: str | None


class CashRow(BaseModel):
    id: str
    created_at: dt.datetime
    entry_type: str
    amount: float
    reason: str | None


class PageLink(BaseModel):
    page: int
    cursors: str
    cursor_base: int


class PageNavigation(BaseModel):
    page: int
    cursor_base: int
    cursors: str
    next: PageLink | None
    prev: PageLink | None


class SalesPage(BaseModel):
    rows: list[SaleRow]
    next_cursor: CursorToken | None
    next_cursor_token: str | None
    has_more: bool
    navigation: PageNavigation


class ExpensesPage(BaseModel):
    rows: list[ExpenseRow]
    next_cursor: CursorToken | None
    next_cursor_token: str | None
    has_more: bool
    navigation: PageNavigation


class CashPage(BaseModel):
    rows: list[CashRow]
    next_cursor: CursorToken | None
    next_cursor_token: str | None
    has_more: bool
    navigation: PageNavigation
