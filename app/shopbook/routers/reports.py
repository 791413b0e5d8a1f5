from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.shopbook.core.deps import get_report_service
from app.shopbook.schemas.reports import (
    CashPage,
    CashSummary,
    ExpenseSummary,
    ExpensesPage,
    LowStockRow,
    PaymentMethodRow,
    ProfitSummary,
    ProfitTrendPoint,
    ReportSummaryBundle,
    SalesPage,
    SalesSummary,
    TodaySummary,
    TopProductRow,
)
from app.shopbook.services.reports import ReportService

router = APIRouter(prefix="/shopbook/reports")

# Filters are coerced rather than rejected: free text dates, cursors and limits.
ShopId = Annotated[str, Query(min_length=1)]
FromParam = Annotated[str | None, Query(alias="from")]
ToParam = Annotated[str | None, Query(alias="to")]
FreshParam = Annotated[bool, Query()]


@router.get("/sales-summary", response_model=SalesSummary)
def sales_summary(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.sales_summary(shop_id, from_value, to_value, fresh=fresh)


@router.get("/expense-summary", response_model=ExpenseSummary)
def expense_summary(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.expense_summary(shop_id, from_value, to_value, fresh=fresh)


@router.get("/cash-summary", response_model=CashSummary)
def cash_summary(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.cash_summary(shop_id, from_value, to_value, fresh=fresh)


@router.get("/profit-summary", response_model=ProfitSummary)
def profit_summary(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.profit_summary(shop_id, from_value, to_value, fresh=fresh)


@router.get("/profit-trend", response_model=list[ProfitTrendPoint])
def profit_trend(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.profit_trend(shop_id, from_value, to_value, fresh=fresh)


@router.get("/payment-methods", response_model=list[PaymentMethodRow])
def payment_methods(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.payment_methods(shop_id, from_value, to_value, fresh=fresh)


@router.get("/top-products", response_model=list[TopProductRow])
def top_products(
    shop_id: ShopId,
    limit: int | None = Query(None),
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.top_products(shop_id, limit, fresh=fresh)


@router.get("/low-stock", response_model=list[LowStockRow])
def low_stock(
    shop_id: ShopId,
    threshold: float | None = Query(None, ge=0),
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.low_stock(shop_id, threshold, fresh=fresh)


@router.get("/today-summary", response_model=TodaySummary)
def today_summary(
    shop_id: ShopId,
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.today_summary(shop_id, fresh=fresh)


@router.get("/summary", response_model=ReportSummaryBundle)
def summary_bundle(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    fresh: FreshParam = False,
    service: ReportService = Depends(get_report_service),
):
    return service.summary_bundle(shop_id, from_value, to_value, fresh=fresh)


@router.get("/sales", response_model=SalesPage)
def sales_page(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    limit: int | None = Query(None),
    cursor: str | None = Query(None),
    cursors: str | None = Query(None),
    page: int | None = Query(None),
    cursor_base: int | None = Query(None),
    service: ReportService = Depends(get_report_service),
):
    return service.sales_page(
        shop_id,
        from_value,
        to_value,
        limit=limit,
        cursor=cursor,
        cursors=cursors,
        page=page,
        cursor_base=cursor_base,
    )


@router.get("/expenses", response_model=ExpensesPage)
def expenses_page(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    limit: int | None = Query(None),
    cursor: str | None = Query(None),
    cursors: str | None = Query(None),
    page: int | None = Query(None),
    cursor_base: int | None = Query(None),
    service: ReportService = Depends(get_report_service),
):
    return service.expenses_page(
        shop_id,
        from_value,
        to_value,
        limit=limit,
        cursor=cursor,
        cursors=cursors,
        page=page,
        cursor_base=cursor_base,
    )


@router.get("/cash", response_model=CashPage)
def cash_page(
    shop_id: ShopId,
    from_value: FromParam = None,
    to_value: ToParam = None,
    limit: int | None = Query(None),
    cursor: str | None = Query(None),
    cursors: str | None = Query(None),
    page: int | None = Query(None),
    cursor_base: int | None = Query(None),
    service: ReportService = Depends(get_report_service),
):
    return service.cash_page(
        shop_id,
        from_value,
        to_value,
        limit=limit,
        cursor=cursor,
        cursors=cursors,
        page=page,
        cursor_base=cursor_base,
    )
