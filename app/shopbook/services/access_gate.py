from __future__ import annotations

import logging
import uuid

from jose import JWTError
from pydantic import ValidationError as PydanticValidationError

from app.shopbook.core.error_catalog import ErrorCatalog, ForbiddenError
from app.shopbook.core.logging import REPORTS_LOGGER, log_event
from app.shopbook.core.metrics import metrics
from app.shopbook.core.security import STAFF_ROLE, Caller, decode_token
from app.shopbook.repos.shops import ShopRepository

logger = logging.getLogger(REPORTS_LOGGER)

BLANKET_PERMISSION = "view_reports"

REPORT_PERMISSIONS = {
    "sales_summary": "view_sales_report",
    "sales_page": "view_sales_report",
    "expense_summary": "view_expense_report",
    "expenses_page": "view_expense_report",
    "cash_summary": "view_cashbook_report",
    "cash_page": "view_cashbook_report",
    "profit_summary": "view_profit_report",
    "profit_trend": "view_profit_report",
    "payment_methods": "view_payment_method_report",
    "top_products": "view_top_products_report",
    "low_stock": "view_low_stock_report",
    "today_summary": "view_dashboard_summary",
    "summary_bundle": BLANKET_PERMISSION,
}


def resolve_caller(token: str | None) -> Caller:
    if not token:
        raise ForbiddenError(ErrorCatalog.INVALID_TOKEN)
    try:
        return Caller(**decode_token(token))
    except (JWTError, PydanticValidationError, TypeError) as exc:
        raise ForbiddenError(ErrorCatalog.INVALID_TOKEN) from exc


def has_permission(caller: Caller | None, permission: str) -> bool:
    if caller is None:
        return False
    if caller.is_super_admin:
        return True
    return permission in caller.permissions


def normalize_shop_id(shop_id) -> str:
    try:
        return str(uuid.UUID(str(shop_id)))
    except (TypeError, ValueError) as exc:
        raise ForbiddenError(ErrorCatalog.SHOP_ACCESS_DENIED) from exc


def assert_shop_access(db, shop_id: str, caller: Caller) -> None:
    if caller.is_super_admin:
        return
    shop = ShopRepository(db).get_by_id(shop_id)
    if shop is None:
        raise ForbiddenError(ErrorCatalog.SHOP_ACCESS_DENIED)
    if str(shop.owner_id) == str(caller.id):
        return
    if STAFF_ROLE in caller.roles and caller.staff_shop_id and normalize_shop_id(caller.staff_shop_id) == shop_id:
        return
    raise ForbiddenError(ErrorCatalog.SHOP_ACCESS_DENIED)


class PermissionGate:
    """Authorizes one report request before anything is computed."""

    def __init__(self, db):
        self.db = db

    def authorize(self, caller: Caller, report: str, shop_id) -> str:
        permission = REPORT_PERMISSIONS[report]
        if not (has_permission(caller, permission) or has_permission(caller, BLANKET_PERMISSION)):
            self._denied(caller, report, shop_id, "missing_permission")
            raise ForbiddenError(ErrorCatalog.PERMISSION_DENIED, details={"permission": permission})
        try:
            normalized = normalize_shop_id(shop_id)
            assert_shop_access(self.db, normalized, caller)
        except ForbiddenError:
            self._denied(caller, report, shop_id, "shop_access")
            raise
        return normalized

    @staticmethod
    def _denied(caller: Caller, report: str, shop_id, reason: str) -> None:
        metrics.increment_report_forbidden(reason)
        log_event(logger, "report_forbidden", report=report, shop_id=str(shop_id), user_id=caller.id, reason=reason)
