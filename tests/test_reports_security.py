import uuid

import pytest

from app.shopbook.core.error_catalog import ErrorCatalog
from tests.report_helpers import bearer, caller_headers, create_sale, create_shop, owner_headers, utc

REPORT_PATHS = [
    "sales-summary",
    "expense-summary",
    "cash-summary",
    "profit-summary",
    "profit-trend",
    "payment-methods",
    "top-products",
    "low-stock",
    "today-summary",
    "summary",
    "sales",
    "expenses",
    "cash",
]


@pytest.mark.parametrize("path", REPORT_PATHS)
def test_reports_require_identity(client, db_session, path):
    shop = create_shop(db_session)
    response = client.get(f"/shopbook/reports/{path}", params={"shop_id": str(shop.id)})
    assert response.status_code == 401
    assert response.json()["code"] == ErrorCatalog.INVALID_TOKEN.code

    garbage = client.get(
        f"/shopbook/reports/{path}", headers=bearer("not-a-token"), params={"shop_id": str(shop.id)}
    )
    assert garbage.status_code == 401


@pytest.mark.parametrize("path", REPORT_PATHS)
def test_reports_reject_foreign_shops(client, db_session, path, report_cache):
    shop = create_shop(db_session)
    create_sale(db_session, shop, at=utc(2024, 1, 1), total=100)
    stranger = caller_headers(uuid.uuid4())

    response = client.get(f"/shopbook/reports/{path}", headers=stranger, params={"shop_id": str(shop.id)})
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.SHOP_ACCESS_DENIED.code
    assert len(report_cache) == 0


def test_report_specific_permission(client, db_session):
    shop = create_shop(db_session)
    headers = owner_headers(shop, permissions=["view_sales_report"])
    params = {"shop_id": str(shop.id)}

    assert client.get("/shopbook/reports/sales-summary", headers=headers, params=params).status_code == 200
    assert client.get("/shopbook/reports/sales", headers=headers, params=params).status_code == 200

    denied = client.get("/shopbook/reports/profit-summary", headers=headers, params=params)
    assert denied.status_code == 403
    assert denied.json()["code"] == ErrorCatalog.PERMISSION_DENIED.code
    assert denied.json()["trace_id"]

    bundle = client.get("/shopbook/reports/summary", headers=headers, params=params)
    assert bundle.status_code == 403


def test_owner_without_any_permission_is_denied(client, db_session):
    shop = create_shop(db_session)
    response = client.get(
        "/shopbook/reports/cash-summary",
        headers=owner_headers(shop, permissions=[]),
        params={"shop_id": str(shop.id)},
    )
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.PERMISSION_DENIED.code


def test_staff_access_is_limited_to_their_shop(client, db_session):
    shop = create_shop(db_session)
    other = create_shop(db_session, name="Other")
    staff = caller_headers(uuid.uuid4(), roles=["staff"], staff_shop_id=str(shop.id))

    allowed = client.get("/shopbook/reports/sales-summary", headers=staff, params={"shop_id": str(shop.id)})
    assert allowed.status_code == 200

    denied = client.get("/shopbook/reports/sales-summary", headers=staff, params={"shop_id": str(other.id)})
    assert denied.status_code == 403


def test_super_admin_sees_any_shop(client, db_session):
    shop = create_shop(db_session)
    create_sale(db_session, shop, at=utc(2024, 1, 1), total=100)
    admin = caller_headers(uuid.uuid4(), roles=["super_admin"], permissions=[])

    response = client.get("/shopbook/reports/sales-summary", headers=admin, params={"shop_id": str(shop.id)})
    assert response.status_code == 200
    assert response.json()["total_amount"] == 100.0

    missing = client.get("/shopbook/reports/profit-summary", headers=admin, params={"shop_id": str(uuid.uuid4())})
    assert missing.status_code == 200
    assert missing.json()["profit"] == 0.0


def test_malformed_shop_id_is_denied(client, db_session):
    shop = create_shop(db_session)
    response = client.get(
        "/shopbook/reports/sales-summary",
        headers=owner_headers(shop),
        params={"shop_id": "not-a-shop"},
    )
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.SHOP_ACCESS_DENIED.code


def test_missing_shop_id_is_a_validation_error(client, db_session):
    shop = create_shop(db_session)
    response = client.get("/shopbook/reports/sales-summary", headers=owner_headers(shop))
    assert response.status_code == 422
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code
