import pytest

from app.shopbook.services import aggregations
from app.shopbook.services.date_range import resolve_list_range
from tests.report_helpers import (
    create_cash_entry,
    create_expense,
    create_product,
    create_sale,
    create_shop,
    owner_headers,
    utc,
)


def _get(client, path, shop, **params):
    return client.get(
        f"/shopbook/reports/{path}",
        headers=owner_headers(shop),
        params={"shop_id": str(shop.id), **params},
    )


def test_sales_summary_excludes_voided_sales(client, db_session):
    shop = create_shop(db_session, business_type="mini_grocery")
    rice = create_product(db_session, shop, name="Rice", buy_price=40, stock_qty=50)
    create_sale(
        db_session,
        shop,
        at=utc(2024, 1, 1, 4),
        total=300,
        items=[{"product": rice, "qty": 2, "line_total": 300, "cost_at_sale": 50}],
    )
    create_sale(db_session, shop, at=utc(2024, 1, 1, 6), total=200)
    create_sale(
        db_session,
        shop,
        at=utc(2024, 1, 1, 5),
        total=300,
        status="VOIDED",
        items=[{"product": rice, "qty": 5, "line_total": 300, "cost_at_sale": 10}],
    )
    create_sale(db_session, shop, at=utc(2024, 1, 2, 4), total=999)

    response = _get(client, "sales-summary", shop, **{"from": "2024-01-01", "to": "2024-01-01"})
    assert response.status_code == 200
    assert response.json() == {"total_amount": 500.0, "completed_count": 2, "voided_count": 1}

    day = resolve_list_range("2024-01-01", "2024-01-01")
    cogs = aggregations.cogs_total(db_session, str(shop.id), day)
    assert aggregations.to_number(cogs) == pytest.approx(100.0)


def test_date_only_filters_follow_business_day_boundaries(client, db_session):
    shop = create_shop(db_session)
    # 00:30 and 23:30 on 2024-01-01 in UTC+6.
    create_sale(db_session, shop, at=utc(2023, 12, 31, 18, 30), total=10)
    create_sale(db_session, shop, at=utc(2024, 1, 1, 17, 30), total=20)
    # 23:30 on 2023-12-31 and 00:30 on 2024-01-02 in UTC+6.
    create_sale(db_session, shop, at=utc(2023, 12, 31, 17, 30), total=400)
    create_sale(db_session, shop, at=utc(2024, 1, 1, 18, 30), total=800)

    response = _get(client, "sales-summary", shop, **{"from": "2024-01-01", "to": "2024-01-01"})
    assert response.json()["total_amount"] == pytest.approx(30.0)
    assert response.json()["completed_count"] == 2


def test_summaries_without_filters_are_unbounded(client, db_session):
    shop = create_shop(db_session)
    create_sale(db_session, shop, at=utc(2015, 6, 1), total=100)
    create_sale(db_session, shop, at=utc(2024, 6, 1), total=50)
    create_expense(db_session, shop, at=utc(2015, 6, 1), amount=30)

    sales = _get(client, "sales-summary", shop).json()
    assert sales["total_amount"] == pytest.approx(150.0)
    expenses = _get(client, "expense-summary", shop).json()
    assert expenses == {"total_amount": 30.0, "count": 1}


def test_expense_and_cash_summaries(client, db_session):
    shop = create_shop(db_session)
    create_expense(db_session, shop, at=utc(2024, 2, 1, 5), amount=120.5, category="rent")
    create_expense(db_session, shop, at=utc(2024, 2, 2, 5), amount=79.5, category="power")
    create_expense(db_session, shop, at=utc(2024, 5, 2, 5), amount=1000)
    create_cash_entry(db_session, shop, at=utc(2024, 2, 1, 5), entry_type="IN", amount=500)
    create_cash_entry(db_session, shop, at=utc(2024, 2, 1, 6), entry_type="IN", amount=100)
    create_cash_entry(db_session, shop, at=utc(2024, 2, 2, 6), entry_type="OUT", amount=150)

    window = {"from": "2024-02-01", "to": "2024-02-29"}
    expenses = _get(client, "expense-summary", shop, **window).json()
    assert expenses["total_amount"] == pytest.approx(200.0)
    assert expenses["count"] == 2

    cash = _get(client, "cash-summary", shop, **window).json()
    assert cash == {"total_in": 600.0, "total_out": 150.0, "balance": 450.0}


def test_empty_shop_yields_zeroes(client, db_session):
    shop = create_shop(db_session)
    assert _get(client, "sales-summary", shop).json() == {"total_amount": 0.0, "completed_count": 0, "voided_count": 0}
    assert _get(client, "cash-summary", shop).json() == {"total_in": 0.0, "total_out": 0.0, "balance": 0.0}
    assert _get(client, "payment-methods", shop).json() == []
    assert _get(client, "profit-trend", shop).json() == []


def test_payment_method_report_groups_completed_sales(client, db_session):
    shop = create_shop(db_session)
    create_sale(db_session, shop, at=utc(2024, 3, 1, 4), total=300, payment_method="cash")
    create_sale(db_session, shop, at=utc(2024, 3, 1, 5), total=200, payment_method="bkash")
    create_sale(db_session, shop, at=utc(2024, 3, 1, 6), total=50, payment_method=None)
    create_sale(db_session, shop, at=utc(2024, 3, 1, 7), total=900, payment_method="bkash", status="VOIDED")

    rows = _get(client, "payment-methods", shop, **{"from": "2024-03-01", "to": "2024-03-01"}).json()
    assert rows == [
        {"name": "cash", "value": 350.0, "count": 2},
        {"name": "bkash", "value": 200.0, "count": 1},
    ]


def test_top_products_ranked_by_revenue(client, db_session):
    shop = create_shop(db_session)
    rice = create_product(db_session, shop, name="Rice", buy_price=40)
    oil = create_product(db_session, shop, name="Oil", buy_price=150)
    create_sale(
        db_session,
        shop,
        at=utc(2024, 3, 1, 4),
        total=800,
        items=[
            {"product": rice, "qty": 2, "line_total": 300},
            {"product": oil, "qty": 1, "line_total": 500},
        ],
    )
    create_sale(
        db_session,
        shop,
        at=utc(2024, 3, 2, 4),
        total=5000,
        status="VOIDED",
        items=[{"product": rice, "qty": 50, "line_total": 5000}],
    )

    rows = _get(client, "top-products", shop).json()
    assert [row["name"] for row in rows] == ["Oil", "Rice"]
    assert rows[1] == {"product_id": str(rice.id), "name": "Rice", "qty": 2.0, "revenue": 300.0}

    limited = _get(client, "top-products", shop, limit=1).json()
    assert [row["name"] for row in limited] == ["Oil"]

    clamped = _get(client, "top-products", shop, limit=0).json()
    assert len(clamped) == 1


def test_low_stock_lists_active_tracked_products(client, db_session):
    shop = create_shop(db_session)
    create_product(db_session, shop, name="Salt", stock_qty=2)
    create_product(db_session, shop, name="Sugar", stock_qty=5)
    create_product(db_session, shop, name="Flour", stock_qty=20)
    create_product(db_session, shop, name="Service", stock_qty=1, track_stock=False)
    create_product(db_session, shop, name="Retired", stock_qty=0, is_active=False)

    rows = _get(client, "low-stock", shop).json()
    assert [(row["name"], row["stock_qty"]) for row in rows] == [("Salt", 2.0), ("Sugar", 5.0)]

    tight = _get(client, "low-stock", shop, threshold=3).json()
    assert [row["name"] for row in tight] == ["Salt"]


@pytest.mark.parametrize(
    "bounds",
    [
        {"to": "0001-02-01"},
        {"from": "0001-01-01"},
        {"from": "0001-01-01T00:00:00+06:00", "to": "9999-12-31T23:00:00-05:00"},
    ],
)
def test_dates_at_the_calendar_edges_are_coerced(client, db_session, bounds):
    shop = create_shop(db_session)
    create_sale(db_session, shop, at=utc(2024, 1, 1, 4), total=100)

    for path in ("sales-summary", "expense-summary", "profit-summary", "profit-trend", "sales"):
        assert _get(client, path, shop, **bounds).status_code == 200
