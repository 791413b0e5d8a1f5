import uuid

import pytest

from app.shopbook.core.error_catalog import ErrorCatalog, ForbiddenError
from app.shopbook.core.security import Caller, create_caller_token
from app.shopbook.services.access_gate import (
    PermissionGate,
    assert_shop_access,
    has_permission,
    normalize_shop_id,
    resolve_caller,
)
from tests.report_helpers import create_shop


def test_resolve_caller_reads_claims():
    shop_id = str(uuid.uuid4())
    token = create_caller_token("user-1", roles=["staff"], permissions=["view_sales_report"], staff_shop_id=shop_id)
    caller = resolve_caller(token)
    assert caller.id == "user-1"
    assert caller.roles == ["staff"]
    assert caller.permissions == ["view_sales_report"]
    assert caller.staff_shop_id == shop_id


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_resolve_caller_rejects_missing_or_bad_tokens(token):
    with pytest.raises(ForbiddenError) as exc_info:
        resolve_caller(token)
    assert exc_info.value.error == ErrorCatalog.INVALID_TOKEN


def test_has_permission():
    assert has_permission(Caller(sub="u", permissions=["view_reports"]), "view_reports")
    assert not has_permission(Caller(sub="u", permissions=["view_reports"]), "view_profit_report")
    assert has_permission(Caller(sub="u", roles=["super_admin"]), "view_profit_report")
    assert not has_permission(None, "view_reports")


def test_normalize_shop_id():
    shop_id = uuid.uuid4()
    assert normalize_shop_id(str(shop_id).upper()) == str(shop_id)
    with pytest.raises(ForbiddenError):
        normalize_shop_id("shop-1")


def test_shop_access_rules(db_session):
    shop = create_shop(db_session)
    shop_id = str(shop.id)

    assert_shop_access(db_session, shop_id, Caller(sub=str(shop.owner_id)))
    assert_shop_access(db_session, shop_id, Caller(sub="someone", roles=["staff"], staff_shop_id=shop_id))
    assert_shop_access(db_session, str(uuid.uuid4()), Caller(sub="root", roles=["super_admin"]))

    with pytest.raises(ForbiddenError):
        assert_shop_access(db_session, shop_id, Caller(sub=str(uuid.uuid4())))
    with pytest.raises(ForbiddenError):
        assert_shop_access(db_session, shop_id, Caller(sub="someone", staff_shop_id=shop_id))
    with pytest.raises(ForbiddenError):
        assert_shop_access(
            db_session, shop_id, Caller(sub="someone", roles=["staff"], staff_shop_id=str(uuid.uuid4()))
        )
    with pytest.raises(ForbiddenError):
        assert_shop_access(db_session, str(uuid.uuid4()), Caller(sub=str(shop.owner_id)))


def test_gate_checks_permission_before_shop(db_session):
    shop = create_shop(db_session)
    gate = PermissionGate(db_session)

    owner = Caller(sub=str(shop.owner_id), permissions=["view_sales_report"])
    assert gate.authorize(owner, "sales_summary", str(shop.id)) == str(shop.id)

    with pytest.raises(ForbiddenError) as exc_info:
        gate.authorize(owner, "profit_summary", str(shop.id))
    assert exc_info.value.error == ErrorCatalog.PERMISSION_DENIED

    stranger = Caller(sub=str(uuid.uuid4()), permissions=["view_reports"])
    with pytest.raises(ForbiddenError) as exc_info:
        gate.authorize(stranger, "profit_summary", str(shop.id))
    assert exc_info.value.error == ErrorCatalog.SHOP_ACCESS_DENIED


def test_summary_bundle_requires_blanket_permission(db_session):
    shop = create_shop(db_session)
    gate = PermissionGate(db_session)
    narrow = Caller(sub=str(shop.owner_id), permissions=["view_sales_report", "view_profit_report"])
    with pytest.raises(ForbiddenError):
        gate.authorize(narrow, "summary_bundle", str(shop.id))

    blanket = Caller(sub=str(shop.owner_id), permissions=["view_reports"])
    assert gate.authorize(blanket, "summary_bundle", str(shop.id)) == str(shop.id)
