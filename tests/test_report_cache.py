from datetime import datetime, timedelta, timezone

import pytest

from app.shopbook.services.report_cache import (
    DOMAIN_TAG_GROUPS,
    MISS,
    UMBRELLA_TAG,
    ReportCache,
    cache_key,
    report_tags,
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cache(clock):
    return ReportCache(ttl_seconds=30, max_entries=100, clock=clock)


def test_entries_expire_after_ttl(cache, clock):
    key = cache_key("sales_summary", "shop-1", "2024-01-01", "2024-01-31")
    cache.put(key, {"total": 1}, report_tags("sales_summary"))

    clock.advance(29)
    assert cache.get(key) == {"total": 1}

    clock.advance(1)
    assert cache.get(key) is MISS
    assert len(cache) == 0


def test_get_or_compute_only_computes_on_miss(cache):
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    key = cache_key("expense_summary", "shop-1", None, None)
    assert cache.get_or_compute("expense_summary", key, compute) == (1, False)
    assert cache.get_or_compute("expense_summary", key, compute) == (1, True)
    assert len(calls) == 1
    assert cache.stats.hits == 1


def test_keys_distinguish_shop_range_and_params(cache):
    cache.put(cache_key("top_products", "shop-1", None, None, 5), "five")
    cache.put(cache_key("top_products", "shop-1", None, None, 10), "ten")
    cache.put(cache_key("top_products", "shop-2", None, None, 5), "other shop")

    assert cache.get(cache_key("top_products", "shop-1", None, None, 5)) == "five"
    assert cache.get(cache_key("top_products", "shop-1", None, None, 10)) == "ten"
    assert cache.get(cache_key("top_products", "shop-2", None, None, 5)) == "other shop"


def test_report_tags_include_umbrella():
    assert report_tags("cash_summary") == {"reports:cash-summary", UMBRELLA_TAG}


def test_invalidate_tag_purges_only_tagged_entries(cache):
    sales_key = cache_key("sales_summary", "shop-1", None, None)
    low_stock_key = cache_key("low_stock", "shop-1", None, None, "10")
    cache.put(sales_key, 1, report_tags("sales_summary"))
    cache.put(low_stock_key, 2, report_tags("low_stock"))

    assert cache.invalidate_tag("reports:sales-summary") == 1
    assert cache.get(sales_key) is MISS
    assert cache.get(low_stock_key) == 2

    assert cache.invalidate_tag(UMBRELLA_TAG) == 1
    assert len(cache) == 0


def test_invalidate_domain_groups(cache):
    keys = {}
    for report in ("sales_summary", "expense_summary", "cash_summary", "low_stock", "top_products"):
        keys[report] = cache_key(report, "shop-1", None, None)
        cache.put(keys[report], report, report_tags(report))

    cache.invalidate_domain("products")
    assert cache.get(keys["low_stock"]) is MISS
    assert cache.get(keys["top_products"]) is MISS
    assert cache.get(keys["sales_summary"]) == "sales_summary"

    cache.invalidate_domain("cash")
    assert len(cache) == 0


def test_every_domain_group_contains_known_tags():
    assert set(DOMAIN_TAG_GROUPS) == {"sales", "expenses", "cash", "products"}
    assert UMBRELLA_TAG in DOMAIN_TAG_GROUPS["sales"]


def test_unknown_domain_is_rejected(cache):
    with pytest.raises(KeyError):
        cache.invalidate_domain("customers")


def test_max_entries_evicts_least_recently_used(clock):
    cache = ReportCache(ttl_seconds=30, max_entries=2, clock=clock)
    first = cache_key("sales_summary", "shop-1", None, None)
    second = cache_key("sales_summary", "shop-2", None, None)
    third = cache_key("sales_summary", "shop-3", None, None)
    cache.put(first, 1)
    cache.put(second, 2)
    assert cache.get(first) == 1
    cache.put(third, 3)

    assert cache.get(second) is MISS
    assert cache.get(first) == 1
    assert cache.get(third) == 3


def test_invalidate_shop_and_clear(cache):
    cache.put(cache_key("sales_summary", "shop-1", None, None), 1, report_tags("sales_summary"))
    cache.put(cache_key("cash_summary", "shop-1", None, None), 2, report_tags("cash_summary"))
    cache.put(cache_key("cash_summary", "shop-2", None, None), 3, report_tags("cash_summary"))

    assert cache.invalidate_shop("shop-1") == 2
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
    assert cache.invalidate_tag(UMBRELLA_TAG) == 0


def test_isolated_caches_do_not_share_state(clock):
    first = ReportCache(ttl_seconds=30, clock=clock)
    second = ReportCache(ttl_seconds=30, clock=clock)
    key = cache_key("sales_summary", "shop-1", None, None)
    first.put(key, 1)
    assert second.get(key) is MISS
