"""In-process cache for computed reports.

Entries are keyed by ``(report, shop_id, from, to, *params)``, expire after a
short TTL and carry invalidation tags: the report's own tag plus the umbrella
``reports:summary`` tag. Writes to a domain (sales, expenses, cash, products)
purge every tag in that domain's group. A report value is a pure function of
its key, so two requests computing the same key at once simply both store it;
the later store wins.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Hashable

from app.shopbook.core.config import settings
from app.shopbook.core.metrics import metrics

UMBRELLA_TAG = "reports:summary"

REPORT_TAGS = {
    "sales_summary": "reports:sales-summary",
    "expense_summary": "reports:expense-summary",
    "cash_summary": "reports:cash-summary",
    "profit_summary": "reports:profit-summary",
    "profit_trend": "reports:profit-trend",
    "payment_methods": "reports:payment-method",
    "top_products": "reports:top-products",
    "low_stock": "reports:low-stock",
    "today_summary": "reports:today-summary",
    "summary_bundle": UMBRELLA_TAG,
}

DOMAIN_TAG_GROUPS = {
    "sales": (
        UMBRELLA_TAG,
        REPORT_TAGS["sales_summary"],
        REPORT_TAGS["cash_summary"],
        REPORT_TAGS["profit_summary"],
        REPORT_TAGS["payment_methods"],
        REPORT_TAGS["profit_trend"],
        REPORT_TAGS["top_products"],
        REPORT_TAGS["low_stock"],
        REPORT_TAGS["today_summary"],
    ),
    "expenses": (
        UMBRELLA_TAG,
        REPORT_TAGS["expense_summary"],
        REPORT_TAGS["cash_summary"],
        REPORT_TAGS["profit_summary"],
        REPORT_TAGS["profit_trend"],
        REPORT_TAGS["today_summary"],
    ),
    "cash": (
        UMBRELLA_TAG,
        REPORT_TAGS["cash_summary"],
        REPORT_TAGS["profit_summary"],
        REPORT_TAGS["today_summary"],
    ),
    "products": (
        REPORT_TAGS["low_stock"],
        REPORT_TAGS["top_products"],
    ),
}

CacheKey = tuple[Hashable, ...]


def report_tags(report: str) -> set[str]:
    return {REPORT_TAGS.get(report, f"reports:{report}"), UMBRELLA_TAG}


def cache_key(report: str, shop_id: str, range_from: str | None, range_to: str | None, *params: Hashable) -> CacheKey:
    return (report, str(shop_id), range_from, range_to, *params)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CachedReportEntry:
    key: CacheKey
    value: Any
    expires_at: datetime
    tags: frozenset[str] = field(default_factory=frozenset)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    invalidations: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "invalidations": self.invalidations,
        }


MISS = object()


class ReportCache:
    def __init__(
        self,
        *,
        ttl_seconds: int | None = None,
        max_entries: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else settings.REPORTS_CACHE_TTL_SECONDS)
        self._max_entries = max_entries if max_entries is not None else settings.REPORTS_CACHE_MAX_ENTRIES
        self._clock = clock or _utcnow
        self._entries: OrderedDict[CacheKey, CachedReportEntry] = OrderedDict()
        self._tags: dict[str, set[CacheKey]] = {}
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> Any:
        """Return the cached value, or ``MISS`` when absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats.misses += 1
                return MISS
            if entry.is_expired(now):
                self._drop(key)
                self.stats.evictions += 1
                self.stats.misses += 1
                return MISS
            self._entries.move_to_end(key)
            self.stats.hits += 1
            return entry.value

    def put(self, key: CacheKey, value: Any, tags: set[str] | frozenset[str] = frozenset()) -> None:
        entry = CachedReportEntry(key=key, value=value, expires_at=self._clock() + self._ttl, tags=frozenset(tags))
        with self._lock:
            if key in self._entries:
                self._drop(key)
            while self._max_entries > 0 and len(self._entries) >= self._max_entries:
                oldest = next(iter(self._entries))
                self._drop(oldest)
                self.stats.evictions += 1
            self._entries[key] = entry
            for tag in entry.tags:
                self._tags.setdefault(tag, set()).add(key)

    def get_or_compute(self, report: str, key: CacheKey, compute: Callable[[], Any]) -> tuple[Any, bool]:
        """Cached value for ``key`` or a fresh computation stored under it.

        Returns ``(value, cached)``. The compute runs outside the lock.
        """
        value = self.get(key)
        if value is not MISS:
            metrics.record_report_cache(report, "hit")
            return value, True
        metrics.record_report_cache(report, "miss")
        value = compute()
        self.put(key, value, report_tags(report))
        return value, False

    def invalidate_tag(self, tag: str) -> int:
        with self._lock:
            keys = self._tags.pop(tag, set())
            count = 0
            for key in keys:
                if key in self._entries:
                    self._drop(key)
                    count += 1
            self.stats.invalidations += count
        return count

    def invalidate_tags(self, tags) -> int:
        return sum(self.invalidate_tag(tag) for tag in tags)

    def invalidate_domain(self, domain: str) -> int:
        """Purge everything a write to ``domain`` can change."""
        tags = DOMAIN_TAG_GROUPS.get(domain)
        if tags is None:
            raise KeyError(f"unknown report domain: {domain}")
        count = self.invalidate_tags(tags)
        metrics.record_report_cache(domain, "invalidated", count)
        return count

    def invalidate_shop(self, shop_id: str) -> int:
        shop_id = str(shop_id)
        with self._lock:
            keys = [key for key in self._entries if len(key) > 1 and key[1] == shop_id]
            for key in keys:
                self._drop(key)
            self.stats.invalidations += len(keys)
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tags.clear()

    def _drop(self, key: CacheKey) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry.tags:
            keys = self._tags.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tags[tag]
