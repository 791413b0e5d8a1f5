"""Latency probe for the report endpoints of a running service.

Each report is requested once with ``fresh=1`` (cold) and then repeatedly from
the cache (warm), with the warm requests spread over a thread pool.
"""

from __future__ import annotations

import argparse
import json
import math
import sys
import time
import urllib.error
import urllib.parse
import urllib.request
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any

REPORTS = (
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
)


def percentile(values: list[float], p: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    k = (len(ordered) - 1) * p
    low = math.floor(k)
    high = math.ceil(k)
    if low == high:
        return ordered[int(k)]
    return ordered[low] * (high - k) + ordered[high] * (k - low)


def build_url(base_url: str, report: str, params: dict[str, str]) -> str:
    query = urllib.parse.urlencode({key: value for key, value in params.items() if value})
    return f"{base_url.rstrip('/')}/shopbook/reports/{report}?{query}"


def request_once(url: str, token: str, timeout_seconds: float) -> dict[str, Any]:
    started = time.perf_counter()
    status_code = 0
    error_text = ""
    try:
        req = urllib.request.Request(url=url, method="GET", headers={"Authorization": f"Bearer {token}"})
        with urllib.request.urlopen(req, timeout=timeout_seconds) as response:  # noqa: S310
            status_code = int(getattr(response, "status", 200))
            response.read()
    except urllib.error.HTTPError as exc:
        status_code = int(exc.code)
        error_text = str(exc.reason)
    except urllib.error.URLError as exc:
        error_text = str(exc.reason)
    return {
        "status_code": status_code,
        "ok": 200 <= status_code < 300,
        "latency_ms": round((time.perf_counter() - started) * 1000.0, 3),
        "error": error_text,
    }


def probe_report(base_url: str, report: str, params: dict[str, str], token: str, *, repeats: int, concurrency: int, timeout_seconds: float) -> dict[str, Any]:
    cold = request_once(build_url(base_url, report, {**params, "fresh": "1"}), token, timeout_seconds)
    warm_url = build_url(base_url, report, params)
    warm: list[dict[str, Any]] = []
    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as executor:
        futures = [executor.submit(request_once, warm_url, token, timeout_seconds) for _ in range(repeats)]
        for fut in as_completed(futures):
            warm.append(fut.result())
    latencies = [row["latency_ms"] for row in warm]
    return {
        "report": report,
        "cold_ms": cold["latency_ms"],
        "cold_status": cold["status_code"],
        "warm_p50_ms": round(percentile(latencies, 0.50), 3),
        "warm_p95_ms": round(percentile(latencies, 0.95), 3),
        "failures": sum(1 for row in warm if not row["ok"]) + (0 if cold["ok"] else 1),
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Report endpoint latency probe")
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--token", required=True)
    parser.add_argument("--shop-id", required=True)
    parser.add_argument("--from", dest="from_value", default="")
    parser.add_argument("--to", dest="to_value", default="")
    parser.add_argument("--repeats", type=int, default=20)
    parser.add_argument("--concurrency", type=int, default=4)
    parser.add_argument("--timeout-seconds", type=float, default=5.0)
    parser.add_argument("--output", default="")
    args = parser.parse_args()

    params = {"shop_id": args.shop_id, "from": args.from_value, "to": args.to_value}
    results = [
        probe_report(
            args.base_url,
            report,
            params,
            args.token,
            repeats=args.repeats,
            concurrency=args.concurrency,
            timeout_seconds=args.timeout_seconds,
        )
        for report in REPORTS
    ]
    failures = sum(row["failures"] for row in results)
    summary = {"result": "GO" if failures == 0 else "NO-GO", "failures": failures, "reports": results}

    text = json.dumps(summary, indent=2, sort_keys=True) + "\n"
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
    sys.stdout.write(text)
    return 0 if failures == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
