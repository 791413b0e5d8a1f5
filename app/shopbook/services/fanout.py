from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable

from app.shopbook.core.config import settings

Branch = Callable[[Any], Any]


def fan_out(session_factory, branches: dict[str, Branch], *, max_workers: int | None = None) -> dict[str, Any]:
    """Run each branch on its own session and thread, then join them all.

    Nothing is returned until every branch has finished. When several branches
    fail, the first failing branch in declaration order is re-raised.
    """

    def run(branch: Branch):
        with session_factory() as db:
            return branch(db)

    workers = max(1, min(max_workers or settings.REPORTS_FANOUT_WORKERS, len(branches)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="report-fanout") as executor:
        futures = {name: executor.submit(run, branch) for name, branch in branches.items()}
        wait(futures.values())
    return {name: future.result() for name, future in futures.items()}
