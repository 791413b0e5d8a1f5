from fastapi import Depends, Request

from app.shopbook.core.security import Caller, oauth2_scheme
from app.shopbook.db.session import get_db, get_session_factory
from app.shopbook.services.access_gate import resolve_caller
from app.shopbook.services.report_cache import ReportCache
from app.shopbook.services.reports import ReportService


def get_caller(request: Request, token: str | None = Depends(oauth2_scheme)) -> Caller:
    caller = resolve_caller(token)
    request.state.user_id = caller.id
    return caller


def get_report_cache(request: Request) -> ReportCache:
    return request.app.state.report_cache


def get_report_service(
    caller: Caller = Depends(get_caller),
    cache: ReportCache = Depends(get_report_cache),
    db=Depends(get_db),
) -> ReportService:
    return ReportService(db, caller=caller, cache=cache, session_factory=get_session_factory())


__all__ = [
    "get_caller",
    "get_report_cache",
    "get_report_service",
]
