from fastapi import FastAPI

from app.shopbook.api import api_router
from app.shopbook.core.config import settings
from app.shopbook.core.errors import setup_exception_handlers
from app.shopbook.core.logging import configure_logging
from app.shopbook.middleware.caller_context import CallerContextMiddleware
from app.shopbook.middleware.observability import ObservabilityMiddleware
from app.shopbook.middleware.trace import TraceIdMiddleware
from app.shopbook.services.report_cache import ReportCache


def create_app(report_cache: ReportCache | None = None) -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.state.report_cache = report_cache if report_cache is not None else ReportCache()
    app.add_middleware(CallerContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
