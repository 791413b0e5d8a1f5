from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.shopbook.core.errors import setup_exception_handlers, storage_error_from
from app.shopbook.core.error_catalog import ErrorCatalog
from app.shopbook.core.metrics import metrics


def test_lock_timeout_maps_to_conflict_and_metric():
    metrics.reset()
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/lock-timeout")
    def lock_timeout():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/lock-timeout")

    assert response.status_code == 409
    assert response.json()["code"] == "LOCK_TIMEOUT"

    content = metrics.render().content.decode("utf-8")
    if metrics.enabled:
        assert "lock_wait_timeout_total" in content
    else:
        assert "metrics_disabled" in content


def test_other_storage_failures_are_unavailable():
    error = storage_error_from(OperationalError("SELECT 1", {}, Exception("connection refused")))
    assert error.error == ErrorCatalog.DB_UNAVAILABLE
    assert error.error.status_code == 503
