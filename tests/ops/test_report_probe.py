import importlib.util
from pathlib import Path

import pytest

_PATH = Path(__file__).resolve().parents[2] / "scripts" / "ops" / "report_probe.py"
_spec = importlib.util.spec_from_file_location("report_probe", _PATH)
report_probe = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(report_probe)


def test_percentile_interpolates():
    assert report_probe.percentile([], 0.95) == 0.0
    assert report_probe.percentile([10.0], 0.5) == 10.0
    assert report_probe.percentile([10.0, 20.0, 30.0, 40.0], 0.5) == pytest.approx(25.0)


def test_build_url_skips_empty_params():
    url = report_probe.build_url(
        "http://localhost:8000/", "sales-summary", {"shop_id": "abc", "from": "", "to": "2024-01-31"}
    )
    assert url == "http://localhost:8000/shopbook/reports/sales-summary?shop_id=abc&to=2024-01-31"


def test_probe_covers_every_cached_report():
    assert "profit-trend" in report_probe.REPORTS
    assert "sales" not in report_probe.REPORTS
