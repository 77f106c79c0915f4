import json
from types import SimpleNamespace

from fastapi.responses import JSONResponse

from backend.app import main


def _req(request_id="rid-1"):
    return SimpleNamespace(state=SimpleNamespace(request_id=request_id), headers={})


def test_live_and_meta_do_not_touch_the_database(monkeypatch):
    def _boom():
        raise AssertionError("db should not be probed")

    monkeypatch.setattr(main, "_db_health", _boom)
    live = main.health_live(_req())
    assert live == {"status": "ok", "service": "triact-backend", "request_id": "rid-1"}

    meta = main.meta()
    assert meta["service"] == "triact-backend"
    assert meta["uptime_seconds"] >= 0


def test_ready_reports_db_up(monkeypatch):
    monkeypatch.setattr(main, "_db_health", lambda: (True, None))
    out = main.health_ready(_req())
    assert out["status"] == "ready"
    assert out["db"] == "ok"


def test_db_outage_is_503(monkeypatch):
    monkeypatch.setattr(main, "_db_health", lambda: (False, "connection refused"))
    monkeypatch.setattr(main.settings, "env", "prod")
    for route in (main.health, main.health_ready):
        resp = route(_req("rid-9"))
        assert isinstance(resp, JSONResponse)
        assert resp.status_code == 503
        body = json.loads(resp.body)
        assert body["status"] == "degraded"
        assert body["db"] == "down"
        assert body["request_id"] == "rid-9"
        assert "error" not in body
