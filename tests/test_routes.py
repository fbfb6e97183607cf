import io
import os

from fastapi.testclient import TestClient
from api.main import app
import api.routes as routes
from facehand.backend import BackendLocked
from facehand.live import LoopStillStopping
from facehand.models import LiveStatus, TickSnapshot


class FakeLive:
    def __init__(self, fail=None):
        self.running = False
        self.backend = None
        self.fail = fail
        self.stopping = False
    def start(self, backend=None):
        if self.fail:
            raise self.fail
        self.running = True
        self.backend = backend or "cpu"
    def stop(self):
        self.running = False
    def status(self):
        return LiveStatus(running=self.running, backend=self.backend,
                          last_snapshot=TickSnapshot(ts=1.0, tick=1) if self.running else None)


def test_health():
    r = TestClient(app).get("/health")
    assert r.status_code == 200 and r.json() == {"status": "ok"}


def test_version(monkeypatch):
    monkeypatch.setattr(routes, "describe_environment",
                        lambda: {"versions": {"DeepFace": "x"}, "backend": "cpu", "flags": {}})
    r = TestClient(app).get("/version")
    assert r.status_code == 200
    assert r.json()["backend"] == "cpu"


def test_detect(monkeypatch):
    seen = {}
    def fake_analyze_image(path, settings):
        seen["path"] = path
        return {"source": "x.jpg", "width": 10, "height": 10, "faces": [], "hands": 0, "gesture": None}
    monkeypatch.setattr(routes, "analyze_image", fake_analyze_image)

    client = TestClient(app)
    r = client.post("/detect?backend=cpu", files={"file": ("x.jpg", io.BytesIO(b"jpegbytes"), "image/jpeg")})
    assert r.status_code == 200
    assert r.json()["faces"] == []
    assert seen["path"].endswith(".jpg")


def test_detect_unknown_backend(monkeypatch):
    monkeypatch.setattr(routes, "analyze_image", lambda *a, **k: {})
    client = TestClient(app)
    r = client.post("/detect?backend=webgl", files={"file": ("x.jpg", io.BytesIO(b"x"), "image/jpeg")})
    assert r.status_code == 400


def test_detect_failure_is_500(monkeypatch):
    def broken(path, settings):
        raise RuntimeError("Could not decode image")
    monkeypatch.setattr(routes, "analyze_image", broken)
    client = TestClient(app)
    r = client.post("/detect", files={"file": ("x.png", io.BytesIO(b"x"), "image/png")})
    assert r.status_code == 500
    assert "decode" in r.json()["detail"]


def test_live_start_status_stop(monkeypatch):
    monkeypatch.setattr(routes, "live_demo", FakeLive())
    client = TestClient(app)

    r = client.post("/live/start?backend=gpu")
    assert r.status_code == 200
    assert r.json() == {"status": "started", "backend": "gpu"}
    assert client.post("/live/start").json()["status"] == "already_running"

    body = client.get("/live/status").json()
    assert body["running"] is True
    assert body["last_snapshot"]["tick"] == 1

    assert client.post("/live/stop").json()["status"] == "stopped"
    assert client.post("/live/stop").json()["status"] == "not_running"


def test_live_start_bad_backend(monkeypatch):
    monkeypatch.setattr(routes, "live_demo", FakeLive(fail=ValueError("Unknown backend 'webgl'")))
    r = TestClient(app).post("/live/start?backend=webgl")
    assert r.status_code == 400


def test_live_start_camera_or_model_failure(monkeypatch):
    monkeypatch.setattr(routes, "live_demo", FakeLive(fail=RuntimeError("DeepFace import failed")))
    r = TestClient(app).post("/live/start")
    assert r.status_code == 500


def test_detect_other_backend_after_tensorflow_loaded(monkeypatch, fake_tensorflow):
    monkeypatch.setattr(routes, "analyze_image", lambda path, settings: {"faces": []})
    client = TestClient(app)
    r = client.post("/detect?backend=cpu", files={"file": ("x.jpg", io.BytesIO(b"x"), "image/jpeg")})
    assert r.status_code == 200

    r = client.post("/detect?backend=gpu", files={"file": ("x.jpg", io.BytesIO(b"x"), "image/jpeg")})
    assert r.status_code == 409
    assert "cpu" in r.json()["detail"]
    assert os.environ["CUDA_VISIBLE_DEVICES"] == "-1"


def test_live_start_backend_locked(monkeypatch):
    monkeypatch.setattr(routes, "live_demo", FakeLive(fail=BackendLocked("Backend is already 'cpu'")))
    r = TestClient(app).post("/live/start?backend=gpu")
    assert r.status_code == 409


def test_live_start_while_previous_loop_stopping(monkeypatch):
    monkeypatch.setattr(routes, "live_demo", FakeLive(fail=LoopStillStopping("still finishing")))
    r = TestClient(app).post("/live/start")
    assert r.status_code == 409


def test_live_stop_reports_unfinished_tick(monkeypatch):
    demo = FakeLive()
    demo.running = True
    def stop():
        demo.running = False
        demo.stopping = True
    demo.stop = stop
    monkeypatch.setattr(routes, "live_demo", demo)
    assert TestClient(app).post("/live/stop").json()["status"] == "stopping"
