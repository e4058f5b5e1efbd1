from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.engines import EchoEngine
from app.services import tracking
from responder_main import create_application


class FakeMlflow:
    """Records the calls the tracking module makes against mlflow."""

    def __init__(self, fail_runs=False, experiment=None):
        self.fail_runs = fail_runs
        self.experiment = experiment
        self.tracking_uri = None
        self.created = []
        self.active_experiment = None
        self.params = []
        self.metrics = []
        self.tags = []

    def set_tracking_uri(self, uri):
        self.tracking_uri = uri

    def get_experiment_by_name(self, name):
        return self.experiment

    def create_experiment(self, name):
        self.created.append(name)

    def set_experiment(self, name):
        self.active_experiment = name

    @contextmanager
    def start_run(self):
        if self.fail_runs:
            raise ConnectionError("tracking server unreachable")
        yield SimpleNamespace(info=SimpleNamespace(run_id="run-1"))

    def log_params(self, params):
        self.params.append(params)

    def log_metrics(self, metrics):
        self.metrics.append(metrics)

    def set_tags(self, tags):
        self.tags.append(tags)


@pytest.fixture
def fake_mlflow(monkeypatch):
    fake = FakeMlflow()
    monkeypatch.setattr(settings, "MLFLOW_ENABLED", True)
    monkeypatch.setattr(tracking, "_get_mlflow", lambda: fake)
    return fake


def test_tracking_disabled_by_default(monkeypatch):
    monkeypatch.setattr(settings, "MLFLOW_ENABLED", False)
    assert tracking.setup_tracking() is False
    assert tracking.track_generation("EchoEngine", "fast", "acme", "hi", "hello", 1.0) is None


def test_setup_creates_missing_experiment(fake_mlflow):
    assert tracking.setup_tracking() is True
    assert fake_mlflow.tracking_uri == settings.MLFLOW_TRACKING_URI
    assert fake_mlflow.created == [tracking.EXPERIMENT_NAME]
    assert fake_mlflow.active_experiment == tracking.EXPERIMENT_NAME


def test_setup_reuses_existing_experiment(fake_mlflow):
    fake_mlflow.experiment = object()
    assert tracking.setup_tracking() is True
    assert fake_mlflow.created == []


def test_setup_without_mlflow_installed(monkeypatch):
    monkeypatch.setattr(settings, "MLFLOW_ENABLED", True)
    monkeypatch.setattr(tracking, "_get_mlflow", lambda: None)
    assert tracking.setup_tracking() is False
    assert tracking.track_generation("EchoEngine", "fast", "acme", "hi", "hello", 1.0) is None


def test_track_generation_logs_one_run(fake_mlflow):
    run_id = tracking.track_generation("EchoEngine", "slow", "acme", "hi", "hello", 12.5)

    assert run_id == "run-1"
    assert fake_mlflow.params == [{
        "engine": "EchoEngine",
        "mode": "slow",
        "tenant_id": "acme",
        "environment": settings.APP_ENV,
    }]
    assert fake_mlflow.metrics == [{
        "latency_ms": 12.5,
        "prompt_length": 2.0,
        "reply_length": 5.0,
    }]
    assert fake_mlflow.tags == [{"tenant_id": "acme", "source": "responder"}]


def test_track_generation_swallows_mlflow_errors(fake_mlflow):
    fake_mlflow.fail_runs = True
    assert tracking.track_generation("EchoEngine", "fast", "acme", "hi", "hello", 1.0) is None


def test_respond_succeeds_when_tracking_fails(fake_mlflow):
    fake_mlflow.fail_runs = True
    app = create_application(engine=EchoEngine())
    with TestClient(app) as client:
        resp = client.post("/respond", json={"text": "hi", "tenant_id": "acme"})

    assert resp.status_code == 200
    assert resp.json()["engine"] == "EchoEngine"
    assert fake_mlflow.created == [tracking.EXPERIMENT_NAME]
