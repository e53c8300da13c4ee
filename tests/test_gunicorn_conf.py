import importlib.util
from types import SimpleNamespace

import pytest

from conftest import ROOT


@pytest.fixture()
def gunicorn_conf():
    spec = importlib.util.spec_from_file_location("gunicorn_conf", ROOT / "gunicorn.conf.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def make_worker():
    messages = []
    log = SimpleNamespace(
        info=lambda msg: messages.append(("info", msg)),
        warning=lambda msg: messages.append(("warning", msg)),
    )
    return SimpleNamespace(log=log), messages


def test_points_at_app_factory(gunicorn_conf):
    assert gunicorn_conf.wsgi_app == "bulk_import.flask_app:create_app()"


def test_post_fork_reports_mounted_secrets(gunicorn_conf, monkeypatch, tmp_path):
    (tmp_path / "is_admin_password").write_text("pw")
    monkeypatch.setattr(gunicorn_conf, "SECRETS_DIR", tmp_path)
    monkeypatch.setenv("DEMO_MODE", "false")
    worker, messages = make_worker()

    gunicorn_conf.post_fork(None, worker)

    assert messages == [("info", f"Found 1 secrets in {tmp_path} (using mounted secrets)")]


def test_post_fork_falls_back_to_environment(gunicorn_conf, monkeypatch, tmp_path):
    monkeypatch.setattr(gunicorn_conf, "SECRETS_DIR", tmp_path / "missing")
    monkeypatch.setenv("DEMO_MODE", "true")
    worker, messages = make_worker()

    gunicorn_conf.post_fork(None, worker)

    assert [level for level, _ in messages] == ["warning", "info"]
    assert "environment" in messages[-1][1]
