"""gunicorn.conf.py settings and worker hooks."""
import importlib.util
import pathlib
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock

CONF = pathlib.Path(__file__).resolve().parents[1] / "gunicorn.conf.py"


def load_conf(monkeypatch, **env):
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    spec = importlib.util.spec_from_file_location("gunicorn_conf", CONF)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_threaded_workers_and_timeout(monkeypatch):
    conf = load_conf(monkeypatch, PLANE_TIMEOUT="60", GUNICORN_THREADS="4")
    assert conf.worker_class == "gthread"
    assert conf.threads == 4
    assert conf.timeout == 90


def test_worker_exit_closes_services(monkeypatch):
    conf = load_conf(monkeypatch)
    services = MagicMock()
    fake_wsgi = SimpleNamespace(app=SimpleNamespace(extensions={"configmgr": services}))
    monkeypatch.setitem(sys.modules, "wsgi", fake_wsgi)
    worker = SimpleNamespace(log=MagicMock())

    conf.worker_exit(None, worker)

    services.close.assert_called_once_with()
