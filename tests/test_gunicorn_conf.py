import runpy
from pathlib import Path

CONF = Path(__file__).resolve().parent.parent / "gunicorn.conf.py"


def load(monkeypatch, **env):
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return runpy.run_path(str(CONF))


def test_defaults(monkeypatch):
    for name in ("GUNICORN_WORKERS", "GUNICORN_TIMEOUT", "GUNICORN_KEEPALIVE", "GUNICORN_BIND"):
        monkeypatch.delenv(name, raising=False)

    conf = load(monkeypatch)

    assert conf["wsgi_app"] == "hearth.wsgi:application"
    assert conf["bind"] == "0.0.0.0:8000"
    assert conf["workers"] == 2
    assert conf["timeout"] == 60
    assert conf["keepalive"] == 5
    # Only settings the API uses
    for unused in ("worker_connections", "max_requests", "proxy_protocol", "proc_name"):
        assert unused not in conf


def test_environment_overrides(monkeypatch):
    conf = load(monkeypatch, GUNICORN_WORKERS="4", GUNICORN_TIMEOUT="90", GUNICORN_BIND="127.0.0.1:9000")

    assert conf["workers"] == 4
    assert conf["timeout"] == 90
    assert conf["bind"] == "127.0.0.1:9000"
