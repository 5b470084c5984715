"""Engine construction and the uvicorn entry point."""
import threading

from sqlalchemy import text
from sqlalchemy.pool import NullPool

import run_server
from bizops.core.config import settings
from bizops.db.session import is_sqlite, make_engine


def test_sqlite_urls_are_recognised():
    assert is_sqlite("sqlite:///./bizops.db")
    assert is_sqlite("sqlite://")
    assert not is_sqlite("postgresql://user:pw@db/bizops")


def test_sqlite_engine_is_unpooled_and_usable_across_threads(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'records.db'}")
    assert isinstance(engine.pool, NullPool)

    results = []

    def worker():
        with engine.connect() as conn:
            results.append(conn.execute(text("SELECT 1")).scalar())

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join()
    assert results == [1]
    engine.dispose()


def test_run_server_binds_configured_host_and_port(monkeypatch):
    calls = []
    monkeypatch.setattr(settings, "API_HOST", "0.0.0.0")
    monkeypatch.setattr(settings, "API_PORT", 8123)
    monkeypatch.setattr(settings, "LOG_LEVEL", "WARNING")
    monkeypatch.setattr(run_server.signal, "signal", lambda *args: None)
    monkeypatch.setattr(run_server.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    run_server.main()

    assert calls == [("bizops.main:app", {"host": "0.0.0.0", "port": 8123, "log_level": "warning"})]
