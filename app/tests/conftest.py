import os
_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret
os.environ.setdefault("ENV", "test")

import subprocess
import sys
from pathlib import Path

import httpx
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

PROJECT_ROOT = Path(__file__).resolve().parents[2]

TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite:///{PROJECT_ROOT / 'propgen_test.db'}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from app import database
from app.services import collaborators, webhook_notifier


def _ensure_database_exists(database_url: str) -> None:
    url = make_url(database_url)

    if url.drivername.startswith("sqlite"):
        if url.database and os.path.exists(url.database):
            os.remove(url.database)
        return

    if not url.drivername.startswith("postgresql"):
        return

    db_name = url.database
    admin_url = url.set(database="postgres")
    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")

    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": db_name},
            ).scalar()
            if not exists:
                safe_db_name = db_name.replace('"', '""')
                conn.execute(text(f'CREATE DATABASE "{safe_db_name}"'))
    finally:
        admin_engine.dispose()


def _empty_all_tables() -> None:
    with database.engine.begin() as conn:
        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database() -> None:
    _ensure_database_exists(TEST_DATABASE_URL)

    env = os.environ.copy()
    env["DATABASE_URL"] = TEST_DATABASE_URL

    subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        check=True,
        cwd=PROJECT_ROOT,
        env=env,
    )

    database.configure_database()


@pytest.fixture(scope="function", autouse=True)
def _truncate_tables_between_tests():
    _empty_all_tables()
    yield
    _empty_all_tables()


class RecordingTransport:
    """Routes outbound httpx requests to per-URL responders and keeps every request."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responders: dict[str, object] = {}

    def respond(self, url: str, status_code: int = 200, json=None, exc: Exception | None = None) -> None:
        def responder(request: httpx.Request) -> httpx.Response:
            if exc is not None:
                raise exc
            return httpx.Response(status_code, json=json if json is not None else {"ok": True})

        self.responders[url] = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.responders.get(str(request.url))
        if responder is None:
            return httpx.Response(404, json={"error": "no responder"})
        return responder(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def outbound(monkeypatch) -> RecordingTransport:
    """Stub every outbound HTTP call (webhooks and remote functions)."""
    transport = RecordingTransport()
    monkeypatch.setattr(webhook_notifier, "build_http_client", transport.client)
    monkeypatch.setattr(collaborators, "build_http_client", transport.client)
    monkeypatch.setenv("PROPGEN_FUNCTIONS_URL", "https://functions.test")
    monkeypatch.setenv("PROPGEN_SERVICE_KEY", "service-key")
    return transport
