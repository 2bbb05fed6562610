# tests/conftest.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from post_emitter.context import AppContext, build_context
from post_emitter.core.settings import Settings
from post_emitter.db.session import SessionFactory, build_engine, build_session_factory, create_tables
from post_emitter.main import create_app
from post_emitter.schemas.operations import PostSnapshot
from post_emitter.services.crypto import CredentialVault
from post_emitter.services.delivery import DeliveryClient, load_delivery_config
from post_emitter.services.logs import DatabaseLogHandler, LogStore
from post_emitter.services.queue import ReplicationQueue
from post_emitter.services.receivers import ReceiverRegistry
from post_emitter.services.reports import ReportStore

TEST_DB_URL = "sqlite://"
TEST_SECRET = "test-installation-secret"

Handler = Callable[[httpx.Request], httpx.Response]


def ok_handler(request: httpx.Request) -> httpx.Response:
    """Receiver stub that accepts every request."""
    return httpx.Response(200, json={"success": True})


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url=TEST_DB_URL,
        installation_secret=TEST_SECRET,
        resolve_receiver_hosts=False,
        worker_enabled=False,
        delivery_backoff_base_seconds=0.5,
    )


@pytest.fixture()
def engine(test_settings: Settings) -> Iterator[Engine]:
    engine = build_engine(test_settings)
    create_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> SessionFactory:
    return build_session_factory(engine)


@pytest.fixture(autouse=True)
def detach_database_log_handlers() -> Iterator[None]:
    yield
    package_logger = logging.getLogger("post_emitter")
    for handler in list(package_logger.handlers):
        if isinstance(handler, DatabaseLogHandler):
            package_logger.removeHandler(handler)


@pytest.fixture()
def vault() -> CredentialVault:
    return CredentialVault(TEST_SECRET)


@pytest.fixture()
def registry(session_factory: SessionFactory, vault: CredentialVault) -> ReceiverRegistry:
    return ReceiverRegistry(session_factory, vault, cache_ttl=900, resolve_hosts=False)


@pytest.fixture()
def queue(session_factory: SessionFactory) -> ReplicationQueue:
    return ReplicationQueue(session_factory)


@pytest.fixture()
def reports(session_factory: SessionFactory) -> ReportStore:
    return ReportStore(session_factory)


@pytest.fixture()
def log_store(session_factory: SessionFactory) -> LogStore:
    return LogStore(session_factory)


@pytest.fixture()
def sleeps() -> list[float]:
    """Delays requested by delivery clients built from these fixtures."""
    return []


@pytest.fixture()
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture()
def make_delivery(
    test_settings: Settings, fake_sleep: Callable[[float], Any]
) -> Callable[[Handler], DeliveryClient]:
    """Build a delivery client whose receivers are answered by ``handler``."""

    def _make(handler: Handler) -> DeliveryClient:
        return DeliveryClient(
            load_delivery_config(test_settings),
            transport=httpx.MockTransport(handler),
            sleep=fake_sleep,
        )

    return _make


@pytest.fixture()
def receiver_handler() -> Handler:
    return ok_handler


@pytest.fixture()
def context(
    test_settings: Settings,
    receiver_handler: Handler,
    fake_sleep: Callable[[float], Any],
) -> Iterator[AppContext]:
    ctx = build_context(
        test_settings,
        delivery_transport=httpx.MockTransport(receiver_handler),
        sleep=fake_sleep,
    )
    try:
        yield ctx
    finally:
        ctx.engine.dispose()


@pytest.fixture()
def client(context: AppContext) -> Iterator[TestClient]:
    with TestClient(create_app(context), base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def post() -> PostSnapshot:
    return PostSnapshot(
        ID=42,
        title="Olá mundo",
        content="<p>Conteúdo [gallery ids=\"1,2\"]</p>",
        excerpt="Resumo",
        slug="ola-mundo",
        status="publish",
        categories=["Notícias"],
        tags=["exemplo"],
        origin_language="pt_BR",
        author="editor",
    )
