"""Application context wiring the services together."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx
from sqlalchemy import Engine

from post_emitter.core.logging import configure_logging
from post_emitter.core.settings import Settings
from post_emitter.db.session import (
    SessionFactory,
    build_engine,
    build_session_factory,
    create_tables,
)
from post_emitter.services.crypto import CredentialVault, build_vault, load_installation_secret
from post_emitter.services.delivery import DeliveryClient, SleepFunc, load_delivery_config
from post_emitter.services.events import PostEventHandler
from post_emitter.services.logs import LogStore
from post_emitter.services.processor import QueueProcessor, QueueWorker
from post_emitter.services.queue import ReplicationQueue
from post_emitter.services.receivers import ReceiverRegistry
from post_emitter.services.reports import ReportStore
from post_emitter.services.translation import Translator, load_translation_config

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Every long-lived component of a running service."""

    settings: Settings
    engine: Engine
    session_factory: SessionFactory
    vault: CredentialVault
    registry: ReceiverRegistry
    queue: ReplicationQueue
    reports: ReportStore
    log_store: LogStore
    delivery: DeliveryClient
    translator: Translator
    processor: QueueProcessor
    worker: QueueWorker
    events: PostEventHandler

    async def aclose(self) -> None:
        """Stop the worker and release HTTP clients."""
        await self.worker.stop()
        await self.delivery.close()
        await self.translator.close()


def build_context(
    settings: Settings,
    *,
    delivery_transport: httpx.AsyncBaseTransport | None = None,
    translation_transport: httpx.AsyncBaseTransport | None = None,
    sleep: SleepFunc | None = None,
    create_schema: bool = True,
) -> AppContext:
    """Create the engine, services and worker for ``settings``."""
    engine = build_engine(settings)
    if create_schema:
        create_tables(engine)
    session_factory = build_session_factory(engine)
    configure_logging(settings, session_factory)

    secret = load_installation_secret(session_factory, settings.installation_secret)
    vault = build_vault(settings, secret)

    registry = ReceiverRegistry(
        session_factory,
        vault,
        cache_ttl=settings.receivers_cache_ttl_seconds,
        resolve_hosts=settings.resolve_receiver_hosts,
    )
    queue = ReplicationQueue(session_factory)
    reports = ReportStore(
        session_factory, notification_ttl=settings.report_notification_ttl_seconds
    )
    log_store = LogStore(session_factory)

    delivery = DeliveryClient(
        load_delivery_config(settings),
        transport=delivery_transport,
        sleep=sleep or asyncio.sleep,
    )
    translator = Translator(load_translation_config(settings), transport=translation_transport)

    processor = QueueProcessor(
        queue,
        vault,
        delivery,
        reports,
        log_store,
        batch_size=settings.queue_batch_size,
        claim_timeout_seconds=settings.queue_claim_timeout_seconds,
        queue_retention_days=settings.queue_retention_days,
        log_retention_days=settings.log_retention_days,
    )
    worker = QueueWorker(
        processor,
        interval=settings.queue_process_interval_seconds,
        cleanup_interval=settings.cleanup_interval_seconds,
    )
    events = PostEventHandler(
        registry,
        queue,
        translator if settings.translation_enabled else None,
        origin_language=settings.origin_language,
        target_language=settings.target_language,
    )

    logger.debug("Application context built")
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        vault=vault,
        registry=registry,
        queue=queue,
        reports=reports,
        log_store=log_store,
        delivery=delivery,
        translator=translator,
        processor=processor,
        worker=worker,
        events=events,
    )
