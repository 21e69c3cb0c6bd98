"""Default run mode: wire components, start the scheduler and serve HTTP."""

import asyncio
from dataclasses import dataclass
import logging
from typing import Any

import httpx

from ..config import AppSettings
from ..db import AssetDatabase, KeyValueStore, ObjectDatabase, PostDatabase
from ..db.migrations import run_migrations
from ..db.sqlalchemy_core import SqlalchemyCore
from ..episode_importer import EpisodeImporter
from ..exceptions import DatabaseOperationError
from ..feed import CadenceAnalyzer, FeedFetcher, FeedService, ReconciliationEngine
from ..image_downloader import ImageDownloader
from ..jobs import (
    IMG_SAVE_OPTION,
    BackgroundJobQueue,
    Dispatcher,
    HttpDispatcher,
    LocalDispatcher,
    NonceSigner,
)
from ..jobs.handlers import TaskHandlers
from ..schedule import FeedScheduler
from ..server import create_server
from ..store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class Components:
    """Everything built at startup that the server and shutdown need."""

    db_core: SqlalchemyCore
    http_client: httpx.AsyncClient
    object_store: ObjectStore
    feed_service: FeedService
    job_queue: BackgroundJobQueue
    dispatcher: Dispatcher
    nonce_signer: NonceSigner
    scheduler: FeedScheduler


async def graceful_shutdown(components: Components | None) -> None:
    """Stop components in dependency order.

    Errors are logged and shutdown continues with the next component.
    """
    logger.info("Shutdown signal received.")
    if components is None:
        return

    try:
        await components.scheduler.stop(wait_for_jobs=True)
        logger.info("Scheduler shutdown completed.")
    except Exception as e:
        logger.error("Error shutting down scheduler.", exc_info=e)

    try:
        await components.dispatcher.close()
        await components.http_client.aclose()
    except Exception as e:
        logger.error("Error closing HTTP resources.", exc_info=e)

    try:
        await components.db_core.close()
        logger.info("Database connections closed.")
    except Exception as e:
        logger.error("Error closing database connections.", exc_info=e)

    logger.info("castline shutdown completed.")


async def _init(settings: AppSettings) -> Components:
    try:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        settings.images_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(
            "Failed to create data directory.",
            extra={"data_dir": str(settings.data_dir)},
            exc_info=e,
        )
        raise DatabaseOperationError("Failed to create data directory.") from e

    await run_migrations(settings.alembic_config, settings.db_path)

    db_core = SqlalchemyCore(settings.db_path)
    kv_store = KeyValueStore(db_core)
    object_db = ObjectDatabase(db_core)
    asset_db = AssetDatabase(db_core)
    post_db = PostDatabase(db_core)

    if await kv_store.get_option(IMG_SAVE_OPTION) is None:
        await kv_store.set_option(IMG_SAVE_OPTION, "yes" if settings.img_save else "no")

    http_client = httpx.AsyncClient(headers={"User-Agent": "castline/0.1.0"})
    nonce_signer = NonceSigner(settings.worker_secret)
    job_queue = BackgroundJobQueue(
        kv_store,
        nonce_signer,
        lock_ttl=settings.queue_lock_ttl,
        pause=settings.queue_pause,
        memory_limit=settings.memory_limit,
    )

    dispatcher: Dispatcher
    match settings.dispatch_mode:
        case "http":
            dispatcher = HttpDispatcher(http_client, settings.base_url, nonce_signer)
        case "local":
            dispatcher = LocalDispatcher(job_queue.maybe_handle, nonce_signer)
    job_queue.attach_dispatcher(dispatcher)

    object_store = ObjectStore(kv_store, object_db)
    feed_service = FeedService(
        store=object_store,
        fetcher=FeedFetcher(
            http_client,
            timeout=settings.fetch_timeout,
            check_cache_headers=settings.check_cache_headers,
        ),
        cadence=CadenceAnalyzer(),
        reconciler=ReconciliationEngine(keep_old=settings.keep_old),
        queue=job_queue,
        kv_store=kv_store,
        settings=settings,
    )

    image_downloader = ImageDownloader(http_client, settings.images_dir, asset_db)
    TaskHandlers(
        feed_service=feed_service,
        kv_store=kv_store,
        asset_db=asset_db,
        image_downloader=image_downloader,
        episode_importer=EpisodeImporter(post_db, image_downloader),
        settings=settings,
    ).register(job_queue)

    scheduler = FeedScheduler(
        feed_configs=settings.feeds,
        feed_service=feed_service,
        queue=job_queue,
        check_interval=settings.feed_check_interval,
        queue_tick=settings.queue_tick,
    )

    return Components(
        db_core=db_core,
        http_client=http_client,
        object_store=object_store,
        feed_service=feed_service,
        job_queue=job_queue,
        dispatcher=dispatcher,
        nonce_signer=nonce_signer,
        scheduler=scheduler,
    )


async def default(settings: AppSettings, log_config: dict[str, Any]) -> None:
    """Run the service until SIGINT/SIGTERM.

    Args:
        settings: Application settings.
        log_config: The dictConfig mapping, passed on to uvicorn.
    """
    logger.debug(
        "Starting castline.", extra={"config_file": str(settings.config_file)}
    )

    components: Components | None = None
    try:
        components = await _init(settings)
        server = create_server(
            settings=settings,
            feed_service=components.feed_service,
            object_store=components.object_store,
            job_queue=components.job_queue,
            nonce_signer=components.nonce_signer,
            log_config=log_config,
            shutdown_callback=lambda: graceful_shutdown(components),
        )

        logger.info(
            "Starting scheduler and HTTP server...",
            extra={
                "scheduled_feeds": components.scheduler.get_scheduled_feed_ids(),
                "server_host": settings.server_host,
                "server_port": settings.server_port,
            },
        )
        await components.scheduler.start()
        await components.job_queue.dispatch()

        # uvicorn handles SIGINT/SIGTERM and runs the shutdown callback.
        await asyncio.gather(server.serve())
    except Exception as e:
        logger.error("Unexpected error during execution.", exc_info=e)
        await graceful_shutdown(components)
