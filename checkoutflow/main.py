"""Checkout service wiring.

Builds the service graph from settings and runs the background
expiration sweeper for the lifetime of the hosting process.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog

from checkoutflow.application.checkout_service import CheckoutService
from checkoutflow.application.event_dispatcher import EventDispatcher
from checkoutflow.application.expiration_service import ExpirationSweeper
from checkoutflow.application.ports import ArticleDataPort, CheckoutSessionRepository
from checkoutflow.domain.clock import Clock, SystemClock
from checkoutflow.infrastructure.article_client import HttpArticleDataAdapter
from checkoutflow.infrastructure.config import Settings
from checkoutflow.infrastructure.config import settings as default_settings
from checkoutflow.infrastructure.logging_config import configure_logging
from checkoutflow.infrastructure.repository import InMemoryCheckoutSessionRepository

logger = structlog.get_logger()


@dataclass
class CheckoutApplication:
    """The wired-up checkout components."""

    settings: Settings
    repository: CheckoutSessionRepository
    article_data: ArticleDataPort
    dispatcher: EventDispatcher
    service: CheckoutService
    sweeper: ExpirationSweeper


def build_application(
    settings: Settings | None = None,
    repository: CheckoutSessionRepository | None = None,
    article_data: ArticleDataPort | None = None,
    clock: Clock | None = None,
) -> CheckoutApplication:
    """Wire repository, article data adapter, dispatcher, service and sweeper.

    Any component not passed in is created from ``settings``.
    """
    settings = settings or default_settings
    repository = repository or InMemoryCheckoutSessionRepository()
    article_data = article_data or HttpArticleDataAdapter(
        base_url=settings.article_service_url,
        timeout=settings.resolver_timeout_seconds,
    )
    clock = clock or SystemClock()
    dispatcher = EventDispatcher()

    return CheckoutApplication(
        settings=settings,
        repository=repository,
        article_data=article_data,
        dispatcher=dispatcher,
        service=CheckoutService(
            repository=repository,
            article_data=article_data,
            dispatcher=dispatcher,
            clock=clock,
            settings=settings,
        ),
        sweeper=ExpirationSweeper(
            repository=repository,
            dispatcher=dispatcher,
            clock=clock,
            idle_timeout=settings.session_idle_timeout,
        ),
    )


@asynccontextmanager
async def lifespan(app: CheckoutApplication) -> AsyncGenerator[CheckoutApplication, None]:
    """Run the expiration sweeper while the context is open.

    Args:
        app: The wired application.

    Yields:
        The same application, with the sweeper running.
    """
    configure_logging(app.settings.log_level, json=app.settings.log_json)
    logger.info(
        "Starting checkout service",
        idle_timeout_minutes=app.settings.session_idle_timeout_minutes,
        sweep_interval_seconds=app.settings.sweep_interval_seconds,
        block_on_price_change=app.settings.block_on_price_change,
    )

    stop = asyncio.Event()
    sweeper_task = asyncio.create_task(app.sweeper.run(app.settings.sweep_interval_seconds, stop))
    try:
        yield app
    finally:
        stop.set()
        await sweeper_task
        if isinstance(app.article_data, HttpArticleDataAdapter):
            await app.article_data.close()
        logger.info("Shutting down checkout service")
