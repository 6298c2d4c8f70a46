import logging
import sys

from sqlalchemy.exc import SQLAlchemyError
from telegram.ext import Application

from .bot.context import Services
from .bot.controller import Controller
from .bot.telegram import TelegramTransport, register_handlers
from .config import ConfigError, Settings, ensure_database_dir, load_settings
from .database import create_db_and_tables, make_engine
from .health import start_health_server
from .logger import setup_logging
from .services.challenge import ChallengeService
from .services.completion import CompletionService
from .services.notification import NotificationService
from .services.participant import ParticipantService
from .services.state import StateService
from .services.super_admin import SuperAdminService
from .services.task import TaskService
from .services.template import TemplateService

logger = logging.getLogger(__name__)


def build_services(engine) -> Services:
    return Services(
        challenges=ChallengeService(engine),
        tasks=TaskService(engine),
        participants=ParticipantService(engine),
        completions=CompletionService(engine),
        states=StateService(engine),
        super_admins=SuperAdminService(engine),
        templates=TemplateService(engine),
    )


def build_application(settings: Settings, engine) -> Application:
    services = build_services(engine)
    services.super_admins.seed_from_env(settings.super_admin_id)

    notifier = None

    async def post_init(application: Application) -> None:
        nonlocal notifier
        services.bot_username = application.bot.username or ""
        notifier = NotificationService(
            engine, transport, queue_size=settings.notify_queue_size, workers=settings.notify_workers
        )
        notifier.start()
        controller.notifier = notifier
        logger.info("Bot @%s started", services.bot_username)

    async def post_shutdown(application: Application) -> None:
        if notifier is not None:
            await notifier.stop()

    application = (
        Application.builder()
        .token(settings.telegram_bot_token)
        .concurrent_updates(True)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    transport = TelegramTransport(application.bot)
    controller = Controller(services, transport)
    register_handlers(application, controller)
    return application


def main() -> None:
    try:
        settings = load_settings()
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    setup_logging(settings.log_level)

    try:
        ensure_database_dir(settings.database_path)
        engine = make_engine(settings.database_url)
        create_db_and_tables(engine)
    except (OSError, SQLAlchemyError):
        logger.exception("Failed to open database at %s", settings.database_path)
        sys.exit(1)
    logger.info("Database initialized at %s", settings.database_path)

    if settings.health_port:
        start_health_server(settings.health_port)

    application = build_application(settings, engine)
    logger.info("Starting bot...")
    application.run_polling(timeout=settings.poll_timeout, allowed_updates=["message", "callback_query"])
    logger.info("Bot stopped")


if __name__ == "__main__":
    main()
