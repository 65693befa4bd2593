"""Application entrypoint - aiohttp server for the access control API."""

import logging

import structlog
from aiohttp.web import Application, run_app

from access_control import bootstrap
from access_control.api.routes import error_middleware, setup_routes
from access_control.config import Settings, get_settings


def configure_logging(
    log_level: str = "INFO",
    log_file: str = "",
    log_file_max_bytes: int = 10_485_760,
    log_file_backup_count: int = 5,
) -> None:
    """Configure structlog and standard library logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file. Empty string = console only.
        log_file_max_bytes: Max size per log file before rotation (default: 10 MB)
        log_file_backup_count: Number of rotated backup files to keep (default: 5)
    """
    from logging.handlers import RotatingFileHandler
    from pathlib import Path

    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.root
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=log_file_max_bytes,
            backupCount=log_file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            # JSON lines in the log file, readable output on the console
            structlog.processors.JSONRenderer() if log_file else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


async def _on_startup(app: Application) -> None:
    await bootstrap.initialize(app["system"])


async def _on_cleanup(app: Application) -> None:
    await bootstrap.close(app["system"])


def create_app(settings: Settings | None = None) -> Application:
    """Create and configure the aiohttp application."""
    settings = settings or get_settings()

    app = Application(middlewares=[error_middleware])
    app["system"] = bootstrap.build_system(settings)
    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    setup_routes(app)
    return app


def main() -> None:
    """Run the access control server."""
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        log_file_max_bytes=settings.log_file_max_bytes,
        log_file_backup_count=settings.log_file_backup_count,
    )

    logger.info(
        "starting_access_control_server",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )

    app = create_app(settings)
    run_app(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
