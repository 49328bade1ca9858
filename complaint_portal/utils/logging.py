import json
import logging
import sys
from datetime import date
from pathlib import Path

from loguru import logger

from complaint_portal.config.settings import settings
from complaint_portal.utils.context import get_client_ip, get_request_id

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "{extra[request_id]} | {extra[client_ip]} | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[request_id]} | "
    "{extra[client_ip]} | {name}:{function}:{line} - {message}"
)

# Profiles are keyed by ENVIRONMENT; a profile without log_dir only logs to stdout
DEFAULT_PROFILES = {
    "development": {
        "log_dir": "logs",
        "filename": "complaints.log",
        "level": "debug",
        "rotation": "20 MB",
        "retention": "1 months",
    },
    "test": {"log_dir": None, "level": "warning"},
}

FRAMEWORK_LOGGERS = [
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "sqlalchemy.engine",
]


def _add_request_context(record):
    """Stamp every record with the request it was emitted for"""
    record["extra"]["request_id"] = get_request_id() or "app"
    record["extra"]["client_ip"] = get_client_ip() or "-"


class InterceptHandler(logging.Handler):
    """Forwards stdlib logging (uvicorn, SQLAlchemy) into loguru"""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def load_profile(config_path: Path, environment: str) -> dict:
    profiles = dict(DEFAULT_PROFILES)
    if config_path.exists():
        with open(config_path) as config_file:
            profiles.update(json.load(config_file))
    return profiles.get(environment) or profiles["development"]


def configure_logging(profile: dict, level: str = None):
    level = (level or profile.get("level", "info")).upper()

    logger.remove()
    logger.configure(
        extra={"request_id": "app", "client_ip": "-"},
        patcher=_add_request_context,
    )
    logger.add(
        sys.stdout,
        enqueue=True,
        backtrace=True,
        level=level,
        format=profile.get("console_format", CONSOLE_FORMAT),
        colorize=profile.get("colorize", True),
    )

    log_dir = profile.get("log_dir")
    if log_dir:
        sink = f"{log_dir}/{date.today():%Y-%m-%d}-{profile['filename']}"
        file_options = dict(
            rotation=profile.get("rotation"),
            retention=profile.get("retention"),
            enqueue=True,
            backtrace=True,
            level=level,
            colorize=False,
        )
        if profile.get("use_json_logs"):
            logger.add(sink, serialize=True, **file_options)
        else:
            file_format = profile.get("file_format", FILE_FORMAT)
            logger.add(sink, format=file_format, **file_options)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in FRAMEWORK_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]

    return logger


configure_logging(
    load_profile(Path(settings.LOG_CONFIG_PATH), settings.ENVIRONMENT),
    settings.LOG_LEVEL,
)


def get_logger():
    """Module logger; request id and client IP are filled in per record."""
    return logger
