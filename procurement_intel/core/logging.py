import sys

from loguru import logger

from .config import settings


def setup_logging(level: str | None = None, serialize: bool | None = None):
    """
    Configure the process-wide loguru logger.

    Structured context is passed as keyword arguments on each call
    (``logger.info("Cache hit", key=key)``) and lands in ``record["extra"]``,
    which the JSON sink serializes alongside the message.

    Args:
        level: Minimum log level (defaults to LOG_LEVEL)
        serialize: Emit JSON lines instead of text (defaults to LOG_JSON)

    Returns:
        The configured loguru logger
    """
    level = level or settings.log_level
    serialize = settings.log_json if serialize is None else serialize

    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        serialize=serialize,
        backtrace=False,
        diagnose=False,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
            "<level>{message}</level> | {extra}"
        ),
    )
    logger.debug("Logging configured", level=level, serialize=serialize, env=settings.app_env)
    return logger
