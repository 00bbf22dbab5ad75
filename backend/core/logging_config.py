import sys
from pathlib import Path

from loguru import logger

from core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level> | {extra}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message} | {extra}"


def setup_logging(level: str | None = None, log_dir: str | None = None):
    """Configure loguru: colored stdout plus optional rotating files."""
    logger.remove()

    logger.add(
        sys.stdout,
        format=LOG_FORMAT,
        level=(level or settings.log_level).upper(),
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    target = log_dir if log_dir is not None else settings.log_dir
    if not target:
        return

    path = Path(target)
    path.mkdir(parents=True, exist_ok=True)

    logger.add(
        path / "app.log",
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="1 day",
        retention="30 days",
        compression="zip",
    )
    logger.add(
        path / "errors.log",
        format=FILE_FORMAT,
        level="ERROR",
        rotation="1 day",
        retention="30 days",
        compression="zip",
    )


def get_logger(**context):
    """Logger bound with request/entity context (batch_id, run_id, ...)."""
    if context:
        return logger.bind(**context)
    return logger
