import sys
from pathlib import Path

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"

_configured = False


def configure_logging(level="INFO", log_dir=None):
    """Install the stderr sink and, when log_dir is given, a daily rotated file sink."""
    global _configured
    if _configured:
        return logger

    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    if log_dir:
        app_log_dir = Path(log_dir)
        app_log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            sink=str(app_log_dir / "app_{time:YYYY_MM_DD}.log"),
            rotation="00:00",
            retention="30 days",
            compression="zip",
            level=level,
            format=LOG_FORMAT,
            enqueue=True,
        )

    _configured = True
    return logger
