import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rest_bridge.config.schema import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: LoggingConfig) -> None:
    """Configure root logger with stderr console output and an optional rotating file."""
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    # Console handler; stdout belongs to the protocol stream
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    if not config.file:
        return

    # Rotating file handler
    log_path = Path(config.file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
