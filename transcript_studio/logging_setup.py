import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """Setup rotating file logger to <DATA_DIR>/meta/studio.log"""

    # Ensure log directory exists
    log_dir = Path(log_dir or os.path.join(os.getenv("DATA_DIR", "./data"), "meta"))
    log_dir.mkdir(parents=True, exist_ok=True)

    # Create logger
    logger = logging.getLogger("transcript_studio")
    logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    # Create rotating file handler
    log_file = log_dir / "studio.log"
    handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3
    )

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    handler.setFormatter(formatter)

    # Add handler to logger
    logger.addHandler(handler)

    # Also add console handler for development
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.info(f"Logging initialized. Log file: {log_file}")
    return logger


def log_exception(logger: logging.Logger, message: str) -> None:
    """Log an error message together with the active traceback"""
    logger.error(message, exc_info=True)
