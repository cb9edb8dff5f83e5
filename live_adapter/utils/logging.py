import logging
import sys


ROOT_LOGGER = "live-adapter"

# Backend transport loggers, silenced below WARNING unless debugging
TRANSPORT_LOGGERS = ("google_genai", "websockets", "httpx")


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Setup application logging."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if logger.level <= logging.DEBUG else logging.WARNING)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    # Console handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)
