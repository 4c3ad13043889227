import logging
import sys

from partnerhub.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER = "partnerhub"


def setup_logging(level: str | None = None) -> None:
    """Configure the ``partnerhub`` logger tree once per process.

    Called from the FastAPI lifespan hook and from Celery worker start-up.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))

    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # Keep SQL echo out of application logs unless explicitly requested
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
