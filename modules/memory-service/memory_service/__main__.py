"""Process entry point: ``python -m memory_service`` or ``memory-service``."""

import logging
import sys

import uvicorn

from .app import create_app
from .config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    # Route uvicorn's own loggers through the same handler
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        framework_logger = logging.getLogger(name)
        framework_logger.handlers.clear()
        framework_logger.propagate = True


def main() -> None:
    settings = Settings.load()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logging.getLogger(__name__).info(
        "memory-service listening on %s:%d", settings.host, settings.port
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
