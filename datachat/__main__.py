import logging
import sys

import uvicorn

from datachat.core.config import load_settings
from datachat.core.errors import ConfigError
from datachat.core.logging import configure_logging
from datachat.main import create_app

logger = logging.getLogger("datachat")


def main() -> None:
    configure_logging()
    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.critical("Configuration error: %s", exc)
        sys.exit(1)

    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Server running on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
