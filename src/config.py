"""Application configuration loaded from environment variables."""

import logging
import sys
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Nereid"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Cycle engine ---
    cycle_config_path: Path | None = None  # overrides the bundled cycle_config.yaml

    model_config = {"env_prefix": "NEREID_", "env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    """Send ``nereid.*`` logs to stdout in the standard format.

    Host applications call this once at startup; the engine itself only
    creates named loggers.
    """
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    logger = logging.getLogger("nereid")
    logger.setLevel(level)
    logger.info(
        "%s v%s starting (env=%s, log level %s)",
        settings.app_name,
        settings.app_version,
        settings.environment,
        logging.getLevelName(level),
    )
    return logger
