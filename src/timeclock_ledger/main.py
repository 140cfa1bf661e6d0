from __future__ import annotations

import importlib
from typing import Optional

from dotenv import load_dotenv

from .common.log import configure_logging, get_logger
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables

logger = get_logger(__name__)


def create_container(settings_module: Optional[str] = None) -> Container:
    """Load settings for APP_ENV, set up logging and wire the services."""
    load_dotenv(override=False)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), json_format=bool(getattr(settings, "LOG_JSON", False)))

    backend = str(getattr(settings, "STORE_BACKEND", "memory"))
    db_config = getattr(settings, "DB_CONFIG", {})
    timezone = getattr(settings, "BUSINESS_TIMEZONE")

    container = build_container(backend=backend, db_config=db_config, timezone=timezone)

    if container.conn is not None and bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(container.conn)
        logger.debug("schema ready", extra={"tables": len(list_tables(container.conn))})

    logger.info(
        "ledger ready",
        extra={"settings": settings_module, "backend": backend, "timezone": timezone},
    )
    return container
