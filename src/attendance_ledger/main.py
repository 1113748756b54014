from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv

from config import get_settings_module

from .container import Container, build_mysql_container
from .core.config import LedgerConfig
from .database.bootstrap import apply_schema, list_tables
from .logging_config import configure_logging
from .transactions.executor import RetryPolicy

logger = logging.getLogger(__name__)


def create_container(settings_module: Optional[str] = None) -> Container:
    """Wire the ledger against MySQL using the active settings module.

    ``APP_ENV`` picks the module unless one is given; values come from the
    environment, with ``.env`` loaded first.
    """
    load_dotenv(override=False)
    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)

    configure_logging(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        json_output=bool(getattr(settings, "LOG_JSON", True)),
    )

    db_config = dict(getattr(settings, "DB_CONFIG"))
    logger.info(
        "settings_loaded",
        extra={
            "settings": settings_module,
            "db": f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
        },
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        logger.info("schema_ready", extra={"tables": len(list_tables(db_config))})

    return build_mysql_container(
        db_config=db_config,
        config=LedgerConfig.from_settings(settings),
        retry_policy=RetryPolicy.from_settings(settings),
    )
