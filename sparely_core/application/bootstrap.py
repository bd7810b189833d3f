"""Process startup and per-user engine sessions"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import start_http_server
from sqlalchemy.orm import sessionmaker

from sparely_core.application.engine import SparelyEngine
from sparely_core.config import Settings, settings as default_settings
from sparely_core.infrastructure.database.session import build_engine, init_db
from sparely_core.infrastructure.observability.logging import setup_logging

logger = logging.getLogger(__name__)


def bootstrap(config: Settings = default_settings) -> sessionmaker:
    """
    Configure JSON logging, create missing tables and return a session factory
    bound to `config.database_url`. Starts the Prometheus exporter when
    `config.metrics_port` is set. Call once per process.
    """
    setup_logging(config.log_level, config.service_name)
    bind = build_engine(config.database_url)
    init_db(bind)
    if config.metrics_port:
        start_http_server(config.metrics_port)
    logger.info("Sparely core started", extra={"database": bind.url.render_as_string(hide_password=True)})
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


@contextmanager
def engine_session(
    user_id: str,
    session_factory: sessionmaker,
    config: Optional[Settings] = None,
) -> Iterator[SparelyEngine]:
    """Yield a SparelyEngine on a fresh session and always close it"""
    db = session_factory()
    try:
        yield SparelyEngine(db, user_id, config=config or default_settings)
    finally:
        db.close()
