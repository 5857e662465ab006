"""
SQLAlchemy engine factory for the registry store.
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from faa_registry.utils import logger
from faa_registry.ingestion.config import settings


def create_store_engine(url: str | None = None, echo: bool | None = None) -> Engine:
    """
    Create an engine for the configured store.

    For file-backed SQLite the parent directory is created if missing.

    Args:
        url: Database URL (defaults to settings)
        echo: Log emitted SQL (defaults to settings)
    """
    database_url = make_url(url or settings.database.url)

    if database_url.get_backend_name() == "sqlite" and database_url.database not in (None, "", ":memory:"):
        Path(database_url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        database_url,
        echo=settings.database.echo if echo is None else echo,
        pool_pre_ping=True,
    )
    logger.info(f"Registry store: {database_url.render_as_string(hide_password=True)}")
    return engine


__all__ = ["create_store_engine"]
