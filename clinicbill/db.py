import logging
import os

from alembic.config import Config
from sqlalchemy import Connection, create_engine, event
from sqlalchemy.engine import Engine

from alembic import command
from clinicbill.settings import settings

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_connection: Connection | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Discount rows cascade with their billing; SQLite only enforces that with the pragma on.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        if settings.db_url.startswith("sqlite"):
            _engine = create_engine(settings.db_url)
            event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            _engine = create_engine(settings.db_url, pool_pre_ping=True, pool_recycle=1800)
        logger.info("Database engine created for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_connection() -> Connection:
    """Return the process-wide connection shared by the CLI and the seed script.

    Repositories commit or roll back per operation on it, so one connection is
    enough for a single-user process.
    """
    global _connection
    if _connection is None:
        _connection = get_engine().connect()
        logger.debug("Shared DB connection opened")
    return _connection


def close_connection() -> None:
    global _connection
    if _connection is not None:
        _connection.close()
        _connection = None
        logger.debug("Shared DB connection closed")


def _get_alembic_config() -> Config:
    """Alembic config from the project alembic.ini, with an absolute script location."""
    project_root = os.path.dirname(os.path.dirname(__file__))
    ini_path = os.path.join(project_root, "alembic.ini")
    if not os.path.exists(ini_path):
        ini_path = os.path.join(os.getcwd(), "alembic.ini")
    cfg = Config(ini_path)
    cfg.set_main_option("script_location", os.path.join(project_root, "alembic"))
    return cfg


def initialize_db(revision: str = "head") -> None:
    """Upgrade the schema to ``revision``."""
    logger.info("Upgrading database schema to %s", revision)
    command.upgrade(_get_alembic_config(), revision)
    logger.info("Database schema is at %s", revision)
