import logging

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from postapi.db.base import Base
from postapi.db.session import engine

logger = logging.getLogger(__name__)

VERSION_TABLE = "alembic_version"


def init_db(config_path: str = "alembic.ini", bind=None) -> None:
    """
    Initialize the database by running Alembic migrations.

    A database whose tables were already created at application startup has
    no version table yet; it is stamped at head instead of migrated.
    """
    bind = bind if bind is not None else engine
    try:
        alembic_cfg = Config(config_path)
        tables = set(inspect(bind).get_table_names())
        if tables & set(Base.metadata.tables) and VERSION_TABLE not in tables:
            command.stamp(alembic_cfg, "head")
            logger.info(f"Stamped existing tables {sorted(tables)} at the head revision")
        else:
            command.upgrade(alembic_cfg, "head")
            logger.info("Database migrations applied successfully")
    except Exception as e:
        logger.error(f"Error applying database migrations: {e}")
        raise


def create_all_tables(bind=None) -> set:
    """Create any missing tables and return the names of the ones created."""
    bind = bind if bind is not None else engine
    existing_tables = inspect(bind).get_table_names()

    Base.metadata.create_all(bind=bind)

    new_tables = set(inspect(bind).get_table_names()) - set(existing_tables)
    if new_tables:
        logger.info(f"Created new tables: {new_tables}")
    return new_tables


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Applying database migrations")
    init_db()
    logger.info("Database ready")
