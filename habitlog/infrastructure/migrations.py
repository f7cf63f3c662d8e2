"""
Automatic schema migration.
Compares the mapped tables with the live SQLite schema and adds missing columns.
"""
import logging
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from habitlog.infrastructure.database import Base
from habitlog import models  # noqa: F401  registers all tables on Base

logger = logging.getLogger("habitlog.migrations")


def sqlalchemy_type_to_sqlite(sa_type) -> str:
    """Convert a SQLAlchemy column type to its SQLite storage class"""
    sa_type_upper = str(sa_type).upper()

    if 'INTEGER' in sa_type_upper or 'BOOLEAN' in sa_type_upper:
        return 'INTEGER'
    elif 'FLOAT' in sa_type_upper or 'NUMERIC' in sa_type_upper or 'REAL' in sa_type_upper:
        return 'REAL'
    # Strings, dates and datetimes are stored as text
    return 'TEXT'


def get_default_value(column) -> str:
    """Get a column's scalar default in SQL form, or NULL"""
    default = column.default
    if default is None or not hasattr(default, 'arg') or callable(default.arg):
        return 'NULL'

    value = default.arg
    if isinstance(value, bool):
        return '1' if value else '0'
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    return 'NULL'


def auto_migrate(engine: Engine) -> int:
    """
    Add columns that exist on the models but not in the database.

    Only SQLite is handled; other backends are expected to be migrated
    out of band.

    Returns:
        Number of columns added
    """
    if engine.dialect.name != "sqlite":
        logger.info(f"Skipping automatic migration for dialect '{engine.dialect.name}'")
        return 0

    logger.info("Starting automatic schema migration...")
    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()
    migrations_applied = 0

    with engine.begin() as conn:
        for table_name, table in Base.metadata.tables.items():
            if table_name not in existing_tables:
                logger.warning(f"Table '{table_name}' doesn't exist. Run Base.metadata.create_all() first.")
                continue

            existing_columns = {col["name"] for col in inspector.get_columns(table_name)}

            for column in table.columns:
                if column.name in existing_columns:
                    continue

                default_value = get_default_value(column)
                alter_sql = (
                    f"ALTER TABLE {table_name} ADD COLUMN {column.name} "
                    f"{sqlalchemy_type_to_sqlite(column.type)}"
                )
                if default_value != 'NULL':
                    alter_sql += f" DEFAULT {default_value}"
                    # SQLite needs a default to add a NOT NULL column
                    if not column.nullable:
                        alter_sql += " NOT NULL"

                logger.info(f"Adding column '{column.name}' to table '{table_name}'")
                logger.debug(f"SQL: {alter_sql}")
                conn.execute(text(alter_sql))
                migrations_applied += 1

    if migrations_applied > 0:
        logger.info(f"Migration completed: {migrations_applied} column(s) added")
    else:
        logger.info("Schema is up to date - no migrations needed")

    return migrations_applied
