import logging
from typing import List

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from limitbot.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# Optional columns introduced after the first schema. Older databases get them
# through ALTER TABLE ... ADD COLUMN; existing rows are never rewritten.
ADDITIVE_COLUMNS = {
    "orders": [
        ("usd_amount", "REAL"),
        ("sol_amount", "REAL"),
        ("slippage", "REAL"),
        ("executed_at", "DATETIME"),
        ("tx_signature", "VARCHAR"),
    ],
}


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def make_session_factory(bind):
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)


def init_db(bind=None) -> List[str]:
    """Create missing tables and add optional columns missing from older databases.

    Returns the added columns as ``table.column`` strings. Safe to run repeatedly.
    """
    bind = bind if bind is not None else engine
    # Import models so they're registered with SQLAlchemy
    from limitbot.models import order  # noqa: F401

    Base.metadata.create_all(bind=bind)

    added = []
    inspector = inspect(bind)
    with bind.begin() as conn:
        for table, columns in ADDITIVE_COLUMNS.items():
            existing = {col["name"] for col in inspector.get_columns(table)}
            for name, sql_type in columns:
                if name in existing:
                    continue
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {sql_type}"))
                logger.info("Added %s column to %s table", name, table)
                added.append(f"{table}.{name}")
    return added
