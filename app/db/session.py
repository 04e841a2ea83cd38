# app/db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def make_engine(database_url: str):
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        # required for SQLite + threads; `timeout` bounds lock waits
        connect_args = {"check_same_thread": False, "timeout": settings.DB_TIMEOUT_SECONDS}
    else:
        connect_args = {"connect_timeout": settings.DB_TIMEOUT_SECONDS}

    eng = create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,  # safer reconnects
        future=True,
    )

    if is_sqlite:
        # Enforce foreign keys (cascade deletes) in SQLite
        @event.listens_for(eng, "connect")
        def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return eng


engine = make_engine(settings.DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    future=True,
)
