"""
Database session management (SQLAlchemy)

PostgreSQL is the production store; SQLite is accepted for local runs and
tests. pysqlite opens transactions on its own and breaks SAVEPOINT, which
badge awards rely on, so SQLite engines hand BEGIN back to SQLAlchemy.
"""
import psycopg
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from kudipal.config import get_settings


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models
    """
    pass


# Singleton engine and session factory
_engine = None
_SessionLocal = None


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine for `url`, pool-sized from settings or SQLite-patched."""
    settings = get_settings()
    kwargs.setdefault("echo", settings.DB_ECHO)

    if make_url(url).get_backend_name() != "sqlite":
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
        kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
        return create_engine(url, **kwargs)

    # Sessions are handed across threads (TestClient, insight workers)
    engine = create_engine(url, connect_args={"check_same_thread": False}, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def get_engine():
    """Get or create SQLAlchemy engine (singleton)"""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().get_sqlalchemy_url())
    return _engine


def get_session_factory():
    """Get or create session factory (singleton)"""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_engine()
        _SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Session:
    """
    FastAPI dependency - opens a session and always closes it

    Usage:
        @app.get("/badges")
        def list_badges(db: Session = Depends(get_db)):
            ...
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Readiness check - PostgreSQL reachability over raw psycopg, other
    backends through the engine

    Raises:
        psycopg.OperationalError / sqlalchemy.exc.OperationalError: if the
        database is unavailable
    """
    settings = get_settings()
    if make_url(settings.get_sqlalchemy_url()).get_backend_name() != "postgresql":
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return

    with psycopg.connect(settings.DATABASE_URL, connect_timeout=3) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
            cur.fetchone()
