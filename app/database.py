import logging

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    options = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        # Request handlers and the CSV import may touch the connection from worker threads
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Request-scoped session; always closed when the response is done."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _register_models() -> None:
    # Importing the models attaches their tables to Base.metadata
    from app.models import (  # noqa: F401
        AdminUser,
        Category,
        Profile,
        ProfileTag,
        SocialLink,
        Tag,
    )


def ensure_tables_exist() -> list[str]:
    """Create any missing tables without touching existing data. Returns the created table names."""
    _register_models()
    try:
        before = set(inspect(engine).get_table_names())
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Creating database tables failed")
        raise

    created = sorted(set(Base.metadata.tables.keys()) - before)
    if created:
        logger.info("Created missing DB tables: %s", ", ".join(created))
    else:
        logger.info("All DB tables already exist; no schema changes applied.")
    return created


def init_db() -> None:
    created = ensure_tables_exist()
    logger.info("Database initialized (%d new tables)", len(created))
