from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from patient_intake.core.config import get_settings


def build_engine(database_url: str) -> Engine:
    """
    Engine for the local backend.

    SQLite connections are shared with the threadpool that runs sync
    endpoints, so the same-thread check is turned off for it.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        future=True,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        future=True,
    )


settings = get_settings()

engine = build_engine(str(settings.database_url))

# Session factory
SessionLocal = build_session_factory(engine)

