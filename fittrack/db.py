import logging

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from . import config

logger = logging.getLogger(__name__)

connect_args = {}
if config.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(
    config.DATABASE_URL,
    echo=config.SQL_ECHO,
    connect_args=connect_args,
)


# SQLite only enforces ON DELETE CASCADE with foreign keys switched on
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, _):
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()


def create_tables(bind: Engine) -> None:
    from . import models  # noqa: F401 registers tables with SQLModel metadata

    SQLModel.metadata.create_all(bind)


def init_db() -> None:
    logger.info("Initialising database at %s", config.DATABASE_URL.split("@")[-1])
    create_tables(engine)
    if config.SEED_LIBRARY:
        from .seed import seed_library

        with Session(engine) as session:
            seed_library(session)


def get_session():
    with Session(engine) as session:
        yield session
