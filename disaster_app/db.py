from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlmodel import SQLModel, Session, create_engine

from . import config

connect_args = {}
if config.DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared with the threadpool that runs sync routes
    connect_args = {"check_same_thread": False}

engine = create_engine(
    config.DATABASE_URL,
    echo=config.SQL_ECHO,
    connect_args=connect_args,
)


def create_db_and_tables() -> None:
    """Create all tables in the database if they don't exist."""
    # Importing models registers the tables on SQLModel.metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
