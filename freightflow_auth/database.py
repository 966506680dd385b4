# freightflow_auth/database.py
import logging
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

# Base class which all database models will inherit from
Base = declarative_base()


class Database:
    """Owns the engine and session factory for one database URL.

    Nothing is opened until ``connect()``; ``close()`` disposes the pool.
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def engine(self) -> Optional[Engine]:
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> None:
        if self._engine is not None:
            return

        url = make_url(self.url)
        # connect_args is ONLY needed for SQLite multithread safety
        connect_args = {}
        if url.get_backend_name() == "sqlite":
            connect_args = {"check_same_thread": False}
            if url.database and url.database != ":memory:":
                directory = os.path.dirname(url.database)
                if directory:
                    os.makedirs(directory, exist_ok=True)

        self._engine = create_engine(self.url, connect_args=connect_args)
        self._sessionmaker = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self._engine,
        )

        # Import models so they are registered on Base.metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self._engine)
        logger.info("Connected to DB: %s", url.render_as_string(hide_password=True))

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database connection closed")

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._sessionmaker()

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
