from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from fastapi import Request
from typing import Generator


class DatabaseClient:
    """
    Owns the engine and the session factory for one database URL.

    The application builds exactly one of these at startup and keeps it on
    app.state; request handlers receive sessions through get_db.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        connect_args = {}
        if url.startswith("sqlite"):
            # Sessions are handed across the threadpool used for sync endpoints
            connect_args["check_same_thread"] = False

        # 'pool_pre_ping=True' keeps long-lived pooled connections usable.
        self.engine = create_engine(
            url,
            pool_pre_ping=True,
            connect_args=connect_args,
            echo=echo,
        )

        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self):
        self.engine.dispose()


def get_db(request: Request) -> Generator:
    """
    Dependency generator for database sessions.
    This function creates a new session for each request and closes it afterwards.
    """
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
