# app/database.py
from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

# ---------------------------------------------------------
# Engine construction
#
# - SQLite (default, tests): sessions may be opened in the threadpool and
#   used from the event loop by the GraphQL gateway, so the same-thread
#   check is disabled.
# - Anything else: pool_pre_ping=True to drop dead connections.
# ---------------------------------------------------------


def build_engine(database_url: str, **kwargs) -> Engine:
    if database_url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        return create_engine(database_url, echo=False, connect_args=connect_args, **kwargs)

    return create_engine(database_url, echo=False, pool_pre_ping=True, **kwargs)


def create_db_and_tables(engine: Engine) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session(request: Request):
    """
    FastAPI dependency that yields a SQLModel Session bound to the
    application's engine.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(request.app.state.engine) as session:
        yield session
