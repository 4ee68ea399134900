"""Generate database engine / sessions"""

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from chessbot.core.config import Settings
from chessbot.db.schema import Base


def create_db_engine(
    database_url: str, echo: bool = False, busy_timeout: float = 30.0, **kwargs
) -> Engine:
    """
    Create the engine for the store.

    For SQLite every transaction is opened with BEGIN IMMEDIATE, i.e. it takes the database's write lock up front.
    Transactions that read and then write (matchmaking, moves) are therefore serialized by the database itself,
    across threads and processes alike. Contenders wait up to busy_timeout seconds for the lock.
    Other databases run at SERIALIZABLE isolation (unless the caller asks otherwise) and rely on row locks.
    """
    if not database_url.startswith("sqlite"):
        kwargs.setdefault("isolation_level", "SERIALIZABLE")
        return create_engine(database_url, echo=echo, **kwargs)

    connect_args = kwargs.pop("connect_args", {})
    connect_args.setdefault("check_same_thread", False)
    connect_args.setdefault("timeout", busy_timeout)
    engine = create_engine(database_url, echo=echo, connect_args=connect_args, **kwargs)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        # let SQLAlchemy (not the sqlite3 module) decide when a transaction starts
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def engine_from_settings(settings: Settings) -> Engine:
    return create_db_engine(
        settings.database_url,
        echo=settings.echo_sql,
        busy_timeout=settings.sqlite_busy_timeout,
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Ensure all tables are created"""
    Base.metadata.create_all(bind=engine)
