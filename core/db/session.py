from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from core.config import settings

SQLITE_BEGIN_OPTION = "sqlite_begin_mode"

# Execution options for a read-modify-write transaction. SQLite takes the
# write lock at BEGIN; other backends ignore the option.
WRITE_TRANSACTION_OPTIONS = {SQLITE_BEGIN_OPTION: "IMMEDIATE"}


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    pysqlite defers BEGIN until the first DML statement, which breaks
    SAVEPOINT and makes reads run outside the transaction. For SQLite we
    take over transaction control and emit BEGIN ourselves.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if ":memory:" not in url:
            # Readers must not block a writer's commit.
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION)
        conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")

    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


engine = build_engine(settings.DB_URL, echo=settings.DB_ECHO)
SessionLocal = build_sessionmaker(engine)
