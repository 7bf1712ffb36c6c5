from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from edtriage.config import Settings, settings


def _set_sqlite_pragmas(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


def get_engine(config: Settings = settings) -> Engine:
    is_sqlite = config.database_url.startswith("sqlite")
    if is_sqlite:
        # The sqlite driver waits up to `timeout` seconds on a locked database.
        connect_args: dict[str, object] = {
            "check_same_thread": False,
            "timeout": config.store_timeout_seconds,
        }
        engine = create_engine(
            config.database_url,
            echo=config.echo_sql,
            future=True,
            connect_args=connect_args,
        )
        event.listen(engine, "connect", _set_sqlite_pragmas)
        return engine
    return create_engine(
        config.database_url,
        echo=config.echo_sql,
        future=True,
        pool_timeout=config.store_timeout_seconds,
        pool_pre_ping=True,
    )
