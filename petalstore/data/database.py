# petalstore/data/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from petalstore.utils.settings import DATABASE_URL, REMOTE_TIMEOUT_SECONDS

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    #sqlite ignores ON DELETE rules unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str = DATABASE_URL, **kwargs):
    #every call carries a timeout, a timeout is an ordinary failure of the call
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": REMOTE_TIMEOUT_SECONDS}
    else:
        timeout_ms = int(REMOTE_TIMEOUT_SECONDS * 1000)
        connect_args = {
            "connect_timeout": int(REMOTE_TIMEOUT_SECONDS),
            "options": f"-c statement_timeout={timeout_ms}",
        }
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
