"""
Database configuration and session management
"""
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL, STORE_TIMEOUT_SECONDS


# SQLite needs special connect args; Postgres does not
engine_kwargs = {"future": True, "pool_pre_ping": True}
if DATABASE_URL.startswith("sqlite"):
    # busy timeout bounds how long a writer waits on a locked database
    engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": STORE_TIMEOUT_SECONDS}
if ":memory:" not in DATABASE_URL and DATABASE_URL not in ("sqlite://", "sqlite:///"):
    engine_kwargs["pool_timeout"] = STORE_TIMEOUT_SECONDS

engine = create_engine(DATABASE_URL, **engine_kwargs)

if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite leaves FOREIGN KEY enforcement off per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create base class for models
Base = declarative_base()

# Dependency to get database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def session_scope():
    s = SessionLocal()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
