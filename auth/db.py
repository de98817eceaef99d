"""
auth/db.py -- SQLAlchemy Core schema and engine factory for auth entities.

Both auth tables live in one MetaData so a single create_all() call at
startup brings the schema up. The engine is created by the process entry
point (api/main.py lifespan, main.py CLI) and handed to UserStore and
TokenAllowList; neither store creates or disposes engines on its own.

Tables:
  users            -- one row per Principal. email and phone_number are each
                      UNIQUE; SQLite and PostgreSQL both allow many NULLs
                      under a UNIQUE constraint, so phone-only and email-only
                      principals coexist.
  token_allowlist  -- at most one row per principal (principal_id is the
                      primary key). expires_at is a UTC epoch float so the
                      "still active" comparison is plain numeric ordering on
                      every backend.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from sqlalchemy import Column, Float, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), unique=True),  # lower-cased on write
    Column("phone_number", String(32), unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(16), nullable=False, server_default="USER"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

token_allowlist = Table(
    "token_allowlist",
    metadata,
    Column("principal_id", String(36), primary_key=True),
    Column("token", Text, nullable=False, index=True),
    Column("expires_at", Float, nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def connect(db_url: str) -> Engine:
    """Create an engine for db_url and make sure the auth tables exist.

    The caller owns the returned engine and must dispose() it on shutdown.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    metadata.create_all(engine)
    return engine
