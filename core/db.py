# core/db.py
from __future__ import annotations
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from core.schema_registry import auto_discover, run_all

def get_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite:///"):
        db_file = db_url.replace("sqlite:///", "")
        if db_file and db_file != ":memory:":
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(db_url, future=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _sqlite_pragmas)
    return engine

def _sqlite_pragmas(dbapi_conn, _record):
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()

def init_db(engine: Engine) -> None:
    # 1) import every schemas/*.py so their installers register
    auto_discover("schemas")

    # 2) run all registered installers (idempotent CREATE IF NOT EXISTS)
    run_all(engine)
