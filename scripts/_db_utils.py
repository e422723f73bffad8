from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from sqlalchemy.orm import Session

from app.campus.db import create_db_engine


@contextmanager
def script_session(db_url: str) -> Generator[Session, None, None]:
    """Standalone session for release-phase scripts; no Flask app is built."""
    engine = create_db_engine(db_url)
    s = Session(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
