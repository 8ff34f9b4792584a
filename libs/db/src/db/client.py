"""Engine and session access for the account registry database.

A process talks to one registry database. The engine is created lazily from
``DATABASE_URL`` (or an explicit ``database_url=``) and pooled; each
annotation call borrows a session for the duration of its single lookup:

    with registry_session() as s:
        annotate_transactions(txs, SqlAccountRegistry(s))
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the pooled registry engine, creating it on first use.

    Asking for a URL other than the one the engine was built with is an error
    until :func:`dispose_engine` releases it.
    """

    global _ENGINE, _ENGINE_URL
    url = database_url or os.getenv("DATABASE_URL")
    if _ENGINE is None:
        if not url:
            raise RuntimeError("DATABASE_URL is not set; cannot reach the account registry")
        _ENGINE = create_engine(url, pool_pre_ping=True)
        _ENGINE_URL = url
    elif url and url != _ENGINE_URL:
        raise RuntimeError(
            f"registry engine is bound to {_ENGINE.url!r}; dispose_engine() before switching"
        )
    return _ENGINE


@contextmanager
def registry_session(*, database_url: str | None = None) -> Iterator[Session]:
    """Yield a session on the registry engine; commit on success, roll back on error."""

    with Session(get_engine(database_url=database_url), expire_on_commit=False) as session:
        with session.begin():
            yield session


def dispose_engine() -> None:
    """Close pooled connections and drop the engine (used between test databases)."""

    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


__all__ = [
    "get_engine",
    "registry_session",
    "dispose_engine",
]
