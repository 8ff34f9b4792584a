# ruff: noqa: I001
"""Account registry lookups used to resolve control programs.

A registry answers one question for a whole batch: which of these control
programs belong to a known account, and what is that account's identity? Every
implementation resolves the full key set in a single logical round-trip.
Programs without a match are simply missing from the result.

Implementations:
- :class:`SqlAccountRegistry` reads the ``db`` library tables with one
  ``SELECT`` joining control programs to signers and accounts.
- :class:`StaticAccountRegistry` serves rows already held in memory.
"""

from __future__ import annotations

import json
from collections.abc import Collection, Iterable, Sequence
from typing import Any, Protocol

from sqlalchemy import ARRAY, ColumnElement, LargeBinary, String, any_, bindparam, func, select
from sqlalchemy.orm import Session

from db.models.accounts import Account, AccountControlProgram, Signer
from .logging_setup import get_logger
from .models import ResolvedProgram

_logger = get_logger("account_annotation.registry")


class AccountRegistry(Protocol):
    """Batched point lookup from control program to owning account."""

    def resolve(self, programs: Collection[bytes]) -> Sequence[ResolvedProgram]: ...


def normalize_tags(tags: Any | None) -> Any | None:
    """Return decoded tags, or ``None`` when the account carries none.

    Raw JSON blobs (``bytes``) are decoded; an empty blob counts as no tags.
    Already-structured values pass through unchanged.
    """

    if tags is None:
        return None
    if isinstance(tags, (bytes, bytearray, memoryview)):
        raw = bytes(tags)
        return json.loads(raw) if raw else None
    return tags


def program_filter(keys: Sequence[bytes], dialect_name: str) -> ColumnElement[bool]:
    """Return the ``WHERE`` clause matching ``keys`` with a single bind parameter.

    PostgreSQL receives the whole set as one ``bytea[]`` compared with
    ``= ANY(...)``. SQLite receives one JSON array of hex strings expanded by
    ``json_each``. Other dialects fall back to an expanding ``IN``, which binds
    one parameter per key.
    """

    column = AccountControlProgram.control_program
    if dialect_name == "postgresql":
        return column == any_(bindparam("programs", list(keys), type_=ARRAY(LargeBinary)))
    if dialect_name == "sqlite":
        # hex() yields upper-case digits; encode the keys the same way.
        payload = json.dumps([k.hex().upper() for k in keys])
        expanded = func.json_each(bindparam("programs", payload, type_=String)).table_valued(
            "value"
        )
        return func.hex(column).in_(select(expanded.c.value))
    return column.in_(list(keys))


class SqlAccountRegistry:
    """Resolve control programs against the account registry tables.

    The query left-joins ``signers`` and ``accounts`` so a program whose signer
    or account row is missing still resolves (to its signer id, with no alias
    and no tags). The caller owns the session and its transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def resolve(self, programs: Collection[bytes]) -> Sequence[ResolvedProgram]:
        keys = list(programs)
        if not keys:
            _logger.debug("No control programs to resolve; skipping registry query")
            return []

        acp = AccountControlProgram
        stmt = (
            select(acp.signer_id, acp.control_program, acp.change, Account.alias, Account.tags)
            .select_from(acp)
            .outerjoin(Signer, Signer.id == acp.signer_id)
            .outerjoin(Account, Account.account_id == Signer.id)
            .where(program_filter(keys, self._session.get_bind().dialect.name))
        )
        rows = self._session.execute(stmt).all()
        _logger.debug("Registry matched %d of %d control programs", len(rows), len(keys))
        return [
            ResolvedProgram(
                account_id=signer_id,
                control_program=bytes(program),
                is_change=bool(change),
                alias=alias,
                tags=normalize_tags(tags),
            )
            for signer_id, program, change, alias, tags in rows
        ]


class StaticAccountRegistry:
    """In-memory registry over a fixed set of rows keyed by control program."""

    def __init__(self, rows: Iterable[ResolvedProgram] = ()) -> None:
        self._rows: dict[bytes, ResolvedProgram] = {}
        for row in rows:
            self.add(row)

    def add(self, row: ResolvedProgram) -> None:
        """Register (or replace) the row for ``row.control_program``."""

        tags = normalize_tags(row.tags)
        if tags is not row.tags:
            row = ResolvedProgram(
                account_id=row.account_id,
                control_program=row.control_program,
                is_change=row.is_change,
                alias=row.alias,
                tags=tags,
            )
        self._rows[bytes(row.control_program)] = row

    def resolve(self, programs: Collection[bytes]) -> Sequence[ResolvedProgram]:
        return [self._rows[p] for p in programs if p in self._rows]

    def __len__(self) -> int:
        return len(self._rows)


__all__ = [
    "AccountRegistry",
    "SqlAccountRegistry",
    "StaticAccountRegistry",
    "normalize_tags",
    "program_filter",
]
