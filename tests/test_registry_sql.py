from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import pytest
from db.client import get_engine, registry_session
from db.models.accounts import Account, Signer
from sqlalchemy import event, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateTable

from account_annotation import (
    Purpose,
    RegistryLookupError,
    SqlAccountRegistry,
    Transaction,
    TxInput,
    TxOutput,
    annotate_transactions,
)
from account_annotation.registry import program_filter
from tests.helpers.db import add_account, add_programs


@contextmanager
def _count_statements(database_url: str) -> Iterator[list[tuple[str, Any]]]:
    engine = get_engine(database_url=database_url)
    seen: list[tuple[str, Any]] = []

    def _before(conn, cursor, statement, parameters, context, executemany):
        seen.append((statement, parameters))

    event.listen(engine, "before_cursor_execute", _before)
    try:
        yield seen
    finally:
        event.remove(engine, "before_cursor_execute", _before)


@pytest.fixture
def seeded_db(registry_db: str) -> str:
    with registry_session(database_url=registry_db) as s:
        add_account(
            s,
            account_id="acct1",
            alias="bob",
            programs=[(b"\xaa", False), (b"\xa1", True)],
        )
        add_account(
            s,
            account_id="acct2",
            tags={"team": "ops"},
            programs=[(b"\xcc", True)],
        )
        # Program whose signer/account rows were never written
        add_programs(s, signer_id="signer-orphan", programs=[(b"\xdd", False)])
    return registry_db


def _by_program(rows):
    return {r.control_program: r for r in rows}


def test_resolve_joins_signers_and_accounts(seeded_db: str):
    with registry_session(database_url=seeded_db) as s:
        rows = _by_program(
            SqlAccountRegistry(s).resolve([b"\xaa", b"\xa1", b"\xcc", b"\xdd", b"\xee"])
        )

    assert set(rows) == {b"\xaa", b"\xa1", b"\xcc", b"\xdd"}

    aa = rows[b"\xaa"]
    assert (aa.account_id, aa.is_change, aa.alias, aa.tags) == ("acct1", False, "bob", None)
    assert rows[b"\xa1"].is_change is True

    cc = rows[b"\xcc"]
    assert (cc.account_id, cc.alias, cc.tags) == ("acct2", None, {"team": "ops"})

    dd = rows[b"\xdd"]
    assert (dd.account_id, dd.alias, dd.tags) == ("signer-orphan", None, None)


def test_resolve_is_one_round_trip(seeded_db: str):
    keys = [b"\xaa", b"\xcc", b"\xdd"] + [bytes([i, i]) for i in range(50)]
    with registry_session(database_url=seeded_db) as s:
        registry = SqlAccountRegistry(s)
        with _count_statements(seeded_db) as seen:
            rows = registry.resolve(keys)

    assert len(rows) == 3
    selects = [q for q, _ in seen if q.lstrip().upper().startswith("SELECT")]
    assert len(selects) == 1


def test_empty_key_set_does_not_query(seeded_db: str):
    with registry_session(database_url=seeded_db) as s:
        registry = SqlAccountRegistry(s)
        with _count_statements(seeded_db) as seen:
            rows = registry.resolve([])
    assert list(rows) == []
    assert seen == []


def test_annotate_against_database(seeded_db: str):
    txs = [
        Transaction(
            outputs=[TxOutput(control_program="aa"), TxOutput(control_program="a1")],
            inputs=[TxInput(control_program="cc"), TxInput()],
        ),
        Transaction(outputs=[TxOutput(control_program="dd"), TxOutput(control_program="ee")]),
    ]

    with registry_session(database_url=seeded_db) as s:
        annotate_transactions(txs, SqlAccountRegistry(s))

    out_aa, out_a1 = txs[0].outputs
    assert out_aa.annotations() == {
        "account_id": "acct1",
        "account_alias": "bob",
        "purpose": "receive",
    }
    assert out_a1.purpose is Purpose.CHANGE
    assert txs[0].inputs[0].annotations() == {
        "account_id": "acct2",
        "account_tags": {"team": "ops"},
    }
    assert txs[0].inputs[1].annotations() == {}
    # Unknown owner: the signer id is known, the alias is not
    assert txs[1].outputs[0].annotations() == {
        "account_id": "signer-orphan",
        "purpose": "receive",
    }
    assert txs[1].outputs[1].annotations() == {}


def test_database_failure_surfaces_as_registry_lookup_error(seeded_db: str):
    engine = get_engine(database_url=seeded_db)
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE account_control_programs")

    txs = [Transaction(outputs=[TxOutput(control_program="aa")])]
    with pytest.raises(RegistryLookupError) as ei:
        with registry_session(database_url=seeded_db) as s:
            annotate_transactions(txs, SqlAccountRegistry(s))

    assert isinstance(ei.value.__cause__, SQLAlchemyError)
    assert txs[0].outputs[0].annotations() == {}


# ---- Large batches -------------------------------------------------------------

# Above SQLite's default SQLITE_MAX_VARIABLE_NUMBER (32766 since 3.32, 999 before).
_MANY = 40_000


def _distinct_programs(n: int) -> list[bytes]:
    return [b"\x01" + i.to_bytes(3, "big") for i in range(n)]


def test_resolve_binds_whole_key_set_as_one_parameter(seeded_db: str):
    keys = _distinct_programs(_MANY) + [b"\xaa", b"\xcc"]
    with registry_session(database_url=seeded_db) as s:
        registry = SqlAccountRegistry(s)
        with _count_statements(seeded_db) as seen:
            rows = registry.resolve(keys)

    assert {r.control_program for r in rows} == {b"\xaa", b"\xcc"}
    ((statement, parameters),) = seen
    assert len(parameters) == 1


def test_annotate_large_batch_against_database(seeded_db: str):
    programs = _distinct_programs(_MANY)
    with registry_session(database_url=seeded_db) as s:
        add_programs(s, signer_id="acct1", programs=[(programs[-1], True)])

    txs = [
        Transaction(outputs=[TxOutput(control_program=p.hex()) for p in programs[i : i + 1000]])
        for i in range(0, _MANY, 1000)
    ]
    with registry_session(database_url=seeded_db) as s:
        annotate_transactions(txs, SqlAccountRegistry(s))

    last = txs[-1].outputs[-1]
    assert last.annotations() == {
        "account_id": "acct1",
        "account_alias": "bob",
        "purpose": "change",
    }
    assert txs[0].outputs[0].annotations() == {}


def test_postgresql_filter_is_one_array_parameter():
    keys = [b"\xaa", b"\xbb", b"\xcc"]
    compiled = select(1).where(program_filter(keys, "postgresql")).compile(
        dialect=postgresql.dialect()
    )
    assert "= ANY (" in str(compiled)
    assert compiled.params == {"programs": keys}


# ---- Engine / session helpers ------------------------------------------------------


def test_engine_refuses_a_second_url(registry_db: str, tmp_path):
    with pytest.raises(RuntimeError, match="dispose_engine"):
        get_engine(database_url=f"sqlite+pysqlite:///{tmp_path / 'other.db'}")
    assert get_engine(database_url=registry_db) is get_engine()


def test_registry_session_rolls_back_on_error(registry_db: str):
    with pytest.raises(ValueError):
        with registry_session(database_url=registry_db) as s:
            add_programs(s, signer_id="sig", programs=[(b"\x42", False)])
            raise ValueError("abort")

    with registry_session(database_url=registry_db) as s:
        assert SqlAccountRegistry(s).resolve([b"\x42"]) == []


# ---- Schema -------------------------------------------------------------------


@pytest.mark.parametrize(
    ("table", "column"), [(Signer.__table__, "xpubs"), (Account.__table__, "tags")]
)
def test_json_columns_are_jsonb_on_postgresql(table, column: str):
    pg = str(CreateTable(table).compile(dialect=postgresql.dialect()))
    lite = str(CreateTable(table).compile(dialect=sqlite.dialect()))
    assert f"{column} JSONB" in pg
    assert f"{column} JSON" in lite and "JSONB" not in lite
