"""Annotate transactions with the identity of the accounts that control them.

Public API:
    - :func:`annotate_transactions` (typed records)
    - :func:`annotate_txs` (raw decoder maps, annotated in place)

One call runs three stages in order: collect the distinct control programs in
the batch, resolve them with a single registry lookup, then distribute the
resolved identities to every matching input and output. Records are only
mutated after the lookup has returned, so a malformed record or a failed lookup
leaves the batch unannotated.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from typing import Any

from .collect import collect_targets
from .distribute import distribute
from .errors import RegistryLookupError
from .logging_setup import get_logger
from .models import ResolvedProgram, Transaction, TxInput, TxOutput, load_transactions
from .registry import AccountRegistry

_logger = get_logger("account_annotation.annotate")

_RECORD_SIDES: tuple[str, ...] = ("outputs", "inputs")


def _resolve(
    registry: AccountRegistry,
    programs: list[bytes],
    *,
    deadline: float | None,
) -> list[ResolvedProgram]:
    if deadline is not None and time.monotonic() >= deadline:
        raise RegistryLookupError("deadline exceeded before account registry lookup")
    try:
        rows = list(registry.resolve(programs))
    except RegistryLookupError:
        raise
    except Exception as e:  # noqa: BLE001 - any registry failure is fatal for the call
        _logger.error(
            "Account registry lookup failed for %d control programs: %s", len(programs), e
        )
        raise RegistryLookupError(f"account registry lookup failed: {e}") from e
    if deadline is not None and time.monotonic() > deadline:
        raise RegistryLookupError("deadline exceeded during account registry lookup")
    return rows


def annotate_transactions(
    transactions: Sequence[Transaction],
    registry: AccountRegistry,
    *,
    timeout: float | None = None,
) -> Sequence[Transaction]:
    """Annotate account-controlled inputs and outputs in place.

    Parameters
    ----------
    transactions:
        Decoded transactions; their records gain ``account_id`` and, when
        known, ``account_alias``/``account_tags``. Outputs also gain
        ``purpose``.
    registry:
        Account registry queried once for the batch's distinct programs.
    timeout:
        Optional budget in seconds for the call. When the registry lookup
        finishes past it, :class:`RegistryLookupError` is raised and no record
        is touched.

    Returns the same ``transactions`` object.

    Raises
    ------
    MalformedRecordError
        A ``control_program`` is present but not a hex string.
    RegistryLookupError
        The lookup failed or the deadline passed.
    """

    deadline = time.monotonic() + timeout if timeout is not None else None

    targets = collect_targets(transactions)
    programs = targets.programs
    _logger.debug(
        "Collected %d records over %d distinct control programs from %d transactions",
        targets.record_count,
        len(programs),
        len(transactions),
    )

    rows = _resolve(registry, programs, deadline=deadline)
    annotated = distribute(targets, rows)
    _logger.info(
        "Annotated %d records (%d of %d control programs matched a known account)",
        annotated,
        len(rows),
        len(programs),
    )
    return transactions


def _materialize(raw: Any) -> Any:
    """Shallow copy of ``raw`` with one-shot ``inputs``/``outputs`` turned into lists.

    Anything that is not a mapping, and record collections that are already
    sequences (or not iterable at all), are left for validation to judge.
    """

    if not isinstance(raw, Mapping):
        return raw
    view = dict(raw)
    for side in _RECORD_SIDES:
        value = view.get(side)
        if isinstance(value, Iterable) and not isinstance(value, (Sequence, Mapping)):
            view[side] = list(value)
    return view


def _write_back(
    raw_records: Iterable[MutableMapping[str, Any]] | None,
    records: Sequence[TxInput | TxOutput],
) -> None:
    for raw, record in zip(raw_records or (), records, strict=True):
        raw.update(record.annotations())


def annotate_txs(
    raw_txs: Iterable[MutableMapping[str, Any]],
    registry: AccountRegistry,
    *,
    timeout: float | None = None,
) -> list[MutableMapping[str, Any]]:
    """Annotate raw decoder maps in place and return them as a list.

    Every map is validated before the lookup runs, so a malformed record leaves
    all maps untouched. Only fields that were resolved are written; existing
    keys the annotator does not own are left as they are. ``inputs``/``outputs``
    given as one-shot iterators are replaced by lists of the same record maps.
    """

    raw_list = list(raw_txs)
    views = [_materialize(raw) for raw in raw_list]
    txs = load_transactions(views)
    annotate_transactions(txs, registry, timeout=timeout)
    for raw, view, tx in zip(raw_list, views, txs, strict=True):
        for side, records in (("outputs", tx.outputs), ("inputs", tx.inputs)):
            _write_back(view.get(side), records)
            if side in raw and view[side] is not raw[side]:
                raw[side] = view[side]
    return raw_list


__all__ = [
    "annotate_transactions",
    "annotate_txs",
]
