"""Collect control programs from a batch of transactions.

The collector walks every output and input once and indexes the records by
their decoded control program. The distinct programs become the key set for a
single registry lookup; the indexes let the distributor fan each registry row
back out to every record that carries the program.
"""

from __future__ import annotations

import binascii
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .errors import MalformedRecordError
from .models import Transaction, TxInput, TxOutput


@dataclass(slots=True)
class Targets:
    """Per-call indexes keyed by raw control-program bytes.

    ``identity`` holds every input and output bearing a program; ``purpose``
    holds outputs only. Dict insertion order doubles as first-seen order of the
    distinct programs.
    """

    identity: dict[bytes, list[TxInput | TxOutput]] = field(default_factory=dict)
    purpose: dict[bytes, list[TxOutput]] = field(default_factory=dict)

    @property
    def programs(self) -> list[bytes]:
        """Distinct control programs, each exactly once."""

        return list(self.identity)

    @property
    def record_count(self) -> int:
        return sum(len(v) for v in self.identity.values())


def decode_control_program(
    value: object,
    *,
    tx_index: int,
    side: str,
    position: int,
) -> bytes | None:
    """Decode a record's hex ``control_program``.

    Returns ``None`` when the field is absent. Raises
    :class:`MalformedRecordError` when it is present but not a string or not
    strict hex (odd length, stray characters or whitespace).
    """

    if value is None:
        return None
    where = f"transaction {tx_index} {side} {position}"
    if not isinstance(value, str):
        raise MalformedRecordError(
            f"control_program must be a hex string at {where}, got {type(value).__name__}",
            tx_index=tx_index,
            side=side,
            position=position,
        )
    try:
        return binascii.unhexlify(value)
    except ValueError as e:  # binascii.Error subclasses ValueError
        raise MalformedRecordError(
            f"control_program is not valid hex at {where}: {value!r}",
            tx_index=tx_index,
            side=side,
            position=position,
        ) from e


def index_outputs(outputs: Sequence[TxOutput], targets: Targets, *, tx_index: int) -> None:
    """Index outputs for both identity and purpose annotation."""

    for position, out in enumerate(outputs):
        program = decode_control_program(
            out.control_program, tx_index=tx_index, side="output", position=position
        )
        if program is None:
            continue
        targets.identity.setdefault(program, []).append(out)
        targets.purpose.setdefault(program, []).append(out)


def index_inputs(inputs: Sequence[TxInput], targets: Targets, *, tx_index: int) -> None:
    """Index inputs for identity annotation; issuance inputs are skipped."""

    for position, inp in enumerate(inputs):
        program = decode_control_program(
            inp.control_program, tx_index=tx_index, side="input", position=position
        )
        if program is None:
            continue
        targets.identity.setdefault(program, []).append(inp)


def collect_targets(transactions: Iterable[Transaction]) -> Targets:
    """Build the lookup key set and fan-out indexes for a batch.

    Per transaction, outputs are indexed before inputs. The first malformed
    record aborts collection.
    """

    targets = Targets()
    for tx_index, tx in enumerate(transactions):
        index_outputs(tx.outputs, targets, tx_index=tx_index)
        index_inputs(tx.inputs, targets, tx_index=tx_index)
    return targets


__all__ = [
    "Targets",
    "decode_control_program",
    "index_outputs",
    "index_inputs",
    "collect_targets",
]
