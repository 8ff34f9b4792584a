"""Data models for ``account_annotation``.

Transaction inputs and outputs arrive from the decoder as free-form field maps.
Here they become typed records: the fields this package reads or writes are
declared explicitly with ``None`` as the "absent" value, and every other
decoded field (asset id, amount, reference data, ...) rides along as a pydantic
extra so nothing the decoder produced is lost.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from .errors import MalformedRecordError

# Fields written by the annotator, in the order they are copied back to maps.
ANNOTATION_FIELDS: tuple[str, ...] = ("account_id", "account_alias", "account_tags", "purpose")


class Purpose(StrEnum):
    """Why an account-controlled output exists."""

    CHANGE = "change"
    RECEIVE = "receive"


# ---------------------------------------------------------------------------
# Transaction records
# ---------------------------------------------------------------------------


class _TxRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    # Hex-encoded control program. ``None`` on issuance inputs. Strict so that a
    # non-string value is rejected instead of coerced.
    control_program: StrictStr | None = None

    account_id: str | None = None
    account_alias: str | None = None
    account_tags: Any | None = None

    def annotations(self) -> dict[str, Any]:
        """Return the annotation fields that have been set on this record."""

        out: dict[str, Any] = {}
        for name in ANNOTATION_FIELDS:
            value = getattr(self, name, None)
            if value is None:
                continue
            out[name] = value.value if isinstance(value, Purpose) else value
        return out


class TxInput(_TxRecord):
    """A transaction input (spend or issuance)."""


class TxOutput(_TxRecord):
    """A transaction output; the only record kind that carries a ``purpose``."""

    purpose: Purpose | None = None


class Transaction(BaseModel):
    """A decoded transaction: ordered inputs and ordered outputs.

    Top-level decoded fields other than ``inputs``/``outputs`` (id, timestamp,
    reference data, ...) are kept as extras.
    """

    model_config = ConfigDict(extra="allow")

    inputs: list[TxInput] = Field(default_factory=list)
    outputs: list[TxOutput] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Registry rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ResolvedProgram:
    """One account registry match for a control program.

    ``alias`` is ``None`` when the account has none (or the signer/account join
    found nothing); ``tags`` is ``None`` when the account carries no tags.
    """

    account_id: str
    control_program: bytes
    is_change: bool
    alias: str | None = None
    tags: Any | None = None


# ---------------------------------------------------------------------------
# Loading raw decoder output
# ---------------------------------------------------------------------------


def load_transactions(raw: Iterable[Mapping[str, Any]]) -> list[Transaction]:
    """Validate raw decoded transaction maps into :class:`Transaction` records.

    All items are validated before anything is returned, so a malformed record
    anywhere in the batch fails the whole load. Pydantic errors are re-raised as
    :class:`MalformedRecordError` carrying the offending location.
    """

    txs: list[Transaction] = []
    for tx_index, item in enumerate(raw):
        try:
            txs.append(Transaction.model_validate(item))
        except ValidationError as e:
            first = e.errors()[0]
            side, position = _error_location(first["loc"])
            raise MalformedRecordError(
                f"Invalid transaction at index {tx_index}: {first['msg']} (loc={first['loc']!r})",
                tx_index=tx_index,
                side=side,
                position=position,
            ) from e
    return txs


def _error_location(loc: tuple[int | str, ...]) -> tuple[str | None, int | None]:
    # ("outputs", 2, "control_program") -> ("output", 2)
    if not loc or loc[0] not in ("inputs", "outputs"):
        return None, None
    side = str(loc[0])[:-1]
    position = loc[1] if len(loc) > 1 and isinstance(loc[1], int) else None
    return side, position


__all__ = [
    "ANNOTATION_FIELDS",
    "Purpose",
    "TxInput",
    "TxOutput",
    "Transaction",
    "ResolvedProgram",
    "load_transactions",
]
