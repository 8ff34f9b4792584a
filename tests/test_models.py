from __future__ import annotations

import pytest

from account_annotation import (
    MalformedRecordError,
    Purpose,
    ResolvedProgram,
    StaticAccountRegistry,
    TxOutput,
    load_transactions,
)
from account_annotation.registry import normalize_tags


def test_load_transactions_keeps_decoded_extras():
    (tx,) = load_transactions(
        [
            {
                "id": "tx1",
                "reference_data": None,
                "outputs": [{"control_program": "aa", "asset_id": "gold", "amount": 3}],
            }
        ]
    )
    assert tx.model_extra == {"id": "tx1", "reference_data": None}
    assert tx.inputs == []
    assert tx.outputs[0].model_extra == {"asset_id": "gold", "amount": 3}


def test_load_transactions_rejects_non_list_outputs():
    with pytest.raises(MalformedRecordError) as ei:
        load_transactions([{"outputs": []}, {"outputs": "nope"}])
    assert ei.value.tx_index == 1
    assert ei.value.side == "output"


def test_annotations_reports_only_set_fields():
    out = TxOutput(control_program="aa", amount=1)
    assert out.annotations() == {}
    out.account_id = "acct"
    out.purpose = Purpose.CHANGE
    assert out.annotations() == {"account_id": "acct", "purpose": "change"}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, None),
        (b"", None),
        (b'{"k": "v"}', {"k": "v"}),
        ({"already": "decoded"}, {"already": "decoded"}),
    ],
)
def test_normalize_tags(raw, expected):
    assert normalize_tags(raw) == expected


def test_static_registry_resolves_known_programs_only():
    registry = StaticAccountRegistry(
        [
            ResolvedProgram(account_id="a", control_program=b"\x01", is_change=False, tags=b""),
            ResolvedProgram(account_id="b", control_program=b"\x02", is_change=True),
        ]
    )
    rows = registry.resolve([b"\x01", b"\x03"])
    assert len(registry) == 2
    assert [r.account_id for r in rows] == ["a"]
    assert rows[0].tags is None
    assert registry.resolve([]) == []
