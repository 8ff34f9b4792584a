"""Fan registry rows back out to the records that share each control program."""

from __future__ import annotations

from collections.abc import Iterable

from .collect import Targets
from .models import Purpose, ResolvedProgram


def distribute(targets: Targets, rows: Iterable[ResolvedProgram]) -> int:
    """Write account identity and output purpose onto indexed records.

    Every record under a row's program gets ``account_id``; ``account_tags`` and
    ``account_alias`` are written only when the row carries them. Outputs under
    the program also get ``purpose``. A row whose program has no targets is
    ignored. Returns the number of records annotated.
    """

    annotated = 0
    for row in rows:
        program = bytes(row.control_program)
        for record in targets.identity.get(program, ()):
            record.account_id = row.account_id
            if row.tags is not None:
                record.account_tags = row.tags
            if row.alias is not None:
                record.account_alias = row.alias
            annotated += 1

        purpose = Purpose.CHANGE if row.is_change else Purpose.RECEIVE
        for out in targets.purpose.get(program, ()):
            out.purpose = purpose
    return annotated


__all__ = ["distribute"]
