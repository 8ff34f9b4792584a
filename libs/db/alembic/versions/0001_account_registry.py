# ruff: noqa: I001
"""Account registry tables: signers, accounts, account control programs.

Revision ID: 0001_account_registry
Revises: None
Create Date: 2026-10-17
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_account_registry"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # signers
    op.create_table(
        "signers",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("key_index", sa.BigInteger(), nullable=False),
        sa.Column("quorum", sa.Integer(), nullable=False),
        sa.Column("xpubs", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # accounts
    op.create_table(
        "accounts",
        sa.Column("account_id", sa.Text(), primary_key=True),
        sa.Column("alias", sa.Text(), nullable=True),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["account_id"],
            ["signers.id"],
            name="fk_accounts_signer",
            ondelete="CASCADE",
        ),
    )
    op.create_index("uq_accounts_alias", "accounts", ["alias"], unique=True)

    # account_control_programs
    op.create_table(
        "account_control_programs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("signer_id", sa.Text(), nullable=False),
        sa.Column("key_index", sa.BigInteger(), nullable=False),
        sa.Column("control_program", sa.LargeBinary(), nullable=False),
        sa.Column(
            "change",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # Batched lookups filter on control_program; keep it unique and indexed.
    op.create_index(
        "uq_account_control_programs_program",
        "account_control_programs",
        ["control_program"],
        unique=True,
    )
    op.create_index(
        "ix_account_control_programs_signer",
        "account_control_programs",
        ["signer_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_account_control_programs_signer", table_name="account_control_programs")
    op.drop_index("uq_account_control_programs_program", table_name="account_control_programs")
    op.drop_table("account_control_programs")
    op.drop_index("uq_accounts_alias", table_name="accounts")
    op.drop_table("accounts")
    op.drop_table("signers")
