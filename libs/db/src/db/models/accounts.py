from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# JSONB on PostgreSQL (as the migrations create it), plain JSON elsewhere.
_Json = JSON().with_variant(JSONB(), "postgresql")
_NullableJson = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


# ---------------------------
# Signers
# ---------------------------


class Signer(Base):
    __tablename__ = "signers"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Kind of entity the signer backs; only "account" signers join to accounts.
    type: Mapped[str] = mapped_column(String, nullable=False)
    key_index: Mapped[int] = mapped_column(BigInteger, nullable=False)
    quorum: Mapped[int] = mapped_column(Integer, nullable=False)
    xpubs: Mapped[list[str]] = mapped_column(_Json, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )


# ---------------------------
# Accounts
# ---------------------------


class Account(Base):
    __tablename__ = "accounts"

    # Shares its id with the backing signer row (accounts.account_id = signers.id).
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("signers.id", ondelete="CASCADE"), primary_key=True
    )
    alias: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    # Opaque caller-defined structure; NULL when the account carries no tags.
    tags: Mapped[Any | None] = mapped_column(_NullableJson, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )


# ---------------------------
# Control programs issued to accounts
# ---------------------------


class AccountControlProgram(Base):
    __tablename__ = "account_control_programs"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    # Not a foreign key: programs may outlive (or predate) their signer row,
    # and lookups must still return the program with a NULL alias.
    signer_id: Mapped[str] = mapped_column(String, nullable=False)
    key_index: Mapped[int] = mapped_column(BigInteger, nullable=False)
    control_program: Mapped[bytes] = mapped_column(LargeBinary, nullable=False, unique=True)
    change: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )


__all__ = [
    "Base",
    "Signer",
    "Account",
    "AccountControlProgram",
]
