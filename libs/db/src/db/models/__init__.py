"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the account registry models read by ``account_annotation``.
"""

from .accounts import Account, AccountControlProgram, Base, Signer

__all__ = [
    "Base",
    "Account",
    "AccountControlProgram",
    "Signer",
]
