"""Public interface for the ``account_annotation`` package.

Symbol re-exports only; no runtime logic and no side effects at import time.
"""

from .annotate import annotate_transactions, annotate_txs
from .collect import Targets, collect_targets, index_inputs, index_outputs
from .distribute import distribute
from .errors import AnnotationError, MalformedRecordError, RegistryLookupError
from .models import (
    Purpose,
    ResolvedProgram,
    Transaction,
    TxInput,
    TxOutput,
    load_transactions,
)
from .registry import AccountRegistry, SqlAccountRegistry, StaticAccountRegistry

__all__ = [
    # API
    "annotate_transactions",
    "annotate_txs",
    "collect_targets",
    "index_outputs",
    "index_inputs",
    "distribute",
    "load_transactions",
    "Targets",
    # Registry
    "AccountRegistry",
    "SqlAccountRegistry",
    "StaticAccountRegistry",
    # Models / types
    "Purpose",
    "ResolvedProgram",
    "Transaction",
    "TxInput",
    "TxOutput",
    # Errors
    "AnnotationError",
    "MalformedRecordError",
    "RegistryLookupError",
]
