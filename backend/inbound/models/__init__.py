"""
Aggregate export for all SQLModel table classes.

Having each model re-exported here guarantees that
`import inbound.models` will register every table in
`SQLModel.metadata`, so Alembic can discover them
during `--autogenerate`.
"""

from ._common import generate_id, normalize_operate_type, OPERATE_TYPES  # noqa: F401

# --- Arrivals --------------------------------------------------------------
from .arrival import Arrival, ArrivalCreate, ArrivalRead, ArrivalUpdate  # noqa: F401

# --- Transactions (receive / putaway) --------------------------------------
from .transaction import (  # noqa: F401
    Transaction,
    TransactionCreate,
    TransactionRead,
    TransactionUpdate,
)

# --- VAS ---------------------------------------------------------------------
from .vas import VasEntry, VasEntryCreate, VasEntryRead, VasEntryUpdate  # noqa: F401

# kind name (URL segment / table name) -> (table, create, read, update)
KINDS = {
    "arrivals": (Arrival, ArrivalCreate, ArrivalRead, ArrivalUpdate),
    "transactions": (Transaction, TransactionCreate, TransactionRead, TransactionUpdate),
    "vas": (VasEntry, VasEntryCreate, VasEntryRead, VasEntryUpdate),
}

__all__ = [
    "Arrival",
    "Transaction",
    "VasEntry",
    "KINDS",
    "generate_id",
    "normalize_operate_type",
]
