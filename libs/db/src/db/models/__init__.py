"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger and queue-slot models used by ``spend_sync``.
"""

from .ledger import Base, ProcessedTransaction, QueueSlot

__all__ = [
    "Base",
    "ProcessedTransaction",
    "QueueSlot",
]
