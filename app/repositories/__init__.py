"""
app/repositories package marker.
"""

from app.repositories.transaction_repository import TransactionRepository, TransactionStore

__all__ = [
    "TransactionRepository",
    "TransactionStore",
]
