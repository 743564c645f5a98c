"""ORM models for the obligation kernel."""

from obligation_kernel.models.balance import SavingsBalance
from obligation_kernel.models.category import Category
from obligation_kernel.models.definition import ObligationDefinition
from obligation_kernel.models.ledger_transaction import LedgerTransaction
from obligation_kernel.models.occurrence import ObligationOccurrence

__all__ = [
    "Category",
    "LedgerTransaction",
    "ObligationDefinition",
    "ObligationOccurrence",
    "SavingsBalance",
]
