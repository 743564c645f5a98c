"""
Module: obligation_services
Responsibility:
    Imperative shell around the pure engines: transactions, locking,
    persistence and the ledger boundary.

Architecture position:
    Services -- outermost layer.  May import ``obligation_kernel``,
    ``obligation_engines`` and ``obligation_config``.
"""

from obligation_services.ledger import LedgerReader, SqlLedgerReader
from obligation_services.locks import DefinitionLockRegistry
from obligation_services.obligation_service import ObligationService
from obligation_services.repository import ObligationRepository

__all__ = [
    "DefinitionLockRegistry",
    "LedgerReader",
    "ObligationRepository",
    "ObligationService",
    "SqlLedgerReader",
]
