"""Cash register and bank accounts."""

from settlement_modules.cash.orm import BankAccountModel, CashTransactionModel
from settlement_modules.cash.service import CashLedgerService, ReversalSummary

__all__ = [
    "BankAccountModel",
    "CashTransactionModel",
    "CashLedgerService",
    "ReversalSummary",
]
