"""Receivables ledger."""

from settlement_modules.ar.orm import AccountReceivableModel, ReceivablePaymentModel
from settlement_modules.ar.service import ReceivableLedgerService

__all__ = [
    "AccountReceivableModel",
    "ReceivablePaymentModel",
    "ReceivableLedgerService",
]
