"""Payables ledger."""

from settlement_modules.ap.orm import AccountPayableModel, PayablePaymentModel
from settlement_modules.ap.service import PayableLedgerService, contract_code_prefix

__all__ = [
    "AccountPayableModel",
    "PayablePaymentModel",
    "PayableLedgerService",
    "contract_code_prefix",
]
