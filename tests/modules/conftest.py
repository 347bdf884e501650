"""
Shared fixtures for ledger module tests.

Module services are flush-only; tests drive them directly on the per-test
session and read the results back without committing.
"""

from datetime import date
from decimal import Decimal

import pytest

from settlement_engines.expansion import InstallmentLine, LedgerKind
from settlement_modules.ap.service import PayableLedgerService
from settlement_modules.ar.service import ReceivableLedgerService
from settlement_modules.cash.service import CashLedgerService
from settlement_services.contract_orchestrator import ContractOrchestrator


@pytest.fixture
def cash_service(session):
    return CashLedgerService(session)


@pytest.fixture
def payable_service(session):
    return PayableLedgerService(session)


@pytest.fixture
def receivable_service(session):
    return ReceivableLedgerService(session)


@pytest.fixture
def installment_lines():
    """Build ``count`` monthly lines coded ``{contract_code}-{marker}nn``."""

    def _build(contract_code: str, kind: LedgerKind, count: int = 2, value: str = "500") -> list[InstallmentLine]:
        marker = "R" if kind == LedgerKind.RECEIVABLE else "P"
        return [
            InstallmentLine(
                condition_index=0,
                ledger=kind,
                code=f"{contract_code}-{marker}{n:02d}",
                number=n,
                total=count,
                value=Decimal(value),
                due_date=date(2024, n, 10),
            )
            for n in range(1, count + 1)
        ]

    return _build


@pytest.fixture
def contract_id(session, deterministic_clock, editor_id, contract_form):
    """Id of a persisted draft contract, for rows that reference one."""
    result = ContractOrchestrator(session, clock=deterministic_clock).create(editor_id, contract_form())
    assert result.is_success, result.error
    return result.data.id
