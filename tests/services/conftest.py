"""
Shared fixtures for orchestrator tests.

Each orchestrator is built over the per-test session with the deterministic
clock and the default settlement settings.  Fixtures are opt-in.
"""

import pytest

from settlement_services.contract_deletion import ContractDeletionOrchestrator
from settlement_services.contract_orchestrator import ContractOrchestrator
from settlement_services.installment_payments import InstallmentPaymentOrchestrator


@pytest.fixture
def contract_orchestrator(session, deterministic_clock):
    return ContractOrchestrator(session, clock=deterministic_clock)


@pytest.fixture
def deletion_orchestrator(session, deterministic_clock):
    return ContractDeletionOrchestrator(session, clock=deterministic_clock)


@pytest.fixture
def payment_orchestrator(session, deterministic_clock):
    return InstallmentPaymentOrchestrator(session, clock=deterministic_clock)

