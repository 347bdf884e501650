"""
Typed exception hierarchy for the settlement kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from SettlementError:

    SettlementError (base)
    |
    +-- AuthorizationError
    |   +-- ProfileNotFoundError
    |   +-- UnauthorizedError
    |
    +-- NotFoundError
    |   +-- ContractNotFoundError
    |   +-- BankAccountNotFoundError
    |   +-- PartyNotFoundError
    |   +-- ItemNotFoundError
    |   +-- InstallmentNotFoundError
    |
    +-- ContractError
    |   +-- InvalidContractDataError
    |   +-- InvalidContractStateError
    |   +-- UnbalancedContractError
    |
    +-- SettlementPaymentError
    |   +-- OverpaymentError
    |   +-- InsufficientFundsError
    |   +-- InstallmentGroupLockedError
    |   +-- BatchSettlementError
    |
    +-- ConcurrencyError
    |   +-- CodeAllocationError
    |
    +-- PersistenceError
    +-- PartialFailureError
    +-- UnexpectedError

===============================================================================
USAGE
===============================================================================

Services and engines raise. Orchestrators in settlement_services are the only
catch boundary: they roll back, log, and convert the exception into an
OperationResult carrying ``error`` (the message) and ``error_code`` (the
class-level ``code``).

    result = orchestrator.activate(actor_id, contract_id)
    if result.error_code == UnbalancedContractError.code:
        ...

Every subclass declares ``code`` as a class attribute and keeps its context as
instance attributes, so structured logging can serialise it without parsing
the message.
"""

from decimal import Decimal
from typing import Any


class SettlementError(Exception):
    """Base exception for all settlement errors."""

    code: str = "SETTLEMENT_ERROR"


# Authorization


class AuthorizationError(SettlementError):
    code: str = "AUTHORIZATION_ERROR"


class ProfileNotFoundError(AuthorizationError):
    """Actor has no user profile, so no role can be resolved."""

    code: str = "PROFILE_NOT_FOUND"

    def __init__(self, actor_id: Any):
        self.actor_id = str(actor_id)
        super().__init__(f"User profile not found for actor {actor_id}")


class UnauthorizedError(AuthorizationError):
    """Actor's role does not grant the requested action."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor_id: Any, action: str, role: str | None = None):
        self.actor_id = str(actor_id)
        self.action = action
        self.role = role
        super().__init__(
            f"Actor {actor_id} with role {role or 'none'} is not allowed to {action}"
        )


# Lookups


class NotFoundError(SettlementError):
    code: str = "NOT_FOUND"


class ContractNotFoundError(NotFoundError):
    """Contract was not found."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_ref: Any):
        self.contract_ref = str(contract_ref)
        super().__init__(f"Contract not found: {contract_ref}")


class BankAccountNotFoundError(NotFoundError):
    """Bank account was not found or is not active."""

    code: str = "BANK_ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: Any):
        self.account_ref = str(account_ref)
        super().__init__(f"Active bank account not found: {account_ref}")


class PartyNotFoundError(NotFoundError):
    """A contract party references a person or company that does not exist."""

    code: str = "PARTY_NOT_FOUND"

    def __init__(self, party_type: str, party_id: Any):
        self.party_type = party_type
        self.party_id = str(party_id)
        super().__init__(f"{party_type} not found: {party_id}")


class ItemNotFoundError(NotFoundError):
    """A contract item references an asset that does not exist."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_type: str, item_id: Any):
        self.item_type = item_type
        self.item_id = str(item_id)
        super().__init__(f"{item_type} item not found: {item_id}")


class InstallmentNotFoundError(NotFoundError):
    code: str = "INSTALLMENT_NOT_FOUND"

    def __init__(self, ledger: str, installment_ref: Any):
        self.ledger = ledger
        self.installment_ref = str(installment_ref)
        super().__init__(f"{ledger} installment not found: {installment_ref}")


# Contract state and content


class ContractError(SettlementError):
    code: str = "CONTRACT_ERROR"


class InvalidContractDataError(ContractError):
    """Contract form data failed validation."""

    code: str = "INVALID_CONTRACT_DATA"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid contract data in {field}: {reason}")


class InvalidContractStateError(ContractError):
    """Operation not allowed from the contract's current status."""

    code: str = "INVALID_CONTRACT_STATE"

    def __init__(self, contract_code: str, status: str, required_status: str):
        self.contract_code = contract_code
        self.status = status
        self.required_status = required_status
        super().__init__(
            f"Contract {contract_code} is {status}; this requires a {required_status} contract"
        )


class UnbalancedContractError(ContractError):
    """Contract sides differ by more than the activation tolerance."""

    code: str = "UNBALANCED_CONTRACT"

    def __init__(self, contract_code: str, balance: Decimal):
        self.contract_code = contract_code
        self.balance = balance
        super().__init__(
            f"Contract {contract_code} is not balanced. "
            f"Difference: {balance.quantize(Decimal('0.01'))}"
        )


# Installment settlement


class SettlementPaymentError(SettlementError):
    code: str = "SETTLEMENT_PAYMENT_ERROR"


class OverpaymentError(SettlementPaymentError):
    """Payment exceeds the installment's remaining value."""

    code: str = "OVERPAYMENT"

    def __init__(self, installment_code: str, payment_value: Decimal, remaining_value: Decimal):
        self.installment_code = installment_code
        self.payment_value = payment_value
        self.remaining_value = remaining_value
        super().__init__(
            f"Payment {payment_value} exceeds remaining value "
            f"{remaining_value} of {installment_code}"
        )


class InsufficientFundsError(SettlementPaymentError):
    """Bank account balance cannot cover an outgoing payment."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, account_name: str, balance: Decimal, amount: Decimal):
        self.account_name = account_name
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance in {account_name}: {balance} available, {amount} required"
        )


class InstallmentGroupLockedError(SettlementPaymentError):
    """An installment group cannot be removed once payments were recorded."""

    code: str = "INSTALLMENT_GROUP_LOCKED"

    def __init__(self, group_id: Any, paid_codes: list[str]):
        self.group_id = str(group_id)
        self.paid_codes = paid_codes
        super().__init__(
            f"Installment group {group_id} has recorded payments: {', '.join(paid_codes)}"
        )


class BatchSettlementError(SettlementPaymentError):
    """Some entries of a batch settlement failed; the others were recorded."""

    code: str = "BATCH_SETTLEMENT_FAILED"

    def __init__(self, kind: str, failed: int, total: int):
        self.kind = kind
        self.failed = failed
        self.total = total
        super().__init__(f"{failed} of {total} {kind} failed")


# Concurrency


class ConcurrencyError(SettlementError):
    code: str = "CONCURRENCY_ERROR"


class CodeAllocationError(ConcurrencyError):
    """Every contract code tried collided with an existing one."""

    code: str = "CODE_ALLOCATION_FAILED"

    def __init__(self, attempts: int, last_code: str):
        self.attempts = attempts
        self.last_code = last_code
        super().__init__(
            f"Could not allocate a unique contract code after {attempts} attempts "
            f"(last tried {last_code})"
        )


# Datastore


class PersistenceError(SettlementError):
    """A datastore write failed. The low-level cause is logged, not surfaced."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, message: str | None = None):
        self.operation = operation
        super().__init__(message or f"Failed to {operation}")


class PartialFailureError(SettlementError):
    """Rolling back a failed operation failed too; the store may hold partial rows."""

    code: str = "PARTIAL_FAILURE"

    def __init__(self, operation: str, cause: str):
        self.operation = operation
        self.cause = cause
        super().__init__(
            f"{operation} failed and could not be rolled back cleanly: {cause}"
        )


class UnexpectedError(SettlementError):
    """A non-settlement exception; the traceback is logged, the message is generic."""

    code: str = "UNEXPECTED_ERROR"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Unexpected error while trying to {operation}")
