"""
Contract terms -- immutable input types for two-sided contracts.

Responsibility:
    Status and kind enumerations shared by every layer, plus the frozen
    value objects a caller hands to the contract orchestrator: parties,
    items (one class per item kind), participants, payment conditions and
    the whole ContractDraft.  ``ContractDraft.from_form`` is the boundary
    that turns loosely-typed form data into these objects.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by engines, models,
    modules and services.

Invariants enforced:
    - Asset-backed items always carry an item_id; cash lines never do.
    - Participant percentages are in (0, 100]; GRA percentages in [0, 100].
    - Every participant references a party declared on the same draft.
    - Payment condition values are positive and finite.  Installment counts
      below one are stored as one; single payments always have exactly one
      installment.  Fractional counts are rejected at the form boundary.
    - A draft can only be created as draft or active.

Failure modes:
    - InvalidContractDataError for any malformed field, naming the field.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, Mapping, Union
from uuid import UUID

from settlement_kernel.db.types import to_money
from settlement_kernel.exceptions import InvalidContractDataError
from settlement_kernel.logging_config import get_logger

logger = get_logger("domain.contract_terms")

HUNDRED = Decimal("100")
ZERO = Decimal("0")


class ContractStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Side(str, Enum):
    A = "A"
    B = "B"


class PartyType(str, Enum):
    PERSON = "person"
    COMPANY = "company"


class ItemType(str, Enum):
    PROPERTY = "property"
    VEHICLE = "vehicle"
    CREDIT = "credit"
    DEVELOPMENT = "development"
    CASH = "cash"


class PaymentDirection(str, Enum):
    IN = "in"
    OUT = "out"


class PaymentType(str, Enum):
    SINGLE = "single"
    INSTALLMENT = "installment"


class PaymentFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


class InstallmentStatus(str, Enum):
    OPEN = "open"
    OVERDUE = "overdue"
    PARTIALLY_PAID = "partially_paid"
    SETTLED = "settled"


class CashTransactionStatus(str, Enum):
    SETTLED = "settled"
    CANCELLED = "cancelled"
    REVERSED = "reversed"


class UserRole(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class InstallmentRounding(str, Enum):
    """How the division remainder of an installment plan is handled."""

    NONE = "none"  # every installment is value / n, remainder not corrected
    LAST = "last"  # installments rounded to cents, last one absorbs the remainder


# =============================================================================
# Parties
# =============================================================================


def _require_finite(value: Any, field: str) -> None:
    if not isinstance(value, Decimal) or not value.is_finite():
        raise InvalidContractDataError(field, f"{value!r} is not a finite amount")


@dataclass(frozen=True, kw_only=True)
class PartySpec:
    """A person or company taking part on one side of a contract."""

    party_type: ClassVar[PartyType]

    side: Side
    party_id: UUID
    name: str
    document: str | None = None
    gra_percentage: Decimal = ZERO

    def __post_init__(self) -> None:
        _require_finite(self.gra_percentage, "parties.gra_percentage")
        if not ZERO <= self.gra_percentage <= HUNDRED:
            raise InvalidContractDataError(
                "parties.gra_percentage",
                f"{self.gra_percentage} is outside 0..100",
            )


@dataclass(frozen=True, kw_only=True)
class PersonParty(PartySpec):
    party_type: ClassVar[PartyType] = PartyType.PERSON


@dataclass(frozen=True, kw_only=True)
class CompanyParty(PartySpec):
    party_type: ClassVar[PartyType] = PartyType.COMPANY


Party = Union[PersonParty, CompanyParty]


# =============================================================================
# Items
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class ParticipantSpec:
    """Share of an item's value attributed to one of the contract's parties."""

    party_id: UUID
    percentage: Decimal

    def __post_init__(self) -> None:
        _require_finite(self.percentage, "items.participants.percentage")
        if not ZERO < self.percentage <= HUNDRED:
            raise InvalidContractDataError(
                "items.participants.percentage",
                f"{self.percentage} is outside (0, 100]",
            )


@dataclass(frozen=True, kw_only=True)
class ContractItemSpec:
    item_type: ClassVar[ItemType]

    side: Side
    value: Decimal
    description: str | None = None
    notes: str | None = None
    participants: tuple[ParticipantSpec, ...] = ()

    def __post_init__(self) -> None:
        _require_finite(self.value, "items.item_value")
        if self.value < ZERO:
            raise InvalidContractDataError(
                "items.item_value", f"{self.value} is negative"
            )

    @property
    def item_ref(self) -> UUID | None:
        return None


@dataclass(frozen=True, kw_only=True)
class AssetItemSpec(ContractItemSpec):
    """Item backed by a registered asset (property, vehicle, credit, development)."""

    item_id: UUID

    @property
    def item_ref(self) -> UUID | None:
        return self.item_id


@dataclass(frozen=True, kw_only=True)
class PropertyItem(AssetItemSpec):
    item_type: ClassVar[ItemType] = ItemType.PROPERTY


@dataclass(frozen=True, kw_only=True)
class VehicleItem(AssetItemSpec):
    item_type: ClassVar[ItemType] = ItemType.VEHICLE


@dataclass(frozen=True, kw_only=True)
class CreditItem(AssetItemSpec):
    item_type: ClassVar[ItemType] = ItemType.CREDIT


@dataclass(frozen=True, kw_only=True)
class DevelopmentItem(AssetItemSpec):
    item_type: ClassVar[ItemType] = ItemType.DEVELOPMENT


@dataclass(frozen=True, kw_only=True)
class CashItem(ContractItemSpec):
    """Cash placed on one side of the contract; no asset reference."""

    item_type: ClassVar[ItemType] = ItemType.CASH


ContractItem = Union[PropertyItem, VehicleItem, CreditItem, DevelopmentItem, CashItem]

ITEM_CLASSES: dict[ItemType, type[ContractItemSpec]] = {
    ItemType.PROPERTY: PropertyItem,
    ItemType.VEHICLE: VehicleItem,
    ItemType.CREDIT: CreditItem,
    ItemType.DEVELOPMENT: DevelopmentItem,
    ItemType.CASH: CashItem,
}


# =============================================================================
# Payment conditions
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class PaymentConditionSpec:
    """
    Money flowing in or out of the contract outside the items.

    ``direction=in`` adds to Side A, ``direction=out`` adds to Side B when
    balancing.
    """

    value: Decimal
    direction: PaymentDirection
    payment_type: PaymentType
    start_date: date
    installments: int = 1
    frequency: PaymentFrequency | None = None
    payment_method: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        _require_finite(self.value, "payment_conditions.condition_value")
        if self.value <= ZERO:
            raise InvalidContractDataError(
                "payment_conditions.condition_value",
                f"{self.value} must be positive",
            )
        if self.installments < 1 or (
            self.payment_type == PaymentType.SINGLE and self.installments != 1
        ):
            object.__setattr__(self, "installments", 1)

    @property
    def is_single(self) -> bool:
        return self.payment_type == PaymentType.SINGLE


# =============================================================================
# Draft
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class ContractDraft:
    """Everything needed to create one contract."""

    contract_date: date
    parties: tuple[Party, ...]
    items: tuple[ContractItem, ...] = ()
    payment_conditions: tuple[PaymentConditionSpec, ...] = ()
    status: ContractStatus = ContractStatus.DRAFT
    notes: str | None = None
    attachment_urls: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.status not in (ContractStatus.DRAFT, ContractStatus.ACTIVE):
            raise InvalidContractDataError(
                "status", f"contracts cannot be created as {self.status.value}"
            )
        known = {p.party_id for p in self.parties}
        if len(known) != len(self.parties):
            raise InvalidContractDataError("parties", "a party is listed twice")
        for item in self.items:
            for participant in item.participants:
                if participant.party_id not in known:
                    raise InvalidContractDataError(
                        "items.participants.party_id",
                        f"{participant.party_id} is not a party of this contract",
                    )

    def side_total(self, side: Side) -> Decimal:
        return sum((i.value for i in self.items if i.side == side), ZERO)

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "ContractDraft":
        """Build a draft from form data using the persisted column names."""
        parties = tuple(_party_from_form(p) for p in form.get("parties") or ())
        items = tuple(_item_from_form(i) for i in form.get("items") or ())
        conditions = tuple(
            _condition_from_form(c) for c in form.get("payment_conditions") or ()
        )
        return cls(
            contract_date=_parse_date(form.get("contract_date"), "contract_date"),
            parties=parties,
            items=items,
            payment_conditions=conditions,
            status=_parse_enum(ContractStatus, form.get("status") or "draft", "status"),
            notes=form.get("notes"),
            attachment_urls=tuple(form.get("attachment_urls") or ()),
        )


# =============================================================================
# Form parsing helpers
# =============================================================================


def _parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise InvalidContractDataError(field, f"{value!r} is not a date")


def _parse_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise InvalidContractDataError(field, f"{value!r} is not an id") from exc


def _parse_amount(value: Any, field: str, default: Decimal | None = None) -> Decimal:
    if value is None and default is not None:
        return default
    try:
        return to_money(value)
    except ValueError as exc:
        raise InvalidContractDataError(field, str(exc)) from exc


def _parse_count(value: Any, field: str) -> int:
    """Whole installment count; missing means one."""
    if value is None or value == "":
        return 1
    if isinstance(value, bool):
        raise InvalidContractDataError(field, f"{value!r} is not a number")
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidContractDataError(field, f"{value!r} is not a number") from exc
    if not number.is_finite() or number != number.to_integral_value():
        raise InvalidContractDataError(field, f"{value!r} is not a whole number")
    return int(number)


def _parse_enum(enum_cls: type[Enum], value: Any, field: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidContractDataError(field, f"unknown value {value!r}") from exc


def _party_from_form(data: Mapping[str, Any]) -> Party:
    party_type = _parse_enum(PartyType, data.get("party_type"), "parties.party_type")
    party_cls = PersonParty if party_type == PartyType.PERSON else CompanyParty
    return party_cls(
        side=_parse_enum(Side, data.get("side"), "parties.side"),
        party_id=_parse_uuid(data.get("party_id"), "parties.party_id"),
        name=data.get("party_name") or "",
        document=data.get("party_document"),
        gra_percentage=_parse_amount(
            data.get("gra_percentage"), "parties.gra_percentage", default=ZERO
        ),
    )


def _item_from_form(data: Mapping[str, Any]) -> ContractItem:
    item_type = _parse_enum(ItemType, data.get("item_type"), "items.item_type")
    participants = tuple(
        ParticipantSpec(
            party_id=_parse_uuid(p.get("party_id"), "items.participants.party_id"),
            percentage=_parse_amount(p.get("percentage"), "items.participants.percentage"),
        )
        for p in data.get("participants") or ()
    )
    common = dict(
        side=_parse_enum(Side, data.get("side"), "items.side"),
        value=_parse_amount(data.get("item_value"), "items.item_value"),
        description=data.get("description"),
        notes=data.get("notes"),
        participants=participants,
    )
    if item_type == ItemType.CASH:
        if data.get("item_id"):
            raise InvalidContractDataError("items.item_id", "cash items carry no asset reference")
        return CashItem(**common)
    if not data.get("item_id"):
        raise InvalidContractDataError(
            "items.item_id", f"{item_type.value} items require an asset reference"
        )
    return ITEM_CLASSES[item_type](
        item_id=_parse_uuid(data.get("item_id"), "items.item_id"), **common
    )


def _condition_from_form(data: Mapping[str, Any]) -> PaymentConditionSpec:
    frequency = data.get("frequency")
    if frequency:
        try:
            frequency = PaymentFrequency(frequency)
        except ValueError:
            logger.warning(
                "unknown_payment_frequency",
                extra={"frequency": frequency, "treated_as": PaymentFrequency.MONTHLY.value},
            )
            frequency = PaymentFrequency.MONTHLY
    else:
        frequency = None

    return PaymentConditionSpec(
        value=_parse_amount(data.get("condition_value"), "payment_conditions.condition_value"),
        direction=_parse_enum(PaymentDirection, data.get("direction"), "payment_conditions.direction"),
        payment_type=_parse_enum(PaymentType, data.get("payment_type"), "payment_conditions.payment_type"),
        start_date=_parse_date(data.get("start_date"), "payment_conditions.start_date"),
        installments=_parse_count(data.get("installments"), "payment_conditions.installments"),
        frequency=frequency,
        payment_method=data.get("payment_method"),
        notes=data.get("notes"),
    )
