"""Daily vendor settlement engine.

A settlement session follows one business day of vendor stock cycles. In the
morning each selected vendor takes stock out; the taken quantities are then
locked and, in the evening, the returned quantities are entered. Sold
quantities, revenue, cost, commission and profit are always derived from the
line items and are never stored on their own.

The session moves through two phases:

* ``OpenPhase``: vendors can be selected and deselected and taken quantities
  edited. ``lock()`` closes this phase and copies its lines into the next
  one, so the locked quantities cannot be changed through the old phase.
* ``LockedPhase``: taken quantities and the vendor selection are frozen, only
  returned quantities can be edited and the final record can be built.

``SettlementSession`` owns the current phase. Operations that the current
phase does not offer are refused as no-ops and report ``False``.
"""

import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import TypeVar

from vendorsettle.core.logger import get_logger
from vendorsettle.core.security import generate_session_id

logger = get_logger(__name__)

NO_VENDOR_SELECTED = "no vendor selected"
MORNING_NOT_LOCKED = "morning stock not locked"
NO_ITEMS_TAKEN = "no items taken"
INVALID_COMMISSION_RATE = "invalid commission rate"
INVALID_QUANTITY = "invalid quantity"
VENDOR_NAME_REQUIRED = "vendor name is required"

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MAX_QUANTITY = 1_000_000

T = TypeVar("T")


class SettlementValidationError(ValueError):
    pass


class UnknownEntityError(LookupError):
    pass


class PhaseClosedError(RuntimeError):
    """Raised by a phase object that the session has already moved past."""


@dataclass(frozen=True)
class CatalogItem:
    id: int
    name: str
    category: str
    unit_price: Decimal
    unit_cost: Decimal


@dataclass(frozen=True)
class VendorProfile:
    id: int
    name: str
    commission_rate: Decimal


@dataclass
class VendorLineItem:
    item_id: int
    item_name: str
    category: str
    unit_price: Decimal
    unit_cost: Decimal
    quantity_taken: int = 0
    quantity_returned: int = 0

    @property
    def quantity_sold(self) -> int:
        return max(0, self.quantity_taken - self.quantity_returned)

    @property
    def revenue(self) -> Decimal:
        return Decimal(self.quantity_sold) * self.unit_price

    @property
    def cost(self) -> Decimal:
        return Decimal(self.quantity_sold) * self.unit_cost


@dataclass(frozen=True)
class VendorTotals:
    total_revenue: Decimal = ZERO
    total_cost: Decimal = ZERO
    gross_profit: Decimal = ZERO
    commission: Decimal = ZERO
    net_profit: Decimal = ZERO


@dataclass(frozen=True)
class SessionTotals:
    total_revenue: Decimal = ZERO
    total_cost: Decimal = ZERO
    gross_profit: Decimal = ZERO
    total_vendor_commission: Decimal = ZERO
    total_net_profit: Decimal = ZERO


def compute_vendor_totals(lines: Iterable[VendorLineItem], commission_rate: Decimal) -> VendorTotals:
    """Revenue, cost and profit of one vendor's lines.

    Commission is charged on revenue, not on gross profit.
    """
    lines = list(lines)
    total_revenue = sum((line.revenue for line in lines), ZERO)
    total_cost = sum((line.cost for line in lines), ZERO)
    gross_profit = total_revenue - total_cost
    commission = total_revenue * Decimal(commission_rate) / HUNDRED
    return VendorTotals(
        total_revenue=total_revenue,
        total_cost=total_cost,
        gross_profit=gross_profit,
        commission=commission,
        net_profit=gross_profit - commission,
    )


def compute_session_totals(vendor_totals: Iterable[VendorTotals]) -> SessionTotals:
    result = SessionTotals()
    for totals in vendor_totals:
        result = SessionTotals(
            total_revenue=result.total_revenue + totals.total_revenue,
            total_cost=result.total_cost + totals.total_cost,
            gross_profit=result.gross_profit + totals.gross_profit,
            total_vendor_commission=result.total_vendor_commission + totals.commission,
            total_net_profit=result.total_net_profit + totals.net_profit,
        )
    return result


def parse_commission_rate(raw) -> Decimal:
    if raw is None or isinstance(raw, bool):
        raise SettlementValidationError(INVALID_COMMISSION_RATE)
    try:
        rate = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as exc:
        raise SettlementValidationError(INVALID_COMMISSION_RATE) from exc
    if not rate.is_finite() or rate < ZERO or rate > HUNDRED:
        raise SettlementValidationError(INVALID_COMMISSION_RATE)
    return rate


def validate_vendor_input(name: str | None, commission_rate) -> tuple[str, Decimal]:
    """Normalize the fields of a new vendor or raise ``SettlementValidationError``."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise SettlementValidationError(VENDOR_NAME_REQUIRED)
    return cleaned, parse_commission_rate(commission_rate)


def _coerce_quantity(quantity) -> int:
    """Negative quantities count as zero; fractional or oversized ones are refused."""
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float, Decimal)):
        raise SettlementValidationError(INVALID_QUANTITY)
    if not isinstance(quantity, int):
        finite = quantity.is_finite() if isinstance(quantity, Decimal) else math.isfinite(quantity)
        if not finite or quantity != int(quantity):
            raise SettlementValidationError(INVALID_QUANTITY)
        quantity = int(quantity)
    if quantity > MAX_QUANTITY:
        raise SettlementValidationError(INVALID_QUANTITY)
    return max(0, quantity)


class Catalog:
    """Immutable snapshot of the items a session can settle."""

    def __init__(self, items: Iterable[CatalogItem]) -> None:
        self._items: dict[int, CatalogItem] = {item.id: item for item in items}

    def get(self, item_id: int) -> CatalogItem:
        item = self._items.get(item_id)
        if item is None:
            raise UnknownEntityError(f"item {item_id} is not in the session catalog")
        return item

    def __iter__(self):
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items


@dataclass
class VendorSettlementState:
    vendor: VendorProfile
    lines: dict[int, VendorLineItem] = field(default_factory=dict)

    @classmethod
    def for_catalog(cls, vendor: VendorProfile, catalog: Catalog) -> "VendorSettlementState":
        lines = {
            item.id: VendorLineItem(
                item_id=item.id,
                item_name=item.name,
                category=item.category,
                unit_price=item.unit_price,
                unit_cost=item.unit_cost,
            )
            for item in catalog
        }
        return cls(vendor=vendor, lines=lines)

    def line(self, item_id: int) -> VendorLineItem:
        line = self.lines.get(item_id)
        if line is None:
            raise UnknownEntityError(f"item {item_id} is not in the session catalog")
        return line

    def totals(self) -> VendorTotals:
        return compute_vendor_totals(self.lines.values(), self.vendor.commission_rate)

    def has_taken_stock(self) -> bool:
        return any(line.quantity_taken > 0 for line in self.lines.values())


@dataclass(frozen=True)
class VendorSettlementRecord:
    vendor_id: int
    vendor_name: str
    commission_rate: Decimal
    items: tuple[VendorLineItem, ...]
    total_revenue: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    vendor_commission: Decimal
    net_profit: Decimal


@dataclass(frozen=True)
class SettlementRecord:
    """Final aggregate of a locked session, handed to persistence."""

    session_key: str
    date: date
    vendors: tuple[VendorSettlementRecord, ...]
    total_revenue: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    total_vendor_commission: Decimal
    total_net_profit: Decimal


def _settlement_for(vendor_id: int, settlements: Mapping[int, VendorSettlementState]) -> VendorSettlementState:
    state = settlements.get(vendor_id)
    if state is None:
        raise UnknownEntityError(f"vendor {vendor_id} is not selected in this session")
    return state


class OpenPhase:
    """Morning phase: vendor selection and taken quantities are editable."""

    locked = False
    name = "open"

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self.settlements: dict[int, VendorSettlementState] = {}
        self.closed = False

    def _ensure_open(self) -> None:
        if self.closed:
            raise PhaseClosedError("morning stock is already locked")

    def select_vendor(self, vendor: VendorProfile) -> VendorSettlementState:
        self._ensure_open()
        state = self.settlements.get(vendor.id)
        if state is None:
            state = VendorSettlementState.for_catalog(vendor, self.catalog)
            self.settlements[vendor.id] = state
        return state

    def deselect_vendor(self, vendor_id: int) -> None:
        self._ensure_open()
        if self.settlements.pop(vendor_id, None) is None:
            raise UnknownEntityError(f"vendor {vendor_id} is not selected in this session")

    def set_quantity_taken(self, vendor_id: int, item_id: int, quantity: int) -> VendorLineItem:
        quantity = _coerce_quantity(quantity)
        self._ensure_open()
        line = _settlement_for(vendor_id, self.settlements).line(item_id)
        line.quantity_taken = quantity
        return line

    def lock(self) -> "LockedPhase":
        """Close this phase and hand a frozen copy of the lines to the evening phase."""
        self._ensure_open()
        if not any(state.has_taken_stock() for state in self.settlements.values()):
            raise SettlementValidationError(NO_ITEMS_TAKEN)
        self.closed = True
        frozen = {
            vendor_id: VendorSettlementState(
                vendor=state.vendor,
                lines={item_id: replace(line) for item_id, line in state.lines.items()},
            )
            for vendor_id, state in self.settlements.items()
        }
        return LockedPhase(self.catalog, frozen)


class LockedPhase:
    """Evening phase: only returned quantities are editable."""

    locked = True
    name = "locked"

    def __init__(self, catalog: Catalog, settlements: dict[int, VendorSettlementState]) -> None:
        self.catalog = catalog
        self.settlements = settlements

    def set_quantity_returned(self, vendor_id: int, item_id: int, quantity: int) -> VendorLineItem:
        line = _settlement_for(vendor_id, self.settlements).line(item_id)
        # returned may exceed taken; quantity_sold floors at zero
        line.quantity_returned = _coerce_quantity(quantity)
        return line

    def build_record(self, session_key: str, session_date: date) -> SettlementRecord:
        vendors = []
        for state in self.settlements.values():
            totals = state.totals()
            vendors.append(
                VendorSettlementRecord(
                    vendor_id=state.vendor.id,
                    vendor_name=state.vendor.name,
                    commission_rate=state.vendor.commission_rate,
                    items=tuple(replace(line) for line in state.lines.values() if line.quantity_sold > 0),
                    total_revenue=totals.total_revenue,
                    total_cost=totals.total_cost,
                    gross_profit=totals.gross_profit,
                    vendor_commission=totals.commission,
                    net_profit=totals.net_profit,
                )
            )
        session_totals = compute_session_totals(state.totals() for state in self.settlements.values())
        return SettlementRecord(
            session_key=session_key,
            date=session_date,
            vendors=tuple(vendors),
            total_revenue=session_totals.total_revenue,
            total_cost=session_totals.total_cost,
            gross_profit=session_totals.gross_profit,
            total_vendor_commission=session_totals.total_vendor_commission,
            total_net_profit=session_totals.total_net_profit,
        )


class SettlementSession:
    """One worker's recording session for one business day."""

    def __init__(
        self,
        catalog: Catalog | Iterable[CatalogItem],
        session_date: date | None = None,
        session_key: str | None = None,
    ) -> None:
        self.catalog = catalog if isinstance(catalog, Catalog) else Catalog(catalog)
        self.date = session_date or date.today()
        self.session_key = session_key or generate_session_id()
        self.phase: OpenPhase | LockedPhase = OpenPhase(self.catalog)

    @property
    def morning_locked(self) -> bool:
        return self.phase.locked

    @property
    def settlements(self) -> Mapping[int, VendorSettlementState]:
        return self.phase.settlements

    @property
    def selected_vendor_ids(self) -> frozenset[int]:
        return frozenset(self.phase.settlements)

    def _refuse(self, operation: str) -> bool:
        logger.debug("session %s refused %s in %s phase", self.session_key, operation, self.phase.name)
        return False

    def select_vendor(self, vendor: VendorProfile) -> bool:
        phase = self.phase
        if not isinstance(phase, OpenPhase):
            return self._refuse("select_vendor")
        try:
            phase.select_vendor(vendor)
        except PhaseClosedError:
            return self._refuse("select_vendor")
        return True

    def deselect_vendor(self, vendor_id: int) -> bool:
        phase = self.phase
        if not isinstance(phase, OpenPhase):
            return self._refuse("deselect_vendor")
        try:
            phase.deselect_vendor(vendor_id)
        except PhaseClosedError:
            return self._refuse("deselect_vendor")
        return True

    def set_quantity_taken(self, vendor_id: int, item_id: int, quantity: int) -> bool:
        phase = self.phase
        if not isinstance(phase, OpenPhase):
            return self._refuse("set_quantity_taken")
        try:
            phase.set_quantity_taken(vendor_id, item_id, quantity)
        except PhaseClosedError:
            return self._refuse("set_quantity_taken")
        return True

    def set_quantity_returned(self, vendor_id: int, item_id: int, quantity: int) -> bool:
        phase = self.phase
        if not isinstance(phase, LockedPhase):
            return self._refuse("set_quantity_returned")
        phase.set_quantity_returned(vendor_id, item_id, quantity)
        return True

    def lock_morning_stock(self) -> bool:
        phase = self.phase
        if not isinstance(phase, OpenPhase):
            return self._refuse("lock_morning_stock")
        try:
            self.phase = phase.lock()
        except PhaseClosedError:
            return self._refuse("lock_morning_stock")
        logger.info(
            "session %s locked morning stock for %d vendor(s)",
            self.session_key,
            len(self.phase.settlements),
        )
        return True

    def compute_vendor_totals(self, vendor_id: int) -> VendorTotals:
        return _settlement_for(vendor_id, self.phase.settlements).totals()

    def compute_session_totals(self) -> SessionTotals:
        return compute_session_totals(state.totals() for state in self.phase.settlements.values())

    def build_record(self) -> SettlementRecord:
        if not self.phase.settlements:
            raise SettlementValidationError(NO_VENDOR_SELECTED)
        if not isinstance(self.phase, LockedPhase):
            raise SettlementValidationError(MORNING_NOT_LOCKED)
        return self.phase.build_record(self.session_key, self.date)

    def submit(self, persist: Callable[[SettlementRecord], T]) -> T:
        """Hand the final record to ``persist`` and start over on success.

        If ``persist`` raises, the session is left untouched so the same record
        (same session key) can be submitted again.
        """
        record = self.build_record()
        result = persist(record)
        logger.info(
            "session %s submitted %d vendor settlement(s) for %s",
            record.session_key,
            len(record.vendors),
            record.date.isoformat(),
        )
        self.reset()
        return result

    def reset(self) -> None:
        self.session_key = generate_session_id()
        self.phase = OpenPhase(self.catalog)
