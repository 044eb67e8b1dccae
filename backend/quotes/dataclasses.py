from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from .money import ONE, format_amount, parse_decimal
from .offers import Offer, ensure_offer_sequence, normalize_offers, offers_to_payload
from .rates import (
    Profit,
    RateItem,
    compute_profit,
    estimated_cost,
    primary_rate,
    rates_to_payload,
    sanitize_customer_rates,
    sanitize_rate_list,
)
from .status import normalize_status

# Top-level fields a caller may edit directly; also the audit projection.
EDITABLE_FIELDS = ("client", "origin", "destination", "cargoType", "cargoDescription")
AUDITED_FIELDS = EDITABLE_FIELDS + ("status", "estimatedCost", "profit", "closeReason", "attributes")


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class QuotationSnapshot:
    """
    Immutable view of one quotation as the update engine sees it.

    Rate collections and offers are tuples; an update always builds a new
    snapshot instead of touching this one.
    """
    id: Optional[str]
    quotation_number: str
    status: str
    client: str = ""
    origin: str = ""
    destination: str = ""
    cargo_type: str = ""
    cargo_description: Optional[str] = None
    close_reason: Optional[str] = None
    estimated_cost: Decimal = ONE
    profit: Optional[Profit] = None
    carrier_rates: Tuple[RateItem, ...] = ()
    extra_services: Tuple[RateItem, ...] = ()
    customer_rates: Tuple[RateItem, ...] = ()
    offers: Tuple[Offer, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=dict)
    version: int = 0

    @property
    def primary_customer_rate(self) -> Optional[RateItem]:
        return primary_rate(self.customer_rates)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "QuotationSnapshot":
        """
        Build a snapshot from a loosely typed mapping (camelCase keys, the
        shape stored in the database and sent by clients). Collections are
        normalised; derived values are recomputed, never read.
        """
        carrier = sanitize_rate_list(record.get("carrierRates"), "carrierRates")
        extra = sanitize_rate_list(record.get("extraServices"), "extraServices")
        customer, primary = sanitize_customer_rates(record.get("customerRates"))
        offers = ensure_offer_sequence(normalize_offers(record.get("offers")))
        raw_id = record.get("id")
        attributes = record.get("attributes")
        version = parse_decimal(record.get("version"))
        return cls(
            id=str(raw_id) if raw_id is not None else None,
            quotation_number=_text(record.get("quotationNumber")).strip(),
            status=normalize_status(record.get("status")),
            client=_text(record.get("client")),
            origin=_text(record.get("origin")),
            destination=_text(record.get("destination")),
            cargo_type=_text(record.get("cargoType")),
            cargo_description=record.get("cargoDescription") if isinstance(record.get("cargoDescription"), str) else None,
            close_reason=_text(record.get("closeReason")).strip() or None,
            estimated_cost=estimated_cost(carrier, extra),
            profit=compute_profit(primary, carrier, extra),
            carrier_rates=tuple(carrier),
            extra_services=tuple(extra),
            customer_rates=tuple(customer),
            offers=tuple(offers),
            attributes=dict(attributes) if isinstance(attributes, Mapping) else {},
            version=int(version) if version is not None else 0,
        )

    def audit_fields(self) -> Dict[str, Any]:
        return {
            "client": self.client,
            "origin": self.origin,
            "destination": self.destination,
            "cargoType": self.cargo_type,
            "cargoDescription": self.cargo_description,
            "status": self.status,
            "estimatedCost": format_amount(self.estimated_cost),
            "profit": self.profit.to_dict() if self.profit else None,
            "closeReason": self.close_reason,
            "attributes": dict(self.attributes),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "quotationNumber": self.quotation_number,
            **self.audit_fields(),
            "carrierRates": rates_to_payload(self.carrier_rates),
            "extraServices": rates_to_payload(self.extra_services),
            "customerRates": rates_to_payload(self.customer_rates),
            "offers": offers_to_payload(self.offers),
            "version": self.version,
        }


@dataclass(frozen=True)
class AuditDiff:
    action: str
    resource_id: Optional[str]
    before: Dict[str, Any]
    after: Dict[str, Any]

    @property
    def changed_fields(self) -> Tuple[str, ...]:
        return tuple(key for key in AUDITED_FIELDS if self.before.get(key) != self.after.get(key))


@dataclass(frozen=True)
class UpdateApplied:
    snapshot: QuotationSnapshot
    audit_diff: AuditDiff
    changed: bool = True

    ok = True


@dataclass(frozen=True)
class UpdateRejected:
    reason_code: str
    message: str
    fields: Dict[str, Any] = field(default_factory=dict)

    ok = False
