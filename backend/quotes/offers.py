"""
Alternative commercial offers attached to a quotation.

Offers are replaced as a whole on every update. This module turns the raw
payload list into ``Offer`` values, keeps ``order``/``offer_number``
consistent with list position, and prepares offers for storage. It knows
nothing about persistence; the owning quotation id is stamped on last.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .money import format_amount, parse_decimal

logger = logging.getLogger(__name__)


def format_offer_number(index: int) -> str:
    return str(index + 1)


def trim_optional_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


# payload key -> Offer attribute, for the plain string fields
_STRING_FIELDS = {
    "title": "title",
    "transportMode": "transport_mode",
    "routeSummary": "route_summary",
    "borderPort": "border_port",
    "incoterm": "incoterm",
    "shipper": "shipper",
    "terminal": "terminal",
    "shipmentCondition": "shipment_condition",
    "transitTime": "transit_time",
    "rateCurrency": "rate_currency",
    "notes": "notes",
    "include": "include",
    "exclude": "exclude",
    "remark": "remark",
}

_NUMBER_FIELDS = {
    "rate": "rate",
    "grossWeight": "gross_weight",
    "dimensionsCbm": "dimensions_cbm",
}

_NESTED_LIST_FIELDS = {
    "dimensions": "dimensions",
    "carrierRates": "carrier_rates",
    "extraServices": "extra_services",
    "customerRates": "customer_rates",
}


@dataclass(frozen=True)
class Offer:
    id: str
    order: int
    quotation_id: Optional[str] = None
    offer_number: Optional[str] = None
    title: Optional[str] = None

    transport_mode: Optional[str] = None
    route_summary: Optional[str] = None
    border_port: Optional[str] = None

    incoterm: Optional[str] = None
    shipper: Optional[str] = None
    terminal: Optional[str] = None

    shipment_condition: Optional[str] = None
    transit_time: Optional[str] = None
    rate: Optional[Decimal] = None
    rate_currency: Optional[str] = None
    gross_weight: Optional[Decimal] = None
    dimensions_cbm: Optional[Decimal] = None

    # passed through untouched apart from dropping non-object entries
    dimensions: Optional[tuple] = None
    carrier_rates: Optional[tuple] = None
    extra_services: Optional[tuple] = None
    customer_rates: Optional[tuple] = None
    profit: Optional[Mapping[str, Any]] = None

    notes: Optional[str] = None
    include: Optional[str] = None
    exclude: Optional[str] = None
    remark: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Storage form: camelCase keys, empty values omitted."""
        data: Dict[str, Any] = {"id": self.id, "order": self.order}
        if self.quotation_id is not None:
            data["quotationId"] = self.quotation_id
        if self.offer_number is not None:
            data["offerNumber"] = self.offer_number
        for key, attr in _STRING_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        for key, attr in _NUMBER_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = format_amount(value)
        for key, attr in _NESTED_LIST_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = [dict(item) for item in value]
        if self.profit is not None:
            data["profit"] = dict(self.profit)
        return data


def _passthrough_list(value: Any) -> Optional[tuple]:
    if not isinstance(value, (list, tuple)):
        return None
    return tuple(dict(item) for item in value if isinstance(item, Mapping))


def _coerce_order(value: Any, fallback: int) -> int:
    parsed = parse_decimal(value)
    if parsed is None or parsed != parsed.to_integral_value():
        return fallback
    return int(parsed)


def _offer_from_mapping(item: Mapping[str, Any], index: int) -> Offer:
    raw_id = item.get("id")
    offer_id = raw_id.strip() if isinstance(raw_id, str) and raw_id.strip() else str(uuid.uuid4())

    values: Dict[str, Any] = {
        "id": offer_id,
        "order": _coerce_order(item.get("order"), index),
        "quotation_id": trim_optional_string(item.get("quotationId")),
        "offer_number": trim_optional_string(item.get("offerNumber")),
    }
    for key, attr in _STRING_FIELDS.items():
        values[attr] = trim_optional_string(item.get(key))
    for key, attr in _NUMBER_FIELDS.items():
        values[attr] = parse_decimal(item.get(key))
    for key, attr in _NESTED_LIST_FIELDS.items():
        values[attr] = _passthrough_list(item.get(key))
    profit = item.get("profit")
    values["profit"] = dict(profit) if isinstance(profit, Mapping) else None
    return Offer(**values)


def normalize_offers(raw: Any) -> List[Offer]:
    """
    Build ``Offer`` values from a raw payload list.

    Non-list input gives ``[]``; entries that are not objects are dropped.
    Missing ids get a fresh uuid, missing ``order`` defaults to the entry's
    position in ``raw``.
    """
    if not isinstance(raw, (list, tuple)):
        return []

    offers: List[Offer] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            logger.debug(f"Dropping offer entry {index}: not an object")
            continue
        offers.append(_offer_from_mapping(entry, index))
    return offers


def ensure_offer_sequence(offers: List[Offer]) -> List[Offer]:
    """
    Make ``order`` match list position and fill or trim offer numbers. Custom
    numbers are kept; numbers that were derived from the old position move
    with the offer.

    Returns the very same list object when nothing needed changing, so callers
    can detect a no-op with ``is``.
    """
    mutated = False
    result: List[Offer] = []
    for index, offer in enumerate(offers):
        raw_number = offer.offer_number if isinstance(offer.offer_number, str) else ""
        trimmed = raw_number.strip()
        changes: Dict[str, Any] = {}
        if offer.order != index:
            changes["order"] = index
        # a number derived from the old position follows the offer to its new one
        if not trimmed or (offer.order != index and trimmed == format_offer_number(offer.order)):
            changes["offer_number"] = format_offer_number(index)
        elif trimmed != raw_number:
            changes["offer_number"] = trimmed

        if changes:
            mutated = True
            result.append(replace(offer, **changes))
        else:
            result.append(offer)
    return result if mutated else offers


def materialize_offers(offers: Sequence[Offer], quotation_id: Any) -> List[Offer]:
    """Stamp every offer with its owning quotation."""
    owner = str(quotation_id)
    return [offer if offer.quotation_id == owner else replace(offer, quotation_id=owner) for offer in offers]


def offers_to_payload(offers: Sequence[Offer]) -> List[Dict[str, Any]]:
    return [offer.to_dict() for offer in offers]


# ---- outbound serialisation (API responses) ----

def sanitize_offer_dimensions(value: Any) -> Optional[List[Dict[str, Any]]]:
    """Dimension rows with at least one measurement; None when nothing is left."""
    if not isinstance(value, (list, tuple)):
        return None
    items: List[Dict[str, Any]] = []
    for entry in value:
        if not isinstance(entry, Mapping):
            continue
        length = parse_decimal(entry.get("length"))
        width = parse_decimal(entry.get("width"))
        height = parse_decimal(entry.get("height"))
        quantity = parse_decimal(entry.get("quantity"))
        cbm = parse_decimal(entry.get("cbm"))
        if length is None and width is None and height is None and cbm is None:
            continue
        row = {
            "length": format_amount(length or 0),
            "width": format_amount(width or 0),
            "height": format_amount(height or 0),
            "quantity": format_amount(quantity or 0),
        }
        if cbm is not None:
            row["cbm"] = format_amount(cbm)
        items.append(row)
    return items or None


def sanitize_offer_rate_items(value: Any) -> Optional[List[Dict[str, Any]]]:
    """Keep only the rate keys that parse; rows with nothing usable are dropped."""
    if not isinstance(value, (list, tuple)):
        return None
    items: List[Dict[str, Any]] = []
    for entry in value:
        if not isinstance(entry, Mapping):
            continue
        row: Dict[str, Any] = {}
        name = trim_optional_string(entry.get("name"))
        currency = trim_optional_string(entry.get("currency"))
        if name:
            row["name"] = name
        if currency:
            row["currency"] = currency
        if "amount" in entry:
            amount = parse_decimal(entry.get("amount"))
            if amount is not None:
                row["amount"] = format_amount(amount)
        if isinstance(entry.get("isPrimary"), bool):
            row["isPrimary"] = entry["isPrimary"]
        if row:
            items.append(row)
    return items or None


def sanitize_offer_profit(value: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(value, Mapping):
        return None
    row: Dict[str, Any] = {}
    amount = parse_decimal(value.get("amount"))
    currency = trim_optional_string(value.get("currency"))
    if amount is not None:
        row["amount"] = format_amount(amount)
    if currency:
        row["currency"] = currency
    return row or None


def serialize_offer_for_payload(offer: Offer, index: int) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": trim_optional_string(offer.id) or f"offer-{index + 1}",
        "order": index,
        "offerNumber": trim_optional_string(offer.offer_number) or format_offer_number(index),
    }
    if offer.quotation_id:
        data["quotationId"] = offer.quotation_id
    for key, attr in _STRING_FIELDS.items():
        value = trim_optional_string(getattr(offer, attr))
        if value is not None:
            data[key] = value
    for key, attr in _NUMBER_FIELDS.items():
        value = getattr(offer, attr)
        if value is not None:
            data[key] = format_amount(value)

    nested = {
        "dimensions": sanitize_offer_dimensions(offer.dimensions),
        "carrierRates": sanitize_offer_rate_items(offer.carrier_rates),
        "extraServices": sanitize_offer_rate_items(offer.extra_services),
        "customerRates": sanitize_offer_rate_items(offer.customer_rates),
        "profit": sanitize_offer_profit(offer.profit),
    }
    data.update({key: value for key, value in nested.items() if value is not None})
    return data


def serialize_offers_for_payload(offers: Sequence[Offer]) -> List[Dict[str, Any]]:
    return [serialize_offer_for_payload(offer, index) for index, offer in enumerate(offers)]
