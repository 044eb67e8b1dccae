"""
Rate line handling for quotations.

Covers the three rate collections a quotation carries (carrier rates,
extra-service rates, customer rates):

- normalising loosely typed input into ``RateItem`` values,
- keeping exactly one primary customer rate,
- deriving profit and estimated cost from the collections.

Everything here is pure: no database access, no shared state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from django.conf import settings

from .money import MAX_AMOUNT, ONE, ZERO, format_amount, to_amount
from .results import Dropped, EntryResult, Invalid, Ok, invalid_entries, ok_values

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "1", "yes", "y", "on"}


def default_currency() -> str:
    return getattr(settings, "QUOTES_DEFAULT_CURRENCY", "USD") or "USD"


@dataclass(frozen=True)
class RateItem:
    name: str
    currency: str
    amount: Decimal
    is_primary: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "currency": self.currency,
            "amount": format_amount(self.amount),
            "isPrimary": self.is_primary,
        }


@dataclass(frozen=True)
class Profit:
    currency: str
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"currency": self.currency, "amount": format_amount(self.amount)}


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _parse_rate_entry(index: int, entry: Any) -> EntryResult:
    if not isinstance(entry, Mapping):
        return Dropped(index, f"expected an object, got {type(entry).__name__}")

    raw_name = entry.get("name")
    name = raw_name.strip() if isinstance(raw_name, str) else ""

    raw_currency = entry.get("currency")
    currency = raw_currency.strip() if isinstance(raw_currency, str) else ""
    if not currency:
        currency = default_currency()

    amount = to_amount(entry.get("amount"))
    if amount < ZERO:
        return Invalid(index, "amount", "amount must not be negative")
    if amount >= MAX_AMOUNT:
        return Invalid(index, "amount", f"amount must be below {format_amount(MAX_AMOUNT)}")

    return Ok(RateItem(name=name, currency=currency, amount=amount, is_primary=_coerce_flag(entry.get("isPrimary"))))


def parse_rate_entries(value: Any) -> List[EntryResult]:
    """Tag every entry of ``value``; non-list input yields no entries."""
    if not isinstance(value, (list, tuple)):
        return []
    return [_parse_rate_entry(idx, entry) for idx, entry in enumerate(value)]


def sanitize_rate_list(value: Any, field: str = "rates") -> List[RateItem]:
    """
    Normalise an arbitrary value into a list of rate items.

    Never raises. Entries that are not objects (and entries with a negative or
    out-of-range amount) are skipped; ``field`` only names the collection in
    the debug log.
    """
    results = parse_rate_entries(value)
    for entry in results:
        if isinstance(entry, Dropped):
            logger.debug(f"Skipped {field}[{entry.index}]: {entry.reason}")
        elif isinstance(entry, Invalid):
            logger.debug(f"Skipped {field}[{entry.index}].{entry.field}: {entry.reason}")
    return ok_values(results)


def rate_entry_errors(value: Any, field: str) -> Dict[str, List[str]]:
    """Field-path keyed messages for entries that are shaped right but invalid."""
    errors: Dict[str, List[str]] = {}
    for bad in invalid_entries(parse_rate_entries(value)):
        errors.setdefault(f"{field}[{bad.index}].{bad.field}", []).append(bad.reason)
    return errors


def ensure_single_primary_rate(rates: Sequence[RateItem]) -> List[RateItem]:
    """
    Keep the first flagged rate as primary (index 0 when none is flagged) and
    clear every other flag. Idempotent.
    """
    if not rates:
        return []
    target = next((idx for idx, rate in enumerate(rates) if rate.is_primary), 0)
    return [
        rate if rate.is_primary == (idx == target) else replace(rate, is_primary=(idx == target))
        for idx, rate in enumerate(rates)
    ]


def primary_rate(rates: Iterable[RateItem]) -> Optional[RateItem]:
    return next((rate for rate in rates if rate.is_primary), None)


def sanitize_customer_rates(value: Any) -> Tuple[List[RateItem], Optional[RateItem]]:
    rates = ensure_single_primary_rate(sanitize_rate_list(value, "customerRates"))
    return rates, primary_rate(rates)


def sum_rate_amounts(rates: Iterable[RateItem]) -> Decimal:
    return sum((rate.amount for rate in rates), ZERO)


def compute_profit(
    primary: Optional[RateItem],
    carrier_rates: Sequence[RateItem],
    extra_services: Sequence[RateItem],
) -> Profit:
    """
    Primary customer rate minus everything paid out. A negative amount is a
    loss, which is a valid state.
    """
    if primary is None:
        return Profit(currency=default_currency(), amount=ZERO)

    amount = primary.amount - sum_rate_amounts(carrier_rates) - sum_rate_amounts(extra_services)
    currency = (
        primary.currency
        or (carrier_rates[0].currency if carrier_rates else "")
        or (extra_services[0].currency if extra_services else "")
        or default_currency()
    )
    return Profit(currency=currency, amount=amount)


def estimated_cost(carrier_rates: Sequence[RateItem], extra_services: Sequence[RateItem]) -> Decimal:
    """Total cost of the quotation, floored at 1."""
    total = sum_rate_amounts(carrier_rates) + sum_rate_amounts(extra_services)
    return total if total > ONE else ONE


def estimated_cost_errors(cost: Decimal) -> Dict[str, List[str]]:
    """Rejects totals the estimated cost column cannot hold."""
    if cost < MAX_AMOUNT:
        return {}
    return {"estimatedCost": [f"carrier and extra costs must total below {format_amount(MAX_AMOUNT)}"]}


def rates_equal(a: Sequence[RateItem], b: Sequence[RateItem]) -> bool:
    """Content equality on name, currency, amount (numeric) and primary flag."""
    if len(a) != len(b):
        return False
    return all(
        x.name == y.name and x.currency == y.currency and x.amount == y.amount and x.is_primary == y.is_primary
        for x, y in zip(a, b)
    )


def rates_to_payload(rates: Iterable[RateItem]) -> List[Dict[str, Any]]:
    return [rate.to_dict() for rate in rates]
