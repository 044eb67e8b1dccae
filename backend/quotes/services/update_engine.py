"""
Quotation update engine.

Merges a partial change request into the current quotation snapshot and
either produces the next snapshot (plus the audit diff) or rejects the
request with a reason code:

- ``VALIDATION_FAILED``: malformed scalar fields or rate entries
- ``RATE_LOCKED``: rate collections changed while the status locks them
- ``CLOSE_REASON_REQUIRED``: CLOSED/CANCELLED without a reason
- ``IMMUTABLE_FIELD_CHANGED``: the reference number was altered

The engine is pure. Loading, saving and auditing live in
``quotes.services.quotation_service``, which is the only caller expected to
use it, because the lock and close-reason gates must run against the
current stored state.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..dataclasses import AuditDiff, QuotationSnapshot, UpdateApplied, UpdateRejected
from ..exceptions import (
    CloseReasonRequiredError,
    ImmutableFieldError,
    PatchValidationError,
    RateLockedError,
    UpdateRejection,
)
from ..offers import Offer, ensure_offer_sequence, materialize_offers, normalize_offers
from ..rates import (
    RateItem,
    compute_profit,
    ensure_single_primary_rate,
    estimated_cost,
    estimated_cost_errors,
    primary_rate,
    rate_entry_errors,
    rates_equal,
    sanitize_rate_list,
)
from ..serializers import QuotationPatchSerializer
from ..status import is_backward_transition, is_rate_edit_locked, normalize_status, requires_close_reason

logger = logging.getLogger(__name__)

UPDATE_ACTION = "quotation.update"

CARRIER_RATES = "carrierRates"
EXTRA_SERVICES = "extraServices"
CUSTOMER_RATES = "customerRates"
OFFERS = "offers"
RATE_FIELDS = (CARRIER_RATES, EXTRA_SERVICES, CUSTOMER_RATES)
REFERENCE_FIELDS = ("quotationNumber", "referenceNumber")

# payload key -> snapshot attribute
_SCALAR_FIELDS = {
    "client": "client",
    "origin": "origin",
    "destination": "destination",
    "cargoType": "cargo_type",
    "cargoDescription": "cargo_description",
}


def apply_update(current: QuotationSnapshot, patch: Any):
    """
    Returns ``UpdateApplied(snapshot, audit_diff)`` or
    ``UpdateRejected(reason_code, message, fields)``. Never raises for a
    business-rule problem.
    """
    try:
        return _merge(current, patch)
    except UpdateRejection as exc:
        logger.warning(f"Update of quotation {current.id} rejected ({exc.reason_code}): {exc.message}")
        return UpdateRejected(reason_code=exc.reason_code, message=exc.message, fields=exc.fields)


def _validate_patch(patch: Any) -> Dict[str, Any]:
    if not isinstance(patch, Mapping):
        raise PatchValidationError(
            "Update payload must be an object",
            {"non_field_errors": ["Expected an object of fields to update."]},
        )

    ser = QuotationPatchSerializer(data=patch, partial=True)
    errors: Dict[str, List[str]] = {}
    if not ser.is_valid():
        errors.update({key: [str(msg) for msg in msgs] for key, msgs in _flatten_errors(ser.errors).items()})

    for key in RATE_FIELDS:
        if key in patch:
            errors.update(rate_entry_errors(patch[key], key))

    if errors:
        raise PatchValidationError("Update payload failed validation", errors)
    return dict(ser.validated_data)


def _flatten_errors(errors, prefix: str = "") -> Dict[str, List[Any]]:
    flat: Dict[str, List[Any]] = {}
    for key, value in errors.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten_errors(value, path))
        else:
            flat[path] = list(value) if isinstance(value, (list, tuple)) else [value]
    return flat


def _incoming_rates(patch: Mapping[str, Any], key: str, current: List[RateItem]) -> List[RateItem]:
    if key not in patch:
        return current
    return sanitize_rate_list(patch[key], key)


def _incoming_offers(patch: Mapping[str, Any], current: List[Offer]) -> List[Offer]:
    if OFFERS not in patch:
        return current
    return ensure_offer_sequence(normalize_offers(patch[OFFERS]))


def _locked_changes(pairs: Sequence[Tuple[str, Sequence[RateItem], Sequence[RateItem]]]) -> List[str]:
    return [name for name, before, after in pairs if not rates_equal(before, after)]


def _resolve_close_reason(current: QuotationSnapshot, data: Mapping[str, Any], target_status: str) -> Optional[str]:
    if "closeReason" in data:
        reason = (data["closeReason"] or "").strip()
    else:
        reason = (current.close_reason or "").strip()

    if not requires_close_reason(target_status):
        return None
    if not reason:
        raise CloseReasonRequiredError(
            f"A close reason is required for status {target_status}",
            {"closeReason": ["This field is required when the quotation is closed or cancelled."]},
        )
    return reason


def _resolve_reference(current: QuotationSnapshot, data: Mapping[str, Any]) -> str:
    existing = (current.quotation_number or "").strip()
    for key in REFERENCE_FIELDS:
        if key not in data:
            continue
        requested = (data[key] or "").strip()
        if existing and requested != existing:
            raise ImmutableFieldError(
                "The quotation number cannot be changed once assigned",
                {key: [f"Quotation number is fixed at '{existing}'."]},
            )
        if not existing and requested:
            existing = requested
    return existing


def _merge_attributes(current: Mapping[str, Any], incoming: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    merged = dict(current)
    for key, value in (incoming or {}).items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


def _merge(current: QuotationSnapshot, patch: Any) -> UpdateApplied:
    data = _validate_patch(patch)

    # 1. current state, normalised
    cur_carrier = list(current.carrier_rates)
    cur_extra = list(current.extra_services)
    cur_customer = ensure_single_primary_rate(current.customer_rates)
    cur_offers = ensure_offer_sequence(list(current.offers))

    # 2. incoming collections replace current ones wholesale
    carrier = _incoming_rates(patch, CARRIER_RATES, cur_carrier)
    extra = _incoming_rates(patch, EXTRA_SERVICES, cur_extra)
    customer = ensure_single_primary_rate(_incoming_rates(patch, CUSTOMER_RATES, cur_customer))
    offers = _incoming_offers(patch, cur_offers)
    if current.id is not None:
        offers = materialize_offers(offers, current.id)

    # 3. derived values, never taken from the request
    profit = compute_profit(primary_rate(customer), carrier, extra)
    cost = estimated_cost(carrier, extra)
    cost_errors = estimated_cost_errors(cost)
    if cost_errors:
        raise PatchValidationError("Update payload failed validation", cost_errors)

    # 4. rate lock
    current_status = normalize_status(current.status)
    target_status = data.get("status", current_status)
    if is_rate_edit_locked(target_status):
        changed = _locked_changes([
            (CARRIER_RATES, cur_carrier, carrier),
            (EXTRA_SERVICES, cur_extra, extra),
            (CUSTOMER_RATES, cur_customer, customer),
        ])
        if changed:
            raise RateLockedError(
                f"Rates are locked after confirmation (status {target_status})",
                {name: [f"Cannot change rates while the quotation is {target_status}."] for name in changed},
            )

    # 5. close reason
    close_reason = _resolve_close_reason(current, data, target_status)

    if is_backward_transition(current_status, target_status):
        logger.warning(f"Quotation {current.id} moved backwards: {current_status} -> {target_status}")

    # 6. editable scalars
    scalars = {attr: data[key] for key, attr in _SCALAR_FIELDS.items() if key in data}
    attributes = _merge_attributes(current.attributes, data.get("attributes"))

    # 7. reference number
    quotation_number = _resolve_reference(current, data)

    merged = dataclasses.replace(
        current,
        quotation_number=quotation_number,
        status=target_status,
        close_reason=close_reason,
        estimated_cost=cost,
        profit=profit,
        carrier_rates=tuple(carrier),
        extra_services=tuple(extra),
        customer_rates=tuple(customer),
        offers=tuple(offers),
        attributes=attributes,
        **scalars,
    )
    changed = merged != current
    next_snapshot = dataclasses.replace(merged, version=current.version + 1) if changed else merged

    diff = AuditDiff(
        action=UPDATE_ACTION,
        resource_id=current.id,
        before=current.audit_fields(),
        after=next_snapshot.audit_fields(),
    )
    return UpdateApplied(snapshot=next_snapshot, audit_diff=diff, changed=changed)
