"""
Quotation write paths: create, update and re-deriving stored totals.

``update_quotation`` is the transaction around the update engine:
lock the row, merge and validate against the stored state, write back with a
version check, then record the audit entry once the transaction is done.
"""
from __future__ import annotations

import dataclasses
import logging
from decimal import ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.audit import audit_log

from ..dataclasses import QuotationSnapshot
from ..exceptions import ConcurrentUpdateError, PatchValidationError, QuotationNotFound
from ..models import Quotation
from ..money import TWOPLACES, parse_decimal
from ..offers import materialize_offers, offers_to_payload
from ..rates import estimated_cost_errors, rate_entry_errors
from ..serializers import QuotationCreateSerializer
from ..status import CREATED
from ..store import load_quotation, save_quotation, snapshot_columns, snapshot_from_row
from .update_engine import RATE_FIELDS, apply_update

logger = logging.getLogger(__name__)

CREATE_ACTION = "quotation.create"
NUMBER_ATTEMPTS = 3


def _actor_fields(actor) -> Dict[str, Any]:
    if actor is None or not getattr(actor, "is_authenticated", False):
        return {"actor_id": None, "actor_contact": None}
    return {"actor_id": actor.pk, "actor_contact": actor.contact}


def _expected_version(patch: Any) -> Optional[int]:
    if not isinstance(patch, Mapping):
        return None
    parsed = parse_decimal(patch.get("version"))
    if parsed is None or parsed != parsed.to_integral_value():
        return None
    return int(parsed)


def next_quotation_number(now=None) -> str:
    """``<prefix>-<year>-<seq>``, sequence counted per year, zero-padded to 3."""
    year = (now or timezone.now()).year
    prefix = f"{getattr(settings, 'QUOTES_NUMBER_PREFIX', 'QUO')}-{year}-"
    seq = Quotation.objects.filter(quotation_number__startswith=prefix).count() + 1
    while Quotation.objects.filter(quotation_number=f"{prefix}{seq:03d}").exists():
        seq += 1
    return f"{prefix}{seq:03d}"


def create_quotation(payload: Any, actor=None, ip: Optional[str] = None, user_agent: Optional[str] = None) -> QuotationSnapshot:
    """
    Create a quotation in status CREATED from a client payload.

    Rate collections and offers go through the same normalisation as updates;
    estimated cost and profit are derived, whatever the payload says.
    """
    if not isinstance(payload, Mapping):
        raise PatchValidationError("Create payload must be an object", {"non_field_errors": ["Expected an object."]})

    ser = QuotationCreateSerializer(data=payload)
    errors: Dict[str, List[str]] = {}
    if not ser.is_valid():
        errors.update({key: [str(m) for m in msgs] for key, msgs in ser.errors.items()})
    for key in RATE_FIELDS:
        if key in payload:
            errors.update(rate_entry_errors(payload[key], key))
    if errors:
        raise PatchValidationError("Create payload failed validation", errors)

    record = {
        **ser.validated_data,
        "status": CREATED,
        "carrierRates": payload.get("carrierRates"),
        "extraServices": payload.get("extraServices"),
        "customerRates": payload.get("customerRates"),
        "offers": payload.get("offers"),
    }
    draft = QuotationSnapshot.from_record(record)
    cost_errors = estimated_cost_errors(draft.estimated_cost)
    if cost_errors:
        raise PatchValidationError("Create payload failed validation", cost_errors)
    created_by = actor if actor is not None and getattr(actor, "is_authenticated", False) else None

    for attempt in range(1, NUMBER_ATTEMPTS + 1):
        number = next_quotation_number()
        columns = snapshot_columns(dataclasses.replace(draft, quotation_number=number))
        try:
            with transaction.atomic():
                row = Quotation.objects.create(created_by=created_by, **columns)
                row.offers = offers_to_payload(materialize_offers(draft.offers, row.pk))
                row.save(update_fields=["offers"])
            break
        except IntegrityError:
            if attempt == NUMBER_ATTEMPTS:
                raise
            logger.warning(f"Quotation number {number} already taken, retrying ({attempt}/{NUMBER_ATTEMPTS})")

    snapshot = snapshot_from_row(row)
    logger.info(f"Created quotation {snapshot.quotation_number} (id={snapshot.id})")
    audit_log(
        CREATE_ACTION,
        snapshot.id,
        after=snapshot.audit_fields(),
        ip=ip,
        user_agent=user_agent,
        metadata={"quotationNumber": snapshot.quotation_number},
        **_actor_fields(actor),
    )
    return snapshot


def update_quotation(quotation_id, patch: Any, actor=None, ip: Optional[str] = None, user_agent: Optional[str] = None):
    """
    Apply ``patch`` to the stored quotation.

    Returns the engine outcome (``UpdateApplied`` or ``UpdateRejected``).
    Raises QuotationNotFound for an unknown id and ConcurrentUpdateError when
    the caller's ``version`` is stale or a concurrent write won the race.
    """
    with transaction.atomic():
        current = load_quotation(quotation_id, for_update=True)
        if current is None:
            raise QuotationNotFound(quotation_id)

        expected = _expected_version(patch)
        if expected is not None and expected != current.version:
            raise ConcurrentUpdateError(quotation_id, expected, current.version)

        outcome = apply_update(current, patch)
        if not outcome.ok:
            return outcome
        if not outcome.changed:
            logger.info(f"Update of quotation {quotation_id} changed nothing; skipping write")
            return outcome

        save_quotation(quotation_id, outcome.snapshot, expected_version=current.version)

    diff = outcome.audit_diff
    logger.info(
        f"Updated quotation {outcome.snapshot.quotation_number} to version {outcome.snapshot.version} "
        f"(changed: {', '.join(diff.changed_fields) or 'collections only'})"
    )
    audit_log(
        diff.action,
        diff.resource_id,
        before=diff.before,
        after=diff.after,
        ip=ip,
        user_agent=user_agent,
        metadata={"changed": list(diff.changed_fields), "version": outcome.snapshot.version},
        **_actor_fields(actor),
    )
    return outcome


def recompute_stored_totals(dry_run: bool = False) -> int:
    """
    Re-derive estimated cost and profit for every stored quotation and fix
    rows whose stored values drifted. Returns the number of rows that differ.
    """
    fixed = 0
    for row in Quotation.objects.order_by("pk").iterator():
        snapshot = snapshot_from_row(row)
        cost = snapshot.estimated_cost.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
        profit = snapshot.profit.to_dict() if snapshot.profit else {}
        if row.estimated_cost == cost and row.profit == profit:
            continue
        fixed += 1
        logger.info(f"Quotation {row.quotation_number}: cost {row.estimated_cost} -> {cost}, profit {row.profit} -> {profit}")
        if not dry_run:
            Quotation.objects.filter(pk=row.pk).update(estimated_cost=cost, profit=profit)
    return fixed
