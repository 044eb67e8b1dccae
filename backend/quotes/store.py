"""
Persistence for quotation snapshots.

``load_quotation`` / ``save_quotation`` are the only places that translate
between the ``Quotation`` row and the engine's ``QuotationSnapshot``.
``save_quotation`` is a conditional write on ``version`` so a stale snapshot
can never overwrite a newer one.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP
from typing import Any, Dict, Optional

from django.utils import timezone

from .dataclasses import QuotationSnapshot
from .exceptions import ConcurrentUpdateError, QuotationNotFound
from .models import Quotation
from .money import TWOPLACES
from .offers import offers_to_payload
from .rates import rates_to_payload

logger = logging.getLogger(__name__)


def row_to_record(row: Quotation) -> Dict[str, Any]:
    return {
        "id": row.pk,
        "quotationNumber": row.quotation_number,
        "client": row.client,
        "origin": row.origin,
        "destination": row.destination,
        "cargoType": row.cargo_type,
        "cargoDescription": row.cargo_description,
        "status": row.status,
        "closeReason": row.close_reason,
        "carrierRates": row.carrier_rates,
        "extraServices": row.extra_services,
        "customerRates": row.customer_rates,
        "offers": row.offers,
        "attributes": row.attributes,
        "version": row.version,
    }


def snapshot_from_row(row: Quotation) -> QuotationSnapshot:
    return QuotationSnapshot.from_record(row_to_record(row))


def snapshot_columns(snapshot: QuotationSnapshot) -> Dict[str, Any]:
    """Model column values for a snapshot (derived values included)."""
    return {
        "quotation_number": snapshot.quotation_number,
        "client": snapshot.client,
        "origin": snapshot.origin,
        "destination": snapshot.destination,
        "cargo_type": snapshot.cargo_type,
        "cargo_description": snapshot.cargo_description,
        "status": snapshot.status,
        "close_reason": snapshot.close_reason,
        "estimated_cost": snapshot.estimated_cost.quantize(TWOPLACES, rounding=ROUND_HALF_UP),
        "profit": snapshot.profit.to_dict() if snapshot.profit else {},
        "carrier_rates": rates_to_payload(snapshot.carrier_rates),
        "extra_services": rates_to_payload(snapshot.extra_services),
        "customer_rates": rates_to_payload(snapshot.customer_rates),
        "offers": offers_to_payload(snapshot.offers),
        "attributes": dict(snapshot.attributes),
        "version": snapshot.version,
    }


def load_quotation(quotation_id, for_update: bool = False) -> Optional[QuotationSnapshot]:
    """
    Current snapshot or None. With ``for_update`` the row stays locked until
    the surrounding transaction ends.
    """
    qs = Quotation.objects.all()
    if for_update:
        qs = qs.select_for_update()
    row = qs.filter(pk=quotation_id).first()
    if row is None:
        return None
    return snapshot_from_row(row)


def save_quotation(quotation_id, snapshot: QuotationSnapshot, expected_version: int) -> None:
    """
    Write ``snapshot`` if the stored version still equals ``expected_version``.

    Raises ConcurrentUpdateError when another write got there first and
    QuotationNotFound when the row is gone.
    """
    updated = (
        Quotation.objects
        .filter(pk=quotation_id, version=expected_version)
        .update(updated_at=timezone.now(), **snapshot_columns(snapshot))
    )
    if updated:
        return

    actual = Quotation.objects.filter(pk=quotation_id).values_list("version", flat=True).first()
    if actual is None:
        raise QuotationNotFound(quotation_id)
    logger.warning(f"Version conflict on quotation {quotation_id}: expected {expected_version}, found {actual}")
    raise ConcurrentUpdateError(quotation_id, expected_version, actual)
