from decimal import Decimal
from io import StringIO
from unittest.mock import patch

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.utils import timezone

from core.models import AuditLog

from ..dataclasses import QuotationSnapshot
from ..exceptions import (
    RATE_LOCKED,
    VALIDATION_FAILED,
    ConcurrentUpdateError,
    PatchValidationError,
    QuotationNotFound,
)
from ..models import Quotation
from ..services.quotation_service import (
    create_quotation,
    next_quotation_number,
    recompute_stored_totals,
    update_quotation,
)
from ..store import load_quotation, save_quotation

pytestmark = pytest.mark.django_db

PAYLOAD = {
    "client": "Acme Mining",
    "origin": "Tianjin",
    "destination": "Ulaanbaatar",
    "cargoType": "FCL",
    "cargoDescription": "Spare parts",
    "customerRates": [{"name": "Sell", "currency": "USD", "amount": 1000, "isPrimary": True}],
    "carrierRates": [{"name": "Ocean", "currency": "USD", "amount": 600}],
    "extraServices": [{"name": "Customs", "currency": "USD", "amount": 150}],
}


@pytest.fixture
def sales_user():
    return get_user_model().objects.create_user(
        username="sales", email="sales@example.com", password="pass", role="sales"
    )


@pytest.fixture
def quotation(sales_user):
    return create_quotation(PAYLOAD, actor=sales_user, ip="10.0.0.1", user_agent="pytest")


class TestCreateQuotation:

    def test_create_derives_values_and_number(self, quotation):
        year = timezone.now().year
        assert quotation.quotation_number == f"QUO-{year}-001"
        assert quotation.status == "CREATED"
        assert quotation.version == 0
        assert quotation.estimated_cost == Decimal("750")
        assert quotation.profit.amount == Decimal("250")

        row = Quotation.objects.get(pk=quotation.id)
        assert row.estimated_cost == Decimal("750.00")
        assert row.profit == {"currency": "USD", "amount": "250"}
        assert row.created_by.username == "sales"

    def test_numbers_are_sequential(self, quotation, sales_user):
        second = create_quotation(PAYLOAD, actor=sales_user)
        assert second.quotation_number.endswith("-002")
        assert next_quotation_number().endswith("-003")

    def test_number_prefix_from_settings(self, settings, sales_user):
        settings.QUOTES_NUMBER_PREFIX = "FD"
        assert create_quotation(PAYLOAD, actor=sales_user).quotation_number.startswith("FD-")

    def test_offers_get_owner_and_sequence(self, sales_user):
        snap = create_quotation({**PAYLOAD, "offers": [{"title": "Sea"}, "junk", {"title": "Rail"}]}, actor=sales_user)
        stored = Quotation.objects.get(pk=snap.id).offers
        assert [(o["order"], o["offerNumber"], o["quotationId"]) for o in stored] == [
            (0, "1", snap.id),
            (1, "2", snap.id),
        ]

    def test_create_is_audited(self, quotation):
        entry = AuditLog.objects.get(action="quotation.create")
        assert entry.resource_id == quotation.id
        assert entry.user_email == "sales@example.com"
        assert entry.ip == "10.0.0.1"
        assert entry.metadata["after"]["estimatedCost"] == "750"

    def test_missing_fields_rejected(self, sales_user):
        with pytest.raises(PatchValidationError) as exc:
            create_quotation({"client": "Acme"}, actor=sales_user)
        assert {"origin", "destination", "cargoType"} <= set(exc.value.fields)
        assert not Quotation.objects.exists()

    def test_negative_rate_rejected(self, sales_user):
        with pytest.raises(PatchValidationError) as exc:
            create_quotation({**PAYLOAD, "carrierRates": [{"amount": -1}]}, actor=sales_user)
        assert "carrierRates[0].amount" in exc.value.fields

    def test_amount_too_large_to_store_rejected(self, sales_user):
        with pytest.raises(PatchValidationError) as exc:
            create_quotation({**PAYLOAD, "carrierRates": [{"amount": 1e30}]}, actor=sales_user)
        assert "carrierRates[0].amount" in exc.value.fields
        assert not Quotation.objects.exists()


class TestUpdateQuotation:

    def test_update_persists_and_audits(self, quotation, sales_user):
        outcome = update_quotation(quotation.id, {"cargoDescription": "Drill bits", "version": 0}, actor=sales_user)
        assert outcome.ok and outcome.changed

        row = Quotation.objects.get(pk=quotation.id)
        assert row.cargo_description == "Drill bits"
        assert row.version == 1

        entry = AuditLog.objects.get(action="quotation.update")
        assert entry.resource_id == quotation.id
        assert entry.metadata["changed"] == ["cargoDescription"]
        assert entry.metadata["before"]["cargoDescription"] == "Spare parts"
        assert entry.metadata["after"]["cargoDescription"] == "Drill bits"

    def test_rate_change_updates_derived_columns(self, quotation):
        update_quotation(quotation.id, {"carrierRates": [{"name": "Ocean", "currency": "USD", "amount": 500}]})
        row = Quotation.objects.get(pk=quotation.id)
        assert row.estimated_cost == Decimal("650.00")
        assert row.profit == {"currency": "USD", "amount": "350"}

    def test_amount_too_large_to_store_is_rejected(self, quotation):
        outcome = update_quotation(quotation.id, {"carrierRates": [{"name": "Ocean", "amount": "1e30"}]})
        assert outcome.reason_code == VALIDATION_FAILED
        assert "carrierRates[0].amount" in outcome.fields
        row = Quotation.objects.get(pk=quotation.id)
        assert row.version == 0
        assert row.estimated_cost == Decimal("750.00")

    def test_attribute_edit_is_audited(self, sales_user):
        snap = create_quotation({**PAYLOAD, "attributes": {"etd": "2026-01-01"}}, actor=sales_user)
        outcome = update_quotation(snap.id, {"attributes": {"etd": "2026-02-02"}}, actor=sales_user)
        assert outcome.ok and outcome.changed

        entry = AuditLog.objects.get(action="quotation.update")
        assert entry.metadata["changed"] == ["attributes"]
        assert entry.metadata["before"]["attributes"] == {"etd": "2026-01-01"}
        assert entry.metadata["after"]["attributes"] == {"etd": "2026-02-02"}

    def test_unknown_id(self):
        with pytest.raises(QuotationNotFound):
            update_quotation(999999, {"client": "x"})

    def test_stale_version_is_a_conflict(self, quotation):
        update_quotation(quotation.id, {"client": "First"})
        with pytest.raises(ConcurrentUpdateError) as exc:
            update_quotation(quotation.id, {"client": "Second", "version": 0})
        assert exc.value.retryable is True
        assert exc.value.actual_version == 1
        assert Quotation.objects.get(pk=quotation.id).client == "First"

    def test_rejection_writes_nothing(self, quotation):
        update_quotation(quotation.id, {"status": "CONFIRMED"})
        outcome = update_quotation(quotation.id, {"carrierRates": [{"amount": 1}]})
        assert outcome.reason_code == RATE_LOCKED

        row = Quotation.objects.get(pk=quotation.id)
        assert row.version == 1
        assert row.carrier_rates[0]["amount"] == "600"
        assert AuditLog.objects.filter(action="quotation.update").count() == 1

    def test_noop_skips_write_and_audit(self, quotation):
        outcome = update_quotation(quotation.id, {"client": "Acme Mining"})
        assert outcome.ok and not outcome.changed
        assert Quotation.objects.get(pk=quotation.id).version == 0
        assert not AuditLog.objects.filter(action="quotation.update").exists()

    def test_audit_failure_does_not_undo_update(self, quotation):
        with patch("core.audit.AuditLog.objects.create", side_effect=RuntimeError("audit db down")):
            outcome = update_quotation(quotation.id, {"status": "QUOTATION"})
        assert outcome.ok
        assert Quotation.objects.get(pk=quotation.id).status == "QUOTATION"
        assert not AuditLog.objects.filter(action="quotation.update").exists()


class TestStore:

    def test_load_missing(self):
        assert load_quotation(123456) is None

    def test_save_with_wrong_version_conflicts(self, quotation):
        current = load_quotation(quotation.id)
        with pytest.raises(ConcurrentUpdateError):
            save_quotation(quotation.id, current, expected_version=current.version + 5)

    def test_save_after_delete(self, quotation):
        current = load_quotation(quotation.id)
        Quotation.objects.filter(pk=quotation.id).delete()
        with pytest.raises(QuotationNotFound):
            save_quotation(quotation.id, current, expected_version=current.version)

    def test_load_reads_json_back(self, quotation):
        current = load_quotation(quotation.id)
        assert isinstance(current, QuotationSnapshot)
        assert current.primary_customer_rate.name == "Sell"
        assert current.to_dict()["carrierRates"] == [
            {"name": "Ocean", "currency": "USD", "amount": "600", "isPrimary": False}
        ]


class TestRecomputeTotals:

    def test_fixes_drifted_rows(self, quotation):
        Quotation.objects.filter(pk=quotation.id).update(estimated_cost=Decimal("5.00"), profit={})
        assert recompute_stored_totals(dry_run=True) == 1
        assert Quotation.objects.get(pk=quotation.id).estimated_cost == Decimal("5.00")

        assert recompute_stored_totals() == 1
        row = Quotation.objects.get(pk=quotation.id)
        assert row.estimated_cost == Decimal("750.00")
        assert row.profit == {"currency": "USD", "amount": "250"}
        assert recompute_stored_totals() == 0

    def test_management_command(self, quotation):
        Quotation.objects.filter(pk=quotation.id).update(estimated_cost=Decimal("5.00"))
        out = StringIO()
        call_command("recompute_quotation_totals", "--dry-run", stdout=out)
        assert "1 quotation(s) would be updated" in out.getvalue()

        call_command("recompute_quotation_totals", stdout=out)
        assert Quotation.objects.get(pk=quotation.id).estimated_cost == Decimal("750.00")
