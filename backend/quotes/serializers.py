from __future__ import annotations

from rest_framework import serializers

from .models import Quotation
from .offers import normalize_offers, serialize_offers_for_payload
from .status import ALL_STATUSES, parse_status


# ---------- PATCH VALIDATION (scalar fields only) ----------
class QuotationPatchSerializer(serializers.Serializer):
    """
    Validates the top-level scalar fields of an update request.

    Rate collections and offers are not declared here; they are normalised
    leniently by the engine, entry by entry.
    """
    client = serializers.CharField(required=False, max_length=255)
    origin = serializers.CharField(required=False, max_length=255)
    destination = serializers.CharField(required=False, max_length=255)
    cargoType = serializers.CharField(required=False, max_length=64)
    cargoDescription = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.CharField(required=False)
    closeReason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=1000)
    quotationNumber = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=64)
    referenceNumber = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=64)
    attributes = serializers.DictField(required=False)
    version = serializers.IntegerField(required=False, min_value=0)

    def validate_status(self, value):
        status = parse_status(value)
        if status is None:
            raise serializers.ValidationError(f"Unknown status '{value}'. Allowed: {', '.join(ALL_STATUSES)}.")
        return status


# ---------- CREATE ----------
class QuotationCreateSerializer(serializers.Serializer):
    client = serializers.CharField(max_length=255)
    origin = serializers.CharField(max_length=255)
    destination = serializers.CharField(max_length=255)
    cargoType = serializers.CharField(max_length=64)
    cargoDescription = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    attributes = serializers.DictField(required=False)


# ---------- READ ----------
class QuotationSerializer(serializers.ModelSerializer):
    quotationNumber = serializers.CharField(source="quotation_number", read_only=True)
    cargoType = serializers.CharField(source="cargo_type", read_only=True)
    cargoDescription = serializers.CharField(source="cargo_description", read_only=True, allow_null=True)
    closeReason = serializers.CharField(source="close_reason", read_only=True, allow_null=True)
    estimatedCost = serializers.DecimalField(source="estimated_cost", max_digits=18, decimal_places=2, read_only=True)
    carrierRates = serializers.JSONField(source="carrier_rates", read_only=True)
    extraServices = serializers.JSONField(source="extra_services", read_only=True)
    customerRates = serializers.JSONField(source="customer_rates", read_only=True)
    offers = serializers.SerializerMethodField()
    createdBy = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Quotation
        fields = [
            "id", "quotationNumber", "client", "origin", "destination",
            "cargoType", "cargoDescription", "status", "closeReason",
            "estimatedCost", "profit",
            "carrierRates", "extraServices", "customerRates", "offers",
            "attributes", "version", "createdBy", "createdAt", "updatedAt",
        ]
        read_only_fields = fields

    def get_offers(self, obj):
        return serialize_offers_for_payload(normalize_offers(obj.offers))

    def get_createdBy(self, obj):
        if obj.created_by_id is None:
            return "system"
        return obj.created_by.contact
