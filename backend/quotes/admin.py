from django.contrib import admin

from .models import Quotation
from .status import is_rate_edit_locked


@admin.register(Quotation)
class QuotationAdmin(admin.ModelAdmin):
    list_display = ("quotation_number", "client", "origin", "destination", "status", "estimated_cost", "version", "created_at")
    search_fields = ("quotation_number", "client", "origin", "destination")
    list_filter = ("status", "cargo_type", "created_at")
    date_hierarchy = "created_at"
    readonly_fields = ("quotation_number", "estimated_cost", "profit", "version", "created_by", "created_at", "updated_at")

    def get_readonly_fields(self, request, obj=None):
        ro = list(super().get_readonly_fields(request, obj))
        if obj and is_rate_edit_locked(obj.status):
            # rates are frozen once confirmed
            ro += ["carrier_rates", "extra_services", "customer_rates"]
        return ro
