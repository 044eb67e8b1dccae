from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("action", "resource", "resource_id", "user_email", "ip", "created_at")
    list_filter = ("action", "resource", "created_at")
    search_fields = ("resource_id", "user_email")
    date_hierarchy = "created_at"

    def get_readonly_fields(self, request, obj=None):
        # audit entries are append-only
        return [f.name for f in self.model._meta.fields]
