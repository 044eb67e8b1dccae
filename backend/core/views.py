from rest_framework import generics, serializers
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import CanViewAudit

from .models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = ["id", "action", "resource", "resource_id", "user", "user_email", "ip", "user_agent", "metadata", "created_at"]
        read_only_fields = fields


class AuditLogListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, CanViewAudit]
    serializer_class = AuditLogSerializer

    def get_queryset(self):
        qs = AuditLog.objects.all()
        params = self.request.query_params
        if params.get("resource"):
            qs = qs.filter(resource=params["resource"])
        if params.get("resource_id"):
            qs = qs.filter(resource_id=params["resource_id"])
        if params.get("action"):
            qs = qs.filter(action=params["action"])
        return qs
