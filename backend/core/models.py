from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class AuditLog(models.Model):
    action = models.CharField(max_length=64)
    resource = models.CharField(max_length=64, blank=True, default='')
    resource_id = models.CharField(max_length=64, blank=True, default='')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    user_email = models.CharField(max_length=255, blank=True, default='')
    ip = models.CharField(max_length=64, blank=True, default='')
    user_agent = models.CharField(max_length=512, blank=True, default='')
    metadata = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['resource', 'resource_id', '-created_at'], name='core_audit_resource_idx'),
            models.Index(fields=['action', '-created_at'], name='core_audit_action_idx'),
        ]
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.action} {self.resource}:{self.resource_id}"
