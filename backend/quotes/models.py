from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from .status import CREATED, STATUS_CHOICES


class Quotation(models.Model):
    quotation_number = models.CharField(max_length=64, unique=True)
    client = models.CharField(max_length=255)
    origin = models.CharField(max_length=255)
    destination = models.CharField(max_length=255)
    cargo_type = models.CharField(max_length=64)
    cargo_description = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=CREATED)
    close_reason = models.TextField(blank=True, null=True)

    # derived from the rate collections on every write
    estimated_cost = models.DecimalField(max_digits=18, decimal_places=2, default=1)
    profit = models.JSONField(default=dict, encoder=DjangoJSONEncoder)

    carrier_rates = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    extra_services = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    customer_rates = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    offers = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    attributes = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    version = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', '-created_at'], name='quotes_status_created_idx'),
            models.Index(fields=['client'], name='quotes_client_idx'),
        ]
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.quotation_number
