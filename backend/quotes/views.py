# quotes/views.py
import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404

from rest_framework import mixins, status, viewsets
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import CanAccessQuotations, CanManageQuotations, has_permission
from core.audit import client_ip, client_user_agent

from .exceptions import (
    CLOSE_REASON_REQUIRED,
    IMMUTABLE_FIELD_CHANGED,
    RATE_LOCKED,
    VALIDATION_FAILED,
    ConcurrentUpdateError,
    PatchValidationError,
    QuotationNotFound,
)
from .models import Quotation
from .serializers import QuotationSerializer
from .services.quotation_service import create_quotation, update_quotation
from .status import parse_status

logger = logging.getLogger(__name__)

# reason code -> HTTP status
REJECTION_STATUS = {
    RATE_LOCKED: status.HTTP_409_CONFLICT,
    CLOSE_REASON_REQUIRED: status.HTTP_400_BAD_REQUEST,
    IMMUTABLE_FIELD_CHANGED: status.HTTP_400_BAD_REQUEST,
    VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
}


def _rejection_response(code, message, fields=None):
    body = {"error": message, "code": code}
    if fields:
        body["fields"] = fields
    return Response(body, status=REJECTION_STATUS.get(code, status.HTTP_400_BAD_REQUEST))


def _conflict_response(exc: ConcurrentUpdateError):
    return Response(
        {"error": str(exc), "code": exc.code, "retryable": exc.retryable},
        status=status.HTTP_409_CONFLICT,
    )


# ---- Quotations: list / retrieve / create / update ----
class QuotationViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       viewsets.GenericViewSet):
    serializer_class = QuotationSerializer
    permission_classes = [IsAuthenticated, CanAccessQuotations]
    parser_classes = [JSONParser]

    def get_permissions(self):
        if self.action in ("create", "update", "partial_update"):
            return [IsAuthenticated(), CanManageQuotations()]
        return super().get_permissions()

    def get_queryset(self):
        qs = Quotation.objects.select_related("created_by").order_by("-created_at", "-id")
        user = self.request.user
        if not has_permission(user, "view_all_quotations"):
            qs = qs.filter(created_by=user)

        params = self.request.query_params
        status_filter = parse_status(params.get("status"))
        if status_filter:
            qs = qs.filter(status=status_filter)
        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(
                Q(quotation_number__icontains=search)
                | Q(client__icontains=search)
                | Q(origin__icontains=search)
                | Q(destination__icontains=search)
            )
        return qs

    def create(self, request, *args, **kwargs):
        try:
            snapshot = create_quotation(
                request.data,
                actor=request.user,
                ip=client_ip(request),
                user_agent=client_user_agent(request),
            )
        except PatchValidationError as exc:
            return _rejection_response(exc.reason_code, exc.message, exc.fields)

        row = Quotation.objects.select_related("created_by").get(pk=snapshot.id)
        return Response(self.get_serializer(row).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        # Visibility check first so users cannot discover other people's quotations.
        row = get_object_or_404(self.get_queryset(), pk=kwargs["pk"])

        try:
            outcome = update_quotation(
                row.pk,
                request.data,
                actor=request.user,
                ip=client_ip(request),
                user_agent=client_user_agent(request),
            )
        except QuotationNotFound as exc:
            return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except ConcurrentUpdateError as exc:
            return _conflict_response(exc)

        if not outcome.ok:
            return _rejection_response(outcome.reason_code, outcome.message, outcome.fields)

        row.refresh_from_db()
        return Response(self.get_serializer(row).data, status=status.HTTP_200_OK)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)
