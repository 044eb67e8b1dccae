"""
Audit trail writer.

`audit_log` is fire-and-forget: a failure to persist the entry is logged and
swallowed so it can never undo the business change it describes.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


def audit_log(
    action: str,
    resource_id: Any,
    actor_id: Optional[int] = None,
    actor_contact: Optional[str] = None,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    resource: str = "quotation",
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[AuditLog]:
    payload: Dict[str, Any] = dict(metadata or {})
    if before is not None:
        payload["before"] = before
    if after is not None:
        payload["after"] = after

    try:
        # savepoint, so a failed insert leaves the caller's transaction usable
        with transaction.atomic():
            return AuditLog.objects.create(
                action=action,
                resource=resource,
                resource_id=str(resource_id) if resource_id is not None else "",
                user_id=actor_id,
                user_email=actor_contact or "",
                ip=(ip or "")[:64],
                user_agent=(user_agent or "")[:512],
                metadata=payload,
            )
    except Exception as e:
        logger.warning(f"audit_log failed for {action} {resource}:{resource_id}: {e}")
        return None


def client_ip(request) -> Optional[str]:
    """First hop of X-Forwarded-For, then X-Real-IP, then REMOTE_ADDR."""
    meta = getattr(request, "META", {}) or {}
    forwarded = meta.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return meta.get("HTTP_X_REAL_IP") or meta.get("REMOTE_ADDR") or None


def client_user_agent(request) -> Optional[str]:
    meta = getattr(request, "META", {}) or {}
    return meta.get("HTTP_USER_AGENT") or None
