"""
Quotation workflow statuses and the gates derived from them.

Workflow order::

    CREATED -> QUOTATION -> CONFIRMED -> ONGOING -> ARRIVED -> RELEASED -> CLOSED

CANCELLED can be reached from any non-terminal status. Transitions in any
direction are allowed (back-office staff correct statuses by hand); only the
rate lock and the close-reason requirement are enforced.
"""
from typing import Optional

CREATED = 'CREATED'
QUOTATION = 'QUOTATION'
CONFIRMED = 'CONFIRMED'
ONGOING = 'ONGOING'
ARRIVED = 'ARRIVED'
RELEASED = 'RELEASED'
CLOSED = 'CLOSED'
CANCELLED = 'CANCELLED'

WORKFLOW_ORDER = (CREATED, QUOTATION, CONFIRMED, ONGOING, ARRIVED, RELEASED, CLOSED)
ALL_STATUSES = WORKFLOW_ORDER + (CANCELLED,)

STATUS_CHOICES = [
    (CREATED, 'Created'),
    (QUOTATION, 'Quotation'),
    (CONFIRMED, 'Confirmed'),
    (ONGOING, 'Ongoing'),
    (ARRIVED, 'Arrived'),
    (RELEASED, 'Released'),
    (CLOSED, 'Closed'),
    (CANCELLED, 'Cancelled'),
]

TERMINAL_STATUSES = frozenset({CLOSED, CANCELLED})
RATE_LOCKED_STATUSES = frozenset({CONFIRMED, ONGOING, ARRIVED, RELEASED, CLOSED})
CLOSE_REASON_STATUSES = frozenset({CLOSED, CANCELLED})

# dashboard groupings
ACTIVE_STATUSES = frozenset({CREATED, QUOTATION, CONFIRMED, ONGOING, ARRIVED, RELEASED})
OFFER_STATUSES = frozenset({QUOTATION, CONFIRMED, ONGOING, ARRIVED, RELEASED})
APPROVED_STATUSES = frozenset({CONFIRMED, RELEASED, CLOSED})


def parse_status(raw) -> Optional[str]:
    """Strict lookup: the canonical status for ``raw`` or None if unknown."""
    if not isinstance(raw, str):
        return None
    key = raw.strip().upper()
    return key if key in ALL_STATUSES else None


def normalize_status(raw) -> str:
    """Lenient lookup used for stored data: unknown values read as CREATED."""
    return parse_status(raw) or CREATED


def is_rate_edit_locked(status) -> bool:
    return parse_status(status) in RATE_LOCKED_STATUSES


def requires_close_reason(status) -> bool:
    return parse_status(status) in CLOSE_REASON_STATUSES


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def is_active_status(raw) -> bool:
    return normalize_status(raw) in ACTIVE_STATUSES


def is_offer_sent_status(raw) -> bool:
    return normalize_status(raw) in OFFER_STATUSES


def is_approved_status(raw) -> bool:
    return normalize_status(raw) in APPROVED_STATUSES


def is_backward_transition(current, target) -> bool:
    """
    True when ``target`` sits earlier in the workflow than ``current``, or
    when a terminal quotation is moved anywhere else (reopening).
    """
    cur = normalize_status(current)
    nxt = normalize_status(target)
    if cur == nxt:
        return False
    if cur in TERMINAL_STATUSES:
        return True
    if nxt == CANCELLED:
        return False
    return WORKFLOW_ORDER.index(nxt) < WORKFLOW_ORDER.index(cur)
