import pytest

from ..status import (
    ALL_STATUSES,
    CANCELLED,
    CLOSED,
    CONFIRMED,
    CREATED,
    ONGOING,
    QUOTATION,
    RELEASED,
    is_active_status,
    is_approved_status,
    is_backward_transition,
    is_offer_sent_status,
    is_rate_edit_locked,
    is_terminal,
    normalize_status,
    parse_status,
    requires_close_reason,
)


class TestStatusParsing:

    def test_case_insensitive(self):
        assert parse_status(" confirmed ") == CONFIRMED

    @pytest.mark.parametrize("raw", [None, "", "DRAFT", 3])
    def test_unknown_values(self, raw):
        assert parse_status(raw) is None
        assert normalize_status(raw) == CREATED


class TestStatusGates:

    @pytest.mark.parametrize("status, locked", [
        (CREATED, False),
        (QUOTATION, False),
        (CONFIRMED, True),
        (ONGOING, True),
        ("ARRIVED", True),
        (RELEASED, True),
        (CLOSED, True),
        (CANCELLED, False),
    ])
    def test_rate_lock(self, status, locked):
        assert is_rate_edit_locked(status) is locked

    def test_close_reason_statuses(self):
        assert [s for s in ALL_STATUSES if requires_close_reason(s)] == [CLOSED, CANCELLED]
        assert [s for s in ALL_STATUSES if is_terminal(s)] == [CLOSED, CANCELLED]

    def test_groupings(self):
        assert is_active_status(ONGOING) and not is_active_status(CLOSED)
        assert is_offer_sent_status(QUOTATION) and not is_offer_sent_status(CREATED)
        assert is_approved_status(RELEASED) and not is_approved_status(ONGOING)


class TestBackwardTransition:

    @pytest.mark.parametrize("current, target, backward", [
        (CREATED, CONFIRMED, False),
        (CONFIRMED, QUOTATION, True),
        (ONGOING, ONGOING, False),
        (ONGOING, CANCELLED, False),
        (CLOSED, ONGOING, True),
        (CANCELLED, CREATED, True),
    ])
    def test_direction(self, current, target, backward):
        assert is_backward_transition(current, target) is backward
