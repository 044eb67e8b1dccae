from types import SimpleNamespace

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.management import call_command
from rest_framework.test import APIClient

from accounts.permissions import has_permission, normalize_role

pytestmark = pytest.mark.django_db


def _user(role, **extra):
    return get_user_model().objects.create_user(username=f"{role}_u", password="pass", role=role, **extra)


class TestPermissionMatrix:

    @pytest.mark.parametrize("role, allowed", [
        ("sales", {"access_quotations", "manage_quotations"}),
        ("manager", {"access_quotations", "manage_quotations", "view_all_quotations", "view_audit"}),
        ("finance", {"access_quotations", "view_all_quotations"}),
        ("admin", {"access_quotations", "manage_quotations", "view_all_quotations", "view_audit"}),
    ])
    def test_roles(self, role, allowed):
        user = _user(role)
        for perm in ("access_quotations", "manage_quotations", "view_all_quotations", "view_audit"):
            assert has_permission(user, perm) is (perm in allowed), perm

    def test_superuser_always_allowed(self):
        user = _user("sales", is_superuser=True)
        assert has_permission(user, "view_audit")

    def test_anonymous_and_unknown(self):
        assert not has_permission(AnonymousUser(), "access_quotations")
        assert not has_permission(None, "access_quotations")
        assert not has_permission(_user("manager"), "delete_everything")

    def test_role_normalisation(self):
        assert normalize_role("  Manager ") == "manager"
        assert normalize_role(None) == ""
        fake = SimpleNamespace(is_authenticated=True, is_superuser=False, role=" SALES ")
        assert has_permission(fake, "manage_quotations")


class TestLogin:

    def test_login_returns_token_and_role(self):
        _user("manager")
        r = APIClient().post("/api/auth/login/", {"username": "manager_u", "password": "pass"}, format="json")
        assert r.status_code == 200
        body = r.json()
        assert body["role"] == "manager"
        assert body["token"]

    def test_bad_credentials(self):
        _user("sales")
        r = APIClient().post("/api/auth/login/", {"username": "sales_u", "password": "wrong"}, format="json")
        assert r.status_code == 401

    def test_missing_fields(self):
        r = APIClient().post("/api/auth/login/", {"username": "x"}, format="json")
        assert r.status_code == 400


def test_create_test_users_is_idempotent():
    call_command("create_test_users")
    call_command("create_test_users")
    roles = sorted(get_user_model().objects.values_list("role", flat=True))
    assert roles == ["finance", "manager", "sales"]
