import pytest
from django.contrib.auth import get_user_model

pytestmark = pytest.mark.django_db

User = get_user_model()


def test_token_login_and_me(auth, guest_user):
    resp = auth(guest_user).get("/api/users/me/")

    assert resp.status_code == 200
    assert resp.data["username"] == "guest"
    assert resp.data["role"] == User.Role.CUSTOMER
    assert "dicebear" in resp.data["avatar_url"]


def test_bad_password_rejected(api_client, guest_user):
    resp = api_client.post(
        "/api/users/token/",
        {"username": guest_user.username, "password": "wrong"},
        format="json",
    )

    assert resp.status_code == 401


def test_me_update_cannot_change_role(auth, guest_user):
    resp = auth(guest_user).patch(
        "/api/users/me/",
        {"first_name": "Gale", "role": User.Role.ADMIN},
        format="json",
    )

    assert resp.status_code == 200
    guest_user.refresh_from_db()
    assert guest_user.first_name == "Gale"
    assert guest_user.role == User.Role.CUSTOMER


def test_admin_promotes_user(auth, admin_user, guest_user):
    resp = auth(admin_user).post(
        f"/api/users/{guest_user.id}/role/", {"role": User.Role.ADMIN}, format="json"
    )

    assert resp.status_code == 200
    guest_user.refresh_from_db()
    assert guest_user.is_platform_admin


def test_customer_cannot_promote(auth, guest_user, other_user):
    resp = auth(guest_user).post(
        f"/api/users/{other_user.id}/role/", {"role": User.Role.ADMIN}, format="json"
    )

    assert resp.status_code == 403
    other_user.refresh_from_db()
    assert other_user.role == User.Role.CUSTOMER


def test_admin_cannot_demote_self(auth, admin_user):
    resp = auth(admin_user).post(
        f"/api/users/{admin_user.id}/role/", {"role": User.Role.CUSTOMER}, format="json"
    )

    assert resp.status_code == 400
    admin_user.refresh_from_db()
    assert admin_user.is_platform_admin


def test_avatar_prefers_provider_image(guest_user):
    guest_user.image_url = "https://img.example.com/guest.png"

    assert guest_user.avatar_url == "https://img.example.com/guest.png"
