"""Tests for profile and account administration endpoints."""

import uuid

from storefront.models.user import User

from conftest import auth_header


def test_first_request_provisions_profile(api_client, session):
    newcomer = User(id=uuid.uuid4(), email="carol@example.com", name="ignored")

    response = api_client.get("/api/v1/users/me", headers=auth_header(newcomer))

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(newcomer.id)
    assert data["name"] == "carol"
    assert data["role"] == "user"
    assert data["is_active"] is True
    assert session.get(User, newcomer.id) is not None


def test_me_requires_token(api_client):
    response = api_client.get("/api/v1/users/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}


def test_invalid_token(api_client):
    response = api_client.get(
        "/api/v1/users/me", headers={"Authorization": "Bearer nope"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired token"}


def test_update_name(api_client, customer):
    response = api_client.patch(
        "/api/v1/users/me", json={"name": "  Alice  "}, headers=auth_header(customer)
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Alice"


def test_update_rejects_unknown_fields(api_client, customer):
    response = api_client.patch(
        "/api/v1/users/me", json={"role": "admin"}, headers=auth_header(customer)
    )

    assert response.status_code == 400


def test_admin_changes_role(api_client, admin, customer):
    response = api_client.patch(
        f"/api/v1/users/{customer.id}/role",
        json={"role": "admin"},
        headers=auth_header(admin),
    )

    assert response.status_code == 200
    assert response.json()["role"] == "admin"


def test_role_change_requires_admin(api_client, customer, other_customer):
    response = api_client.patch(
        f"/api/v1/users/{other_customer.id}/role",
        json={"role": "admin"},
        headers=auth_header(customer),
    )

    assert response.status_code == 403


def test_deactivate_then_reactivate(api_client, admin, customer):
    url = f"/api/v1/users/{customer.id}/activation"

    response = api_client.patch(
        url, json={"action": "deactivate"}, headers=auth_header(admin)
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert response.json()["deactivated_at"] is not None

    blocked = api_client.get("/api/v1/users/me", headers=auth_header(customer))
    assert blocked.status_code == 403
    assert blocked.json() == {"error": "Account is deactivated"}

    response = api_client.patch(
        url, json={"action": "activate"}, headers=auth_header(admin)
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is True
    assert response.json()["deactivated_at"] is None

    assert api_client.get(
        "/api/v1/users/me", headers=auth_header(customer)
    ).status_code == 200


def test_admin_cannot_deactivate_self(api_client, admin):
    response = api_client.patch(
        f"/api/v1/users/{admin.id}/activation",
        json={"action": "deactivate"},
        headers=auth_header(admin),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "You cannot deactivate your own account"}


def test_list_filters_on_activity(api_client, session, admin, customer, other_customer):
    other_customer.is_active = False
    session.add(other_customer)
    session.commit()

    response = api_client.get(
        "/api/v1/users", params={"only_active": "false"}, headers=auth_header(admin)
    )

    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [str(other_customer.id)]


def test_unknown_user(api_client, admin):
    response = api_client.get(
        f"/api/v1/users/{uuid.uuid4()}", headers=auth_header(admin)
    )

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}
