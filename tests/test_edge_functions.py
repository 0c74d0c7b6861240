"""Tests for the edge function application."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from storefront.models.returns import ReturnRequest

from conftest import auth_header, make_token

CANCEL_URL = "/functions/v1/cancel-order-item"
RETURN_URL = "/functions/v1/request-return"


class TestPreflightAndCors:
    @pytest.mark.parametrize("url", [CANCEL_URL, RETURN_URL])
    def test_options_returns_ok(self, edge_client, url):
        response = edge_client.options(url)

        assert response.status_code == 200
        assert response.text == "ok"
        assert response.headers["access-control-allow-origin"] == "*"
        assert "authorization" in response.headers["access-control-allow-headers"]

    def test_errors_carry_cors_headers(self, edge_client):
        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": str(uuid.uuid4()), "cancelled_quantity": 1},
        )

        assert response.status_code == 401
        assert response.headers["access-control-allow-origin"] == "*"


class TestCancelOrderItemFunction:
    def test_missing_authorization_header(self, edge_client):
        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": str(uuid.uuid4()), "cancelled_quantity": 1},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}

    def test_invalid_token(self, edge_client):
        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": str(uuid.uuid4()), "cancelled_quantity": 1},
            headers={"Authorization": "Bearer garbage"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_expired_token(self, edge_client, customer):
        token = make_token(customer, expires_in=-60)

        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": str(uuid.uuid4()), "cancelled_quantity": 1},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401

    def test_success_includes_every_order_line(
        self, edge_client, customer, make_order
    ):
        order, (item_a, item_b) = make_order(
            customer, [(2, 100.0, 0), (1, 50.0, 0)], status="paid", shipping_cost=10.0
        )

        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": str(item_b.id), "cancelled_quantity": 1},
            headers=auth_header(customer),
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        data = response.json()
        assert data["success"] is True
        assert data["all_items_cancelled"] is False
        assert data["order"]["total_amount"] == 210.0
        assert data["order"]["status"] == "processing"
        assert data["order_item"]["id"] == str(item_b.id)

        lines = {line["id"]: line for line in data["order_items"]}
        assert set(lines) == {str(item_a.id), str(item_b.id)}
        assert lines[str(item_b.id)]["is_cancelled"] is True
        assert lines[str(item_b.id)]["total_price"] == 0
        assert lines[str(item_a.id)]["is_cancelled"] is False
        assert lines[str(item_a.id)]["total_price"] == 200.0
        assert lines[str(item_a.id)]["product_name"] == "Phone case"

    def test_same_error_payload_as_api(self, edge_client, customer, make_order):
        order, (item,) = make_order(customer, [(1, 10.0, 0)], status="delivered")

        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": str(item.id), "cancelled_quantity": 1},
            headers=auth_header(customer),
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Cannot cancel items in a delivered order"}

    def test_foreign_order_is_forbidden(
        self, edge_client, customer, other_customer, make_order
    ):
        order, (item,) = make_order(customer, [(1, 10.0, 0)])

        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": str(item.id), "cancelled_quantity": 1},
            headers=auth_header(other_customer),
        )

        assert response.status_code == 403

    def test_deactivated_user_is_rejected(
        self, edge_client, session, customer, make_order
    ):
        order, (item,) = make_order(customer, [(1, 10.0, 0)])
        customer.is_active = False
        session.add(customer)
        session.commit()

        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": str(item.id), "cancelled_quantity": 1},
            headers=auth_header(customer),
        )

        assert response.status_code == 403
        assert response.json() == {"error": "Account is deactivated"}

    def test_body_is_checked_before_token(self, edge_client):
        response = edge_client.post(
            CANCEL_URL,
            json={"order_item_id": "not-a-uuid", "cancelled_quantity": 0},
            headers={"Authorization": "Bearer garbage"},
        )

        assert response.status_code == 400

    def test_header_is_checked_before_body(self, edge_client):
        response = edge_client.post(CANCEL_URL, json={"cancelled_quantity": 0})

        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}

    def test_unexpected_error_matches_api_payload(
        self, edge_client, customer, make_order, monkeypatch
    ):
        from storefront.functions import main as functions_main

        order, (item,) = make_order(customer, [(3, 10.0, 0)])

        def explode(*args, **kwargs):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(functions_main.order_repo, "list_items_for_order", explode)
        client = TestClient(edge_client.app, raise_server_exceptions=False)

        response = client.post(
            CANCEL_URL,
            json={"order_item_id": str(item.id), "cancelled_quantity": 1},
            headers=auth_header(customer),
        )

        assert response.status_code == 500
        assert response.json() == {
            "error": "Internal server error",
            "details": "unexpected",
        }
        assert response.headers["access-control-allow-origin"] == "*"


class TestRequestReturnFunction:
    def _post(self, client, user, item, quantity=1, reason="Wrong size"):
        return client.post(
            RETURN_URL,
            json={
                "order_item_id": str(item.id),
                "requested_quantity": quantity,
                "reason": reason,
            },
            headers=auth_header(user),
        )

    def test_creates_pending_request(self, edge_client, customer, make_order):
        order, (item,) = make_order(customer, [(3, 10.0, 1)], status="delivered")

        response = self._post(edge_client, customer, item, quantity=2, reason="  Too big ")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Return request submitted successfully"
        assert data["return_request"]["status"] == "pending"
        assert data["return_request"]["requested_quantity"] == 2
        assert data["return_request"]["reason"] == "Too big"
        assert data["return_request"]["approved_quantity"] is None

    def test_only_delivered_orders(self, edge_client, customer, make_order):
        order, (item,) = make_order(customer, [(3, 10.0, 0)], status="shipped")

        response = self._post(edge_client, customer, item)

        assert response.status_code == 400
        assert response.json() == {
            "error": "Returns can only be requested for delivered orders"
        }

    def test_cannot_exceed_active_quantity(self, edge_client, customer, make_order):
        order, (item,) = make_order(customer, [(3, 10.0, 2)], status="delivered")

        response = self._post(edge_client, customer, item, quantity=2)

        assert response.status_code == 400
        assert "Only 1 items available for return" in response.json()["error"]

    def test_approved_requests_hold_units(
        self, edge_client, session, customer, make_order
    ):
        order, (item,) = make_order(customer, [(3, 10.0, 0)], status="delivered")
        session.add(
            ReturnRequest(
                order_id=order.id,
                order_item_id=item.id,
                user_id=customer.id,
                reason="Damaged",
                status="approved",
                requested_quantity=2,
                approved_quantity=2,
            )
        )
        session.commit()

        response = self._post(edge_client, customer, item, quantity=2)
        assert response.status_code == 400
        assert "Only 1 items available" in response.json()["error"]

        response = self._post(edge_client, customer, item, quantity=1)
        assert response.status_code == 200

    def test_rejects_second_pending_request(self, edge_client, customer, make_order):
        order, (item,) = make_order(customer, [(3, 10.0, 0)], status="delivered")

        assert self._post(edge_client, customer, item).status_code == 200
        response = self._post(edge_client, customer, item)

        assert response.status_code == 400
        assert response.json() == {
            "error": "A pending return request already exists for this item"
        }

    def test_return_window(self, edge_client, customer, make_order):
        order, (item,) = make_order(
            customer,
            [(1, 10.0, 0)],
            status="delivered",
            created_at=datetime.now(timezone.utc) - timedelta(days=30),
        )

        response = self._post(edge_client, customer, item)

        assert response.status_code == 400
        assert response.json() == {
            "error": "Return requests must be made within 7 days of delivery"
        }

    def test_blank_reason(self, edge_client, customer, make_order):
        order, (item,) = make_order(customer, [(1, 10.0, 0)], status="delivered")

        response = self._post(edge_client, customer, item, reason="   ")

        assert response.status_code == 400
        assert response.json() == {"error": "Reason cannot be empty"}

    def test_missing_fields(self, edge_client, customer):
        response = edge_client.post(
            RETURN_URL,
            json={"order_item_id": str(uuid.uuid4())},
            headers=auth_header(customer),
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "Missing required fields: requested_quantity, reason"
        }

    def test_owner_only(self, edge_client, customer, admin, make_order):
        order, (item,) = make_order(customer, [(1, 10.0, 0)], status="delivered")

        response = self._post(edge_client, admin, item)

        assert response.status_code == 403
