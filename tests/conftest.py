"""Pytest fixtures for storefront tests."""

import os
import time
import uuid

# Settings are read at import time; point everything at local fakes first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "http://localhost:54321"
os.environ["SUPABASE_KEY"] = "test-anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ.pop("SUPABASE_SERVICE_ROLE_KEY", None)

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel

from storefront.database import engine, get_session
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.returns import ReturnRequest  # noqa: F401
from storefront.models.user import User

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]


@pytest.fixture
def session():
    """Fresh in-memory schema per test."""
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    SQLModel.metadata.drop_all(engine)


def _client_for(app, session):
    app.dependency_overrides[get_session] = lambda: session
    client = TestClient(app)
    return client


@pytest.fixture
def api_client(session):
    from storefront.main import app

    yield _client_for(app, session)
    app.dependency_overrides.clear()


@pytest.fixture
def edge_client(session):
    from storefront.functions.main import app

    yield _client_for(app, session)
    app.dependency_overrides.clear()


def make_token(user: User, expires_in: int = 3600) -> str:
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


def auth_header(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture
def customer(session):
    user = User(id=uuid.uuid4(), email="alice@example.com", name="alice")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def other_customer(session):
    user = User(id=uuid.uuid4(), email="bob@example.com", name="bob")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin(session):
    user = User(id=uuid.uuid4(), email="admin@example.com", name="admin", role="admin")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def make_product(session):
    def _make(name="Phone case", price=100.0, stock=10, image_url=None):
        product = Product(
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}",
            price=price,
            stock_quantity=stock,
            image_url=image_url,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_order(session, make_product):
    """
    Build an order from (quantity, price, cancelled) tuples.

    Totals are consistent with the lines at creation time.
    """

    def _make(user, lines, status="paid", shipping_cost=0.0, tax=0.0, **fields):
        order = Order(
            user_id=user.id,
            status=status,
            shipping_cost=shipping_cost,
            tax=tax,
            **fields,
        )
        session.add(order)
        session.flush()

        items = []
        subtotal = 0.0
        for quantity, price, cancelled in lines:
            product = make_product(price=price)
            item = OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_price=price,
                quantity=quantity,
                cancelled_quantity=cancelled,
            )
            session.add(item)
            items.append(item)
            subtotal += price * (quantity - cancelled)

        order.subtotal = subtotal
        order.total_amount = subtotal + shipping_cost + tax
        session.commit()
        session.refresh(order)
        for item in items:
            session.refresh(item)
        return order, items

    return _make
