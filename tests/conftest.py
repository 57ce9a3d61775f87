"""Pytest fixtures: in-memory MongoDB (mongomock) and a recording notifier."""

from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from main import app, get_database, get_engine
from orders import OrderEngine


class RecordingNotifier:
    """Stands in for SMTP; keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []
        self.error = None

    def send(self, to, subject, html_body):
        if self.error:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html": html_body})


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def db():
    return mongomock.MongoClient()["orders_test"]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(db, notifier):
    return OrderEngine(db, notifier=notifier)


@pytest.fixture
def test_client(db, engine):
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# CATALOG FIXTURES
# =============================================================================

def make_product(db, title, new_price, colors=None, cover="/img/cover.png"):
    doc = {
        "title": title,
        "description": f"{title} description",
        "translations": {
            "en": {"title": title, "description": ""},
            "fr": {"title": title, "description": ""},
            "ar": {"title": title, "description": ""},
        },
        "category": "caftan",
        "coverImage": cover,
        "colors": colors if colors is not None else [],
        "oldPrice": new_price + 10,
        "newPrice": new_price,
        "stockQuantity": 5,
        "trending": False,
    }
    doc["_id"] = db["product"].insert_one(doc).inserted_id
    return doc


@pytest.fixture
def jebba(db):
    return make_product(db, "Jebba", 120, colors=[
        {"colorName": "Red", "image": "/img/jebba-red.png"},
        {"colorName": "Blue", "image": "/img/jebba-blue.png"},
    ])


@pytest.fixture
def chechia(db):
    return make_product(db, "Chechia", 35, colors=[])


def insert_order(db, products, email="amira@example.com", name="Amira", created_at=None, total=0):
    doc = {
        "name": name,
        "email": email,
        "products": products,
        "totalPrice": total,
        "isPaid": False,
        "isDelivered": False,
        "productProgress": {},
        "version": 0,
        "createdAt": created_at or datetime.now(timezone.utc),
    }
    return db["order"].insert_one(doc).inserted_id


def line(product, quantity, color_name, image=None):
    return {
        "productId": product["_id"] if isinstance(product, dict) else ObjectId(product),
        "quantity": quantity,
        "color": {"colorName": color_name, "image": image},
    }


@pytest.fixture
def two_colour_order(db, jebba):
    """Jebba x3 in Red and x2 in Blue."""
    return insert_order(db, [line(jebba, 3, "Red"), line(jebba, 2, "Blue")], total=600)


@pytest.fixture
def days_ago():
    def _at(days):
        return datetime.now(timezone.utc) - timedelta(days=days)
    return _at
