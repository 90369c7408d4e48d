"""
Pytest fixtures and configuration for the order transaction tests

Besides the database fixtures (skipped when DATABASE_URL is not set), this
file provides an in-memory store with snapshot-based transactions. Service
tests run the real TransactionManager and OrderService against it, so
commit/rollback behaviour is observable without PostgreSQL.
"""
import copy
import os
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

import pytest
from dotenv import load_dotenv

from order_tx.core.exceptions import (
    IdentityConflict,
    InsufficientStock,
    OrderNotFound,
    ProductNotFound,
    ReferentialIntegrityError,
)
from order_tx.core.transaction import TransactionManager
from order_tx.domain.customer import Customer
from order_tx.domain.order import Order, OrderStatistics, OrderStatus
from order_tx.domain.product import Product
from order_tx.domain.results import CancelledOrder
from order_tx.services.order_service import OrderService

# Load environment variables for tests
load_dotenv()


# ============================================================================
# In-memory store
# ============================================================================

class InMemoryStore:
    """Three tables as dicts keyed by id"""

    def __init__(self):
        self.customers = {}
        self.products = {}
        self.orders = {}
        self.next_ids = {"customers": 1, "products": 1, "orders": 1}

    def next_id(self, table: str) -> int:
        value = self.next_ids[table]
        self.next_ids[table] += 1
        return value

    def snapshot(self):
        return copy.deepcopy((self.customers, self.products, self.orders, self.next_ids))

    def restore(self, snapshot):
        self.customers, self.products, self.orders, self.next_ids = copy.deepcopy(snapshot)

    def add_product(self, name, price, stock, min_stock=5, description=None) -> Product:
        product = Product(
            id=self.next_id("products"),
            name=name,
            description=description,
            price=Decimal(str(price)),
            stock=stock,
            min_stock=min_stock,
            updated_at=datetime.now(),
        )
        self.products[product.id] = product
        return product

    def product_named(self, name) -> Product:
        return next(p for p in self.products.values() if p.name == name)


class FakeConnection:
    def __init__(self, store):
        self.store = store
        self.snapshot = None


class FakePool:
    """Pool double: BEGIN snapshots the store, ROLLBACK restores it"""

    def __init__(self, store):
        self.store = store
        self.acquired = 0
        self.released = 0
        self.commits = 0
        self.rollbacks = 0

    def acquire(self):
        self.acquired += 1
        return FakeConnection(self.store)

    def release(self, conn):
        self.released += 1

    def begin(self, conn):
        conn.snapshot = self.store.snapshot()

    def commit(self, conn):
        conn.snapshot = None
        self.commits += 1

    def rollback(self, conn):
        self.store.restore(conn.snapshot)
        conn.snapshot = None
        self.rollbacks += 1
        return True

    @contextmanager
    def connection(self):
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def ping(self):
        with self.connection():
            return True


class FakeCustomerRepository:
    def find_by_email(self, conn, email):
        return next((c for c in conn.store.customers.values() if c.email == email), None)

    def find_by_id(self, conn, customer_id):
        return conn.store.customers.get(customer_id)

    def list_all(self, conn):
        return sorted(conn.store.customers.values(), key=lambda c: c.id, reverse=True)

    def create_or_reuse(self, conn, customer):
        existing = self.find_by_email(conn, customer.email)
        if existing:
            if existing.name != customer.name:
                raise IdentityConflict(customer.email, existing.name, customer.name)
            return existing

        created = Customer(
            id=conn.store.next_id("customers"),
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            address=customer.address,
            created_at=datetime.now(),
        )
        conn.store.customers[created.id] = created
        return created


class FakeProductRepository:
    def find_by_id(self, conn, product_id):
        return conn.store.products.get(product_id)

    def find_by_name(self, conn, name):
        return next((p for p in conn.store.products.values() if p.name == name), None)

    def list_all(self, conn):
        return sorted(conn.store.products.values(), key=lambda p: p.name)

    def check_stock(self, conn, product_id, quantity):
        product = conn.store.products.get(product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product.stock >= quantity

    def decrement_stock(self, conn, product_id, quantity):
        product = conn.store.products.get(product_id)
        if not product:
            raise ProductNotFound(product_id)
        if product.stock - quantity < 0:
            raise InsufficientStock(product.name, product.stock, quantity)
        updated = product.model_copy(update={"stock": product.stock - quantity, "updated_at": datetime.now()})
        conn.store.products[product_id] = updated
        return updated

    def restore_stock(self, conn, product_id, quantity):
        product = conn.store.products.get(product_id)
        if not product:
            raise ProductNotFound(product_id)
        updated = product.model_copy(update={"stock": product.stock + quantity, "updated_at": datetime.now()})
        conn.store.products[product_id] = updated
        return updated

    def list_low_stock(self, conn):
        low = [p for p in conn.store.products.values() if p.stock <= p.min_stock]
        return sorted(low, key=lambda p: p.stock)


class FakeOrderRepository:
    def _with_details(self, store, order):
        customer = store.customers[order.customer_id]
        product = store.products[order.product_id]
        return order.model_copy(update={
            "customer_name": customer.name,
            "customer_email": customer.email,
            "product_name": product.name,
            "product_description": product.description,
        })

    def create(self, conn, customer_id, product_id, quantity, unit_price):
        if customer_id not in conn.store.customers:
            raise ReferentialIntegrityError("customer", customer_id)
        if product_id not in conn.store.products:
            raise ReferentialIntegrityError("product", product_id)

        unit_price = Decimal(str(unit_price))
        order = Order(
            id=conn.store.next_id("orders"),
            customer_id=customer_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            total=unit_price * quantity,
            created_at=datetime.now(),
        )
        conn.store.orders[order.id] = order
        return order

    def find_by_id(self, conn, order_id):
        order = conn.store.orders.get(order_id)
        return self._with_details(conn.store, order) if order else None

    def list_all(self, conn, limit=None, from_date=None, to_date=None):
        orders = sorted(conn.store.orders.values(), key=lambda o: o.id, reverse=True)
        if from_date is not None:
            orders = [o for o in orders if o.created_at >= from_date]
        if to_date is not None:
            orders = [o for o in orders if o.created_at <= to_date]
        orders = [self._with_details(conn.store, o) for o in orders]
        return orders[:limit] if limit is not None else orders

    def list_by_customer(self, conn, customer_id):
        return [o for o in self.list_all(conn) if o.customer_id == customer_id]

    def update_status(self, conn, order_id, status):
        order = conn.store.orders.get(order_id)
        if not order:
            raise OrderNotFound(order_id)
        updated = order.model_copy(update={"status": status})
        conn.store.orders[order_id] = updated
        return updated

    def cancel(self, conn, order_id):
        order = conn.store.orders.pop(order_id, None)
        if not order:
            raise OrderNotFound(order_id)
        return CancelledOrder(order=order, success=True)

    def get_statistics(self, conn):
        orders = list(conn.store.orders.values())
        revenue = sum((o.total for o in orders), Decimal("0"))
        return OrderStatistics(
            total_orders=len(orders),
            total_revenue=revenue,
            average_order_value=revenue / len(orders) if orders else Decimal("0"),
            unique_customers=len({o.customer_id for o in orders}),
        )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def database_url():
    """
    Provides the database URL for integration tests

    Scope: session (created once per test session)
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not configured")
    return url


@pytest.fixture
def store():
    """
    Store seeded with the demo inventory

    "4K Monitor" starts with zero stock.
    """
    store = InMemoryStore()
    store.add_product("Laptop Gaming", "1299.99", 10, description="High-end gaming laptop")
    store.add_product("Wireless Mouse", "29.99", 50)
    store.add_product("4K Monitor", "399.99", 0)
    store.add_product("Mechanical Keyboard", "79.99", 25)
    return store


@pytest.fixture
def fake_pool(store):
    return FakePool(store)


@pytest.fixture
def order_service(fake_pool):
    """Real OrderService and TransactionManager over the in-memory store"""
    return OrderService(
        TransactionManager(fake_pool),
        customer_repo=FakeCustomerRepository(),
        product_repo=FakeProductRepository(),
        order_repo=FakeOrderRepository(),
    )


@pytest.fixture
def sample_customer():
    return {
        "name": "Juan Pérez",
        "email": "juan.perez@example.com",
        "phone": "+56 9 1234 5678",
        "address": "Av. Providencia 123",
    }


@pytest.fixture
def sample_product_row():
    """Row as returned by RealDictCursor for the products table"""
    return {
        "id": 1,
        "name": "Laptop Gaming",
        "description": "High-end gaming laptop",
        "price": Decimal("1299.99"),
        "stock": 10,
        "min_stock": 5,
        "updated_at": datetime(2025, 10, 17, 12, 0, 0),
    }


@pytest.fixture
def sample_customer_row():
    return {
        "id": 7,
        "name": "Juan Pérez",
        "email": "juan.perez@example.com",
        "phone": None,
        "address": None,
        "created_at": datetime(2025, 10, 17, 12, 0, 0),
    }


@pytest.fixture
def sample_order_row():
    return {
        "id": 42,
        "customer_id": 7,
        "product_id": 1,
        "quantity": 2,
        "unit_price": Decimal("1299.99"),
        "total": Decimal("2599.98"),
        "status": OrderStatus.PENDING,
        "created_at": datetime(2025, 10, 17, 12, 5, 0),
        "customer_name": "Juan Pérez",
        "customer_email": "juan.perez@example.com",
        "product_name": "Laptop Gaming",
        "product_description": "High-end gaming laptop",
    }
