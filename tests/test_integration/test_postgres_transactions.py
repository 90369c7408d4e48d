"""
Integration tests against a real PostgreSQL database

Skipped unless DATABASE_URL is set. Each test starts from the seed
inventory: tables are created once, then cleaned in "test" mode.
"""
import threading

import pytest

from order_tx.core.database import ConnectionPool, db_cursor
from order_tx.core.exceptions import (
    IdentityConflict,
    InsufficientStock,
    OrderNotFound,
    SimulatedFailure,
)
from order_tx.core.transaction import TransactionManager
from order_tx.database.init_db import clean_database, initialize_database
from order_tx.services.order_service import OrderService


@pytest.fixture(scope="module")
def pool(database_url):
    pool = ConnectionPool(database_url, min_size=1, max_size=5, acquire_timeout=5.0)
    initialize_database(TransactionManager(pool))
    yield pool
    clean_database(TransactionManager(pool), "test")
    pool.close()


@pytest.fixture
def service(pool):
    tx = TransactionManager(pool)
    clean_database(tx, "test")
    return OrderService(tx)


def stock_of(pool, name):
    with pool.connection() as conn:
        with db_cursor(conn) as cursor:
            cursor.execute("SELECT stock FROM products WHERE name = %s", (name,))
            return cursor.fetchone()["stock"]


def count_rows(pool, table):
    with pool.connection() as conn:
        with db_cursor(conn) as cursor:
            cursor.execute(f"SELECT COUNT(*) AS total FROM {table}")
            return cursor.fetchone()["total"]


@pytest.mark.integration
class TestOrderTransactions:

    def test_successful_order_commits_everything(self, service, pool, sample_customer):
        result = service.process_order(sample_customer, {"product": "Laptop Gaming", "quantity": 2})

        assert result.summary.orders_created == 1
        assert stock_of(pool, "Laptop Gaming") == 8
        assert count_rows(pool, "orders") == 1
        assert count_rows(pool, "customers") == 1

    def test_insufficient_stock_leaves_no_trace(self, service, pool, sample_customer):
        with pytest.raises(InsufficientStock):
            service.process_order(sample_customer, [
                {"product": "Wireless Mouse", "quantity": 1},
                {"product": "Laptop Gaming", "quantity": 11},
            ])

        assert stock_of(pool, "Wireless Mouse") == 50
        assert count_rows(pool, "orders") == 0
        assert count_rows(pool, "customers") == 0

    def test_simulated_failure_rolls_back_customer(self, service, pool, sample_customer):
        with pytest.raises(SimulatedFailure):
            service.process_order(sample_customer, {"product": "Laptop Gaming", "quantity": 1}, simulate_error=True)

        assert stock_of(pool, "Laptop Gaming") == 10
        assert count_rows(pool, "customers") == 0

    def test_identity_conflict(self, service, sample_customer):
        service.process_order(sample_customer, {"product": "Wireless Mouse", "quantity": 1})

        with pytest.raises(IdentityConflict):
            service.process_order(dict(sample_customer, name="Otro Nombre"), {"product": "Wireless Mouse", "quantity": 1})

    def test_cancel_restores_stock(self, service, pool, sample_customer):
        result = service.process_order(sample_customer, {"product": "4K Monitor", "quantity": 3})
        order_id = result.orders[0].id

        service.cancel_order(order_id)

        assert stock_of(pool, "4K Monitor") == 8
        with pytest.raises(OrderNotFound):
            service.get_order(order_id)

    def test_batch_keeps_earlier_commits(self, service, pool, sample_customer):
        batch = service.batch_process_orders([
            {"customer": sample_customer, "product": "Mechanical Keyboard", "quantity": 5},
            {"customer": sample_customer, "product": "Mechanical Keyboard", "quantity": 100},
        ])

        assert batch.successful == 1
        assert batch.failed == 1
        assert stock_of(pool, "Mechanical Keyboard") == 20

    def test_concurrent_orders_never_oversell(self, service, pool):
        errors = []

        def place(i):
            customer = {"name": f"Cliente {i}", "email": f"cliente{i}@example.com"}
            try:
                service.process_order(customer, {"product": "4K Monitor", "quantity": 3})
            except InsufficientStock as e:
                errors.append(e)

        threads = [threading.Thread(target=place, args=(i,)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # 8 units: at most two orders of 3 can succeed
        assert stock_of(pool, "4K Monitor") == 2
        assert len(errors) == 2
        assert count_rows(pool, "orders") == 2
