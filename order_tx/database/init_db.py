"""
Database initialization
Creates tables, seeds the initial inventory and cleans data between demo runs.

Usage:
    python -m order_tx.database.init_db            # create tables + seed
    python -m order_tx.database.init_db --clean full
"""
import argparse
import logging
from decimal import Decimal

from order_tx.core.config import settings
from order_tx.core.database import create_pool, db_cursor
from order_tx.core.transaction import TransactionManager

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS customers (
        id SERIAL PRIMARY KEY,
        name VARCHAR(100) NOT NULL,
        email VARCHAR(100) UNIQUE NOT NULL,
        phone VARCHAR(20),
        address TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id SERIAL PRIMARY KEY,
        name VARCHAR(100) NOT NULL UNIQUE,
        description TEXT,
        price NUMERIC(10, 2) NOT NULL CHECK (price >= 0),
        stock INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0),
        min_stock INTEGER NOT NULL DEFAULT 5,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id SERIAL PRIMARY KEY,
        customer_id INTEGER NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
        product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE RESTRICT,
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        unit_price NUMERIC(10, 2) NOT NULL,
        total NUMERIC(10, 2) NOT NULL,
        status VARCHAR(20) NOT NULL DEFAULT 'pending',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_orders_customer_id ON orders(customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_orders_product_id ON orders(product_id)",
]

SEED_PRODUCTS = [
    {"name": "Laptop Gaming", "description": "High-end gaming laptop", "price": Decimal("1299.99"), "stock": 10},
    {"name": "Wireless Mouse", "description": "Ergonomic wireless mouse", "price": Decimal("29.99"), "stock": 50},
    {"name": "Mechanical Keyboard", "description": "RGB mechanical keyboard", "price": Decimal("79.99"), "stock": 25},
    {"name": "4K Monitor", "description": "27 inch 4K monitor", "price": Decimal("399.99"), "stock": 8},
    {"name": "Bluetooth Headphones", "description": "Noise cancelling headphones", "price": Decimal("199.99"), "stock": 15},
]

CLEAN_MODES = ("test", "full", "orders")


def create_tables(tx: TransactionManager) -> None:
    def create(conn):
        with db_cursor(conn) as cursor:
            for statement in SCHEMA_STATEMENTS:
                cursor.execute(statement)

    tx.run_in_transaction(create, operation="schema creation")
    logger.info("Tables created")


def seed_inventory(tx: TransactionManager) -> None:
    """Insert the sample products; existing names are left untouched"""
    def seed(conn):
        with db_cursor(conn) as cursor:
            for item in SEED_PRODUCTS:
                cursor.execute("""
                    INSERT INTO products (name, description, price, stock)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (name) DO NOTHING
                """, (item["name"], item["description"], item["price"], item["stock"]))

    tx.run_in_transaction(seed, operation="inventory seed")
    logger.info("Initial inventory inserted")


def initialize_database(tx: TransactionManager) -> None:
    logger.info("Initializing database...")
    create_tables(tx)
    seed_inventory(tx)
    logger.info("Database initialized")


def clean_database(tx: TransactionManager, mode: str = "test") -> None:
    """
    Clean data between runs

    Modes:
        test: drop all orders and non-seed products, delete customers,
              reset seed stock to its initial value
        full: truncate every table, restart identities and reseed
        orders: delete orders only, keep customers and inventory

    Raises:
        ValueError: unknown mode
    """
    if mode not in CLEAN_MODES:
        raise ValueError(f"Invalid mode '{mode}'. Use one of: {', '.join(CLEAN_MODES)}")

    def clean(conn):
        with db_cursor(conn) as cursor:
            if mode == "orders":
                cursor.execute("DELETE FROM orders")
            elif mode == "full":
                cursor.execute("TRUNCATE orders, customers, products RESTART IDENTITY CASCADE")
            else:
                seed_names = [item["name"] for item in SEED_PRODUCTS]
                cursor.execute("DELETE FROM orders")
                cursor.execute("DELETE FROM customers")
                cursor.execute("DELETE FROM products WHERE name <> ALL(%s)", (seed_names,))
                for item in SEED_PRODUCTS:
                    cursor.execute("""
                        UPDATE products
                        SET stock = %s, updated_at = CURRENT_TIMESTAMP
                        WHERE name = %s
                    """, (item["stock"], item["name"]))

    tx.run_in_transaction(clean, context={"mode": mode}, operation="database cleanup")

    if mode == "full":
        seed_inventory(tx)

    logger.info(f"Database cleaned (mode={mode})")


def main():
    parser = argparse.ArgumentParser(description="Create tables and seed the inventory")
    parser.add_argument("--clean", choices=CLEAN_MODES, help="Clean data instead of initializing")
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pool = create_pool(settings)
    try:
        tx = TransactionManager(pool)
        if args.clean:
            clean_database(tx, args.clean)
        else:
            initialize_database(tx)
    finally:
        pool.close()


if __name__ == "__main__":
    main()
