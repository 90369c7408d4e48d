"""
Product Repository - Data Access Layer for Products and Inventory

Handles all inventory queries and returns Product domain models.
Methods take the caller's connection so they compose into one transaction.
"""
import logging
from typing import List, Optional

import psycopg2.errors

from order_tx.core.database import db_cursor
from order_tx.core.exceptions import InsufficientStock, ProductAlreadyExists, ProductNotFound
from order_tx.domain.product import Product, ProductInput

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = "id, name, description, price, stock, min_stock, updated_at"


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        return Product(
            id=row['id'],
            name=row['name'],
            description=row.get('description'),
            price=row['price'],
            stock=row['stock'],
            min_stock=row['min_stock'],
            updated_at=row.get('updated_at')
        )

    def find_by_id(self, conn, product_id: int) -> Optional[Product]:
        """
        Find product by ID

        Args:
            conn: Active connection
            product_id: Internal product ID

        Returns:
            Product or None if not found
        """
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products
                WHERE id = %s
            """, (product_id,))
            row = cursor.fetchone()

        return self._map_row_to_product(row) if row else None

    def find_by_name(self, conn, name: str) -> Optional[Product]:
        """
        Find product by its unique name

        Returns:
            Product or None if not found
        """
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products
                WHERE name = %s
            """, (name,))
            row = cursor.fetchone()

        return self._map_row_to_product(row) if row else None

    def list_all(self, conn) -> List[Product]:
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products
                ORDER BY name
            """)
            rows = cursor.fetchall()

        return [self._map_row_to_product(row) for row in rows]

    def check_stock(self, conn, product_id: int, quantity: int) -> bool:
        """
        Check whether quantity units are available

        Read-only: nothing is locked or reserved.

        Raises:
            ProductNotFound: no product with that ID
        """
        with db_cursor(conn) as cursor:
            cursor.execute("SELECT stock FROM products WHERE id = %s", (product_id,))
            row = cursor.fetchone()

        if not row:
            raise ProductNotFound(product_id)
        return row['stock'] >= quantity

    def decrement_stock(self, conn, product_id: int, quantity: int) -> Product:
        """
        Subtract quantity from stock

        The check and the write are a single conditional UPDATE, so two
        concurrent orders cannot both pass the check against the same units.

        Returns:
            Product after the update

        Raises:
            ProductNotFound: no product with that ID
            InsufficientStock: stock - quantity would be negative
        """
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                UPDATE products
                SET stock = stock - %s, updated_at = CURRENT_TIMESTAMP
                WHERE id = %s AND stock >= %s
                RETURNING {PRODUCT_COLUMNS}
            """, (quantity, product_id, quantity))
            row = cursor.fetchone()

        if row:
            return self._map_row_to_product(row)

        # Nothing updated: tell a missing product from a short one
        current = self.find_by_id(conn, product_id)
        if not current:
            raise ProductNotFound(product_id)
        raise InsufficientStock(current.name, current.stock, quantity)

    def restore_stock(self, conn, product_id: int, quantity: int) -> Product:
        """
        Add quantity back to stock (order cancellation)

        Raises:
            ProductNotFound: no product with that ID
        """
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                UPDATE products
                SET stock = stock + %s, updated_at = CURRENT_TIMESTAMP
                WHERE id = %s
                RETURNING {PRODUCT_COLUMNS}
            """, (quantity, product_id))
            row = cursor.fetchone()

        if not row:
            raise ProductNotFound(product_id)
        return self._map_row_to_product(row)

    def list_low_stock(self, conn) -> List[Product]:
        """Products at or below their minimum stock, lowest stock first"""
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products
                WHERE stock <= min_stock
                ORDER BY stock ASC, name
            """)
            rows = cursor.fetchall()

        return [self._map_row_to_product(row) for row in rows]

    def create(self, conn, product: ProductInput) -> Product:
        """
        Insert a new product

        Raises:
            ProductAlreadyExists: name is already taken
        """
        try:
            with db_cursor(conn) as cursor:
                cursor.execute(f"""
                    INSERT INTO products (name, description, price, stock, min_stock)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {PRODUCT_COLUMNS}
                """, (product.name, product.description, product.price, product.stock, product.min_stock))
                row = cursor.fetchone()
        except psycopg2.errors.UniqueViolation as e:
            raise ProductAlreadyExists(product.name) from e

        logger.info(f"Product created: {product.name} (stock: {product.stock})")
        return self._map_row_to_product(row)
