"""
Customer Repository - Data Access Layer for Customers

Every method works on the connection of the caller's transaction and
never commits on its own.
"""
import logging
from typing import List, Optional, Union

import psycopg2.errors

from order_tx.core.database import db_cursor
from order_tx.core.exceptions import CustomerNotFound, IdentityConflict
from order_tx.domain.customer import Customer, CustomerInput, CustomerUpdate

logger = logging.getLogger(__name__)

CUSTOMER_COLUMNS = "id, name, email, phone, address, created_at"


class CustomerRepository:
    """
    Repository for Customer data access

    All SQL queries for customers are centralized here.
    Returns Customer domain models, not raw dictionaries.
    """

    UPDATABLE_FIELDS = ('name', 'phone', 'address')

    @staticmethod
    def _map_row_to_customer(row: dict) -> Customer:
        return Customer(
            id=row['id'],
            name=row['name'],
            email=row['email'],
            phone=row.get('phone'),
            address=row.get('address'),
            created_at=row.get('created_at')
        )

    def find_by_email(self, conn, email: str) -> Optional[Customer]:
        """
        Find customer by email

        Args:
            conn: Active connection
            email: Customer email (identity key)

        Returns:
            Customer or None if not found
        """
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                SELECT {CUSTOMER_COLUMNS}
                FROM customers
                WHERE email = %s
            """, (email,))
            row = cursor.fetchone()

        return self._map_row_to_customer(row) if row else None

    def find_by_id(self, conn, customer_id: int) -> Optional[Customer]:
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                SELECT {CUSTOMER_COLUMNS}
                FROM customers
                WHERE id = %s
            """, (customer_id,))
            row = cursor.fetchone()

        return self._map_row_to_customer(row) if row else None

    def list_all(self, conn) -> List[Customer]:
        """All customers, newest first"""
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                SELECT {CUSTOMER_COLUMNS}
                FROM customers
                ORDER BY created_at DESC, id DESC
            """)
            rows = cursor.fetchall()

        return [self._map_row_to_customer(row) for row in rows]

    def create_or_reuse(self, conn, customer: CustomerInput) -> Customer:
        """
        Return the customer registered under this email, creating it if new

        - Unknown email: inserts and returns the new row
        - Known email, same name: returns the existing row unchanged
        - Known email, different name: raises IdentityConflict without writing

        If another transaction inserts the same email between the lookup and
        the INSERT, the UniqueViolation aborts this transaction, so the row
        cannot be re-read to compare names. That race is reported as
        IdentityConflict with existing_name=None even when the names match;
        retrying the order then reuses the committed customer.

        Raises:
            IdentityConflict: email already registered under another name
        """
        existing = self.find_by_email(conn, customer.email)

        if existing:
            if existing.name != customer.name:
                raise IdentityConflict(customer.email, existing.name, customer.name)

            logger.info(f"Existing customer found: {existing.name} ({existing.email})")
            return existing

        try:
            with db_cursor(conn) as cursor:
                cursor.execute(f"""
                    INSERT INTO customers (name, email, phone, address)
                    VALUES (%s, %s, %s, %s)
                    RETURNING {CUSTOMER_COLUMNS}
                """, (customer.name, customer.email, customer.phone, customer.address))
                row = cursor.fetchone()
        except psycopg2.errors.UniqueViolation as e:
            # Registered concurrently by another transaction
            raise IdentityConflict(customer.email, None, customer.name) from e

        created = self._map_row_to_customer(row)
        logger.info(f"Customer created: {created.name} (ID: {created.id})")
        return created

    def update(self, conn, customer_id: int, updates: Union[CustomerUpdate, dict]) -> Customer:
        """
        Update whitelisted customer fields

        Email is the identity key and cannot be changed here.

        Raises:
            CustomerNotFound: no customer with that ID
        """
        if isinstance(updates, CustomerUpdate):
            updates = updates.model_dump(exclude_none=True)

        fields = {k: v for k, v in updates.items() if k in self.UPDATABLE_FIELDS}
        if not fields:
            customer = self.find_by_id(conn, customer_id)
            if not customer:
                raise CustomerNotFound(customer_id)
            return customer

        set_clause = ", ".join(f"{column} = %s" for column in fields)

        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                UPDATE customers
                SET {set_clause}
                WHERE id = %s
                RETURNING {CUSTOMER_COLUMNS}
            """, list(fields.values()) + [customer_id])
            row = cursor.fetchone()

        if not row:
            raise CustomerNotFound(customer_id)
        return self._map_row_to_customer(row)

    def delete(self, conn, customer_id: int) -> bool:
        """Delete a customer (cascades to their orders). True if a row was removed"""
        with db_cursor(conn) as cursor:
            cursor.execute("DELETE FROM customers WHERE id = %s", (customer_id,))
            return cursor.rowcount > 0
