"""Store client: one parameterized statement per operation.

A ``Store`` wraps the SQLAlchemy engine (and with it the connection pool).
It is built once by ``create_app`` and shared by every request handler.
Each method borrows a connection for a single statement and returns plain
dicts, so handlers never see driver rows.

Errors raised by the driver (``sqlalchemy.exc.SQLAlchemyError``) propagate
to the caller unchanged; "nothing matched" is reported as ``None`` or
``False`` instead.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

PRODUCT_COLUMNS = "id, productname, description, category, price, quantity"

# Clamp-to-zero stock adjustment
ADJUST_QUANTITY_SQL = text(
    "UPDATE products "
    "SET quantity = CASE WHEN quantity + :delta < 0 THEN 0 ELSE quantity + :delta END "
    f"WHERE id = :id RETURNING {PRODUCT_COLUMNS}"
)


def _product_to_dict(row) -> Dict[str, Any]:
    product = dict(row)
    if isinstance(product.get("price"), Decimal):
        product["price"] = float(product["price"])
    return product


class Store:
    def __init__(self, engine: Engine):
        self._engine = engine

    def close(self) -> None:
        self._engine.dispose()

    # users

    def create_user(self, username: str, password_hash: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                text("INSERT INTO users (username, password) VALUES (:username, :password)"),
                {"username": username, "password": password_hash},
            )

    def get_user(self, username: str) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT username, password FROM users WHERE username = :username"),
                {"username": username},
            ).mappings().first()
        return dict(row) if row else None

    def list_users(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(text("SELECT username FROM users ORDER BY username")).mappings().all()
        return [dict(row) for row in rows]

    # products

    def list_products(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(text(f"SELECT {PRODUCT_COLUMNS} FROM products ORDER BY id")).mappings().all()
        return [_product_to_dict(row) for row in rows]

    def create_product(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._engine.begin() as conn:
            row = conn.execute(
                text(
                    "INSERT INTO products (productname, description, category, price, quantity) "
                    "VALUES (:productname, :description, :category, :price, :quantity) "
                    f"RETURNING {PRODUCT_COLUMNS}"
                ),
                fields,
            ).mappings().one()
        return _product_to_dict(row)

    def update_product(self, product_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._engine.begin() as conn:
            row = conn.execute(
                text(
                    "UPDATE products SET productname = :productname, description = :description, "
                    "category = :category, price = :price, quantity = :quantity "
                    f"WHERE id = :id RETURNING {PRODUCT_COLUMNS}"
                ),
                {**fields, "id": product_id},
            ).mappings().first()
        return _product_to_dict(row) if row else None

    def delete_product(self, product_id: int) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(text("DELETE FROM products WHERE id = :id"), {"id": product_id})
        return result.rowcount > 0

    def adjust_quantity(self, product_id: int, delta: int) -> Optional[Dict[str, Any]]:
        """Add ``delta`` to a product's quantity, flooring the result at 0.

        Returns the updated product, or ``None`` when no product has that id.
        """
        with self._engine.begin() as conn:
            row = conn.execute(ADJUST_QUANTITY_SQL, {"delta": delta, "id": product_id}).mappings().first()
        return _product_to_dict(row) if row else None
