"""Orders repository - order creation only.

Order lifecycle (status changes, stock, invoicing) belongs to the CRM; this
module only records a new order and its single product line.
"""

from __future__ import annotations

from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

DEFAULT_ORDER_STATUS = "nouvelle"


def insert_order(
    cur: PgCursor,
    *,
    contact_id: int,
    product_id: int,
    quantity: int,
    unit_price: Decimal,
) -> int:
    """Create an order with one line. Runs inside the caller's transaction.

    Returns:
        The new order id.
    """
    total = unit_price * quantity

    cur.execute(
        """
        INSERT INTO commandes (date, statut, total, contactId, createdAt, updatedAt)
        VALUES (now(), %s, %s, %s, now(), now())
        RETURNING id
        """,
        (DEFAULT_ORDER_STATUS, total, contact_id),
    )
    order_id = int(cur.fetchone()[0])

    cur.execute(
        """
        INSERT INTO commande_produits (commandeId, produitId, quantite, prixUnitaire)
        VALUES (%s, %s, %s, %s)
        """,
        (order_id, product_id, quantity, unit_price),
    )
    return order_id
