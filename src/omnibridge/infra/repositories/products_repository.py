"""Products repository - read-only catalogue queries.

Products with a NULL `prix` cannot be quoted or ordered and are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor


@dataclass(frozen=True)
class ProductRow:
    id: int
    name: str
    price: Decimal


def list_products(cur: PgCursor, limit: int) -> list[ProductRow]:
    """Return up to `limit` products, ordered by id for a stable listing."""
    cur.execute(
        "SELECT id, nom, prix FROM produits WHERE prix IS NOT NULL ORDER BY id LIMIT %s",
        (limit,),
    )
    return [ProductRow(int(r[0]), r[1], Decimal(str(r[2]))) for r in cur.fetchall()]


def find_by_exact_name(cur: PgCursor, name: str) -> ProductRow | None:
    """Exact, case-sensitive name match. No fuzzy matching."""
    cur.execute(
        "SELECT id, nom, prix FROM produits "
        "WHERE nom = %s AND prix IS NOT NULL ORDER BY id LIMIT 1",
        (name,),
    )
    row = cur.fetchone()
    if row is None:
        return None
    return ProductRow(int(row[0]), row[1], Decimal(str(row[2])))
