"""Shared test helpers for the bridge tests.

These are NOT fixtures - conftest.py wires them up.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

from omnibridge.domain.channels import Channel
from omnibridge.infra.repositories.products_repository import ProductRow


class FakeStore:
    """In-memory stand-in for the contacts/products/orders repositories.

    Method signatures mirror the repository functions so the store can be
    patched onto the repository modules. `unique_natural_keys` mimics the
    partial unique indexes from migration 001.
    """

    def __init__(self, unique_natural_keys: bool = True):
        self.unique_natural_keys = unique_natural_keys
        self.contacts: dict[int, dict] = {}
        self.products: list[ProductRow] = []
        self.orders: list[dict] = []
        self.order_lines: list[dict] = []
        self.writes: list[str] = []
        self.connections: list[MagicMock] = []
        self._next_contact_id = 1
        self._next_order_id = 100

    # ── seeding ─────────────────────────────────────────────────────────────

    def add_product(self, name: str, price: str) -> ProductRow:
        product = ProductRow(len(self.products) + 1, name, Decimal(price))
        self.products.append(product)
        return product

    def add_contact(self, **fields) -> int:
        contact_id = self._next_contact_id
        self._next_contact_id += 1
        row = {
            "nom": None,
            "prenom": None,
            "telephone": None,
            "email": None,
            "compte": None,
            "contactId": 1,
            "typeContact": "prospect",
        }
        row.update(fields)
        self.contacts[contact_id] = row
        return contact_id

    # ── connection factory (patched over omnibridge.infra.db.get_conn) ──────

    def get_conn(self, settings):
        conn = MagicMock(name=f"conn{len(self.connections)}")
        self.connections.append(conn)
        return conn

    def all_connections_closed(self) -> bool:
        return all(conn.close.called for conn in self.connections)

    # ── contacts_repository ─────────────────────────────────────────────────

    def find_id_by_natural_key(self, cur, channel: Channel, external_id: str):
        column = channel.natural_key
        for contact_id in sorted(self.contacts):
            if self.contacts[contact_id][column] == external_id:
                return contact_id
        return None

    def insert_contact_if_absent(
        self,
        cur,
        *,
        channel,
        external_id,
        last_name,
        first_name,
        email,
        parent_id,
        contact_type,
    ):
        if self.unique_natural_keys and self.find_id_by_natural_key(cur, channel, external_id):
            return None
        self.writes.append("insert_contact")
        return self.add_contact(
            nom=last_name,
            prenom=first_name,
            email=email,
            telephone=external_id if channel is Channel.WHATSAPP else None,
            compte=external_id if channel is Channel.MESSENGER else None,
            contactId=parent_id,
            typeContact=contact_type,
        )

    def update_contact_partial(
        self, cur, contact_id, *, last_name=None, first_name=None, email=None, phone=None
    ):
        self.writes.append("update_contact")
        row = self.contacts.get(contact_id)
        if row is None:
            return False
        for column, value in (
            ("nom", last_name),
            ("prenom", first_name),
            ("email", email),
            ("telephone", phone),
        ):
            if value is not None:
                row[column] = value
        return True

    # ── products_repository ─────────────────────────────────────────────────

    def list_products(self, cur, limit):
        return list(self.products[:limit])

    def find_by_exact_name(self, cur, name):
        for product in self.products:
            if product.name == name:
                return product
        return None

    # ── orders_repository ───────────────────────────────────────────────────

    def insert_order(self, cur, *, contact_id, product_id, quantity, unit_price):
        self.writes.append("insert_order")
        order_id = self._next_order_id
        self._next_order_id += 1
        self.orders.append(
            {"id": order_id, "contactId": contact_id, "total": unit_price * quantity}
        )
        self.order_lines.append(
            {
                "commandeId": order_id,
                "produitId": product_id,
                "quantite": quantity,
                "prixUnitaire": unit_price,
            }
        )
        return order_id

    def install(self, monkeypatch) -> None:
        """Patch the repository modules and the connection factory."""
        from omnibridge.infra import db
        from omnibridge.infra.repositories import (
            contacts_repository,
            orders_repository,
            products_repository,
        )

        monkeypatch.setattr(db, "get_conn", self.get_conn)
        for name in (
            "find_id_by_natural_key",
            "insert_contact_if_absent",
            "update_contact_partial",
        ):
            monkeypatch.setattr(contacts_repository, name, getattr(self, name))
        monkeypatch.setattr(products_repository, "list_products", self.list_products)
        monkeypatch.setattr(products_repository, "find_by_exact_name", self.find_by_exact_name)
        monkeypatch.setattr(orders_repository, "insert_order", self.insert_order)


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def messages(self, level: str | None = None) -> list[str]:
        return [args[0] for lvl, args, _ in self.calls if level is None or lvl == level]

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for _, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)

    def has_extra_field(self, key: str) -> bool:
        for _, _, kwargs in self.calls:
            extra_fields = kwargs.get("extra", {}).get("extra_fields", {})
            if key in extra_fields:
                return True
        return False
