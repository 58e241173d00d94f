"""Tests for intent dispatch and the built-in action handlers."""

from decimal import Decimal

import pytest

from omnibridge.domain.actions import (
    REPLY_ASK_PRODUCT,
    REPLY_CONTACT_UPDATED,
    REPLY_FALLBACK,
    REPLY_NO_PRODUCTS,
    REPLY_PRODUCT_NOT_FOUND,
    ActionHandler,
    IntentDispatcher,
    format_price,
)
from omnibridge.domain.intents import Intent
from omnibridge.infra.db import StoreError
from omnibridge.infra.repositories import products_repository

CATALOGUE = [
    ("Paracétamol", "1500"),
    ("Doliprane", "2000"),
    ("Masque chirurgical", "250"),
    ("Gel hydroalcoolique", "3500.50"),
    ("Thermomètre", "7500"),
    ("Vitamine C", "1200"),
]


@pytest.fixture
def dispatcher(settings):
    return IntentDispatcher(settings)


@pytest.fixture
def contact_id(fake_store):
    return fake_store.add_contact(
        nom="Diop", prenom="Awa", telephone="+221771234567", email=None
    )


class TestPresentProducts:
    def test_lists_at_most_five_products(self, dispatcher, fake_store, contact_id):
        for name, price in CATALOGUE:
            fake_store.add_product(name, price)

        reply = dispatcher.execute_intent(contact_id, {"action": "present_products"})

        assert reply.split("\n") == [
            "Paracétamol: 1500 FCFA",
            "Doliprane: 2000 FCFA",
            "Masque chirurgical: 250 FCFA",
            "Gel hydroalcoolique: 3500.5 FCFA",
            "Thermomètre: 7500 FCFA",
        ]
        assert fake_store.writes == []

    def test_empty_catalogue(self, dispatcher, fake_store, contact_id):
        assert dispatcher.execute_intent(contact_id, {"action": "present_products"}) == (
            REPLY_NO_PRODUCTS
        )

    def test_currency_can_be_disabled(self, settings, fake_store, contact_id):
        from dataclasses import replace

        fake_store.add_product("Doliprane", "2000")
        dispatcher = IntentDispatcher(replace(settings, currency=""))

        assert dispatcher.execute_intent(contact_id, {"action": "present_products"}) == (
            "Doliprane: 2000"
        )


class TestCreateContact:
    def test_only_supplied_field_changes(self, dispatcher, fake_store, contact_id):
        reply = dispatcher.execute_intent(
            contact_id, {"action": "create_contact", "data": {"email": "a@b.com"}}
        )

        assert reply == REPLY_CONTACT_UPDATED
        row = fake_store.contacts[contact_id]
        assert row["email"] == "a@b.com"
        assert row["nom"] == "Diop"
        assert row["prenom"] == "Awa"
        assert row["telephone"] == "+221771234567"

    def test_classifier_keys_are_mapped(self, dispatcher, fake_store, contact_id):
        dispatcher.execute_intent(
            contact_id,
            {
                "action": "create_contact",
                "data": {"nom": "Ndiaye", "prenom": "Fatou", "phone": "+221770000009"},
            },
        )

        row = fake_store.contacts[contact_id]
        assert row["nom"] == "Ndiaye"
        assert row["prenom"] == "Fatou"
        assert row["telephone"] == "+221770000009"

    def test_null_and_blank_fields_do_not_clobber(self, dispatcher, fake_store, contact_id):
        dispatcher.execute_intent(
            contact_id,
            {"action": "create_contact", "data": {"nom": None, "prenom": "  ", "email": "x"}},
        )

        row = fake_store.contacts[contact_id]
        assert row["nom"] == "Diop"
        assert row["prenom"] == "Awa"
        assert row["email"] is None

    def test_empty_payload_skips_store(self, dispatcher, fake_store, contact_id):
        reply = dispatcher.execute_intent(contact_id, {"action": "create_contact"})

        assert reply == REPLY_CONTACT_UPDATED
        assert fake_store.writes == []
        assert fake_store.connections == []


class TestCreateOrder:
    def test_unknown_product_short_circuits(self, dispatcher, fake_store, contact_id):
        fake_store.add_product("Doliprane", "2000")

        reply = dispatcher.execute_intent(
            contact_id, {"action": "create_order", "data": {"produit": "Aspirine"}}
        )

        assert reply == REPLY_PRODUCT_NOT_FOUND
        assert fake_store.orders == []
        assert "insert_order" not in fake_store.writes

    def test_lookup_is_exact(self, dispatcher, fake_store, contact_id):
        fake_store.add_product("Doliprane", "2000")

        reply = dispatcher.execute_intent(
            contact_id, {"action": "create_order", "data": {"produit": "doliprane"}}
        )

        assert reply == REPLY_PRODUCT_NOT_FOUND
        assert fake_store.orders == []

    def test_creates_order_for_contact(self, dispatcher, fake_store, contact_id):
        product = fake_store.add_product("Doliprane", "2000")

        reply = dispatcher.execute_intent(
            contact_id,
            {"action": "create_order", "data": {"produit": "Doliprane", "quantite": "2"}},
        )

        assert reply == "Commande #100 enregistrée : 2 x Doliprane (2000 FCFA), total 4000 FCFA."
        assert reply != REPLY_PRODUCT_NOT_FOUND
        assert fake_store.orders == [
            {"id": 100, "contactId": contact_id, "total": Decimal("4000")}
        ]
        assert fake_store.order_lines[0]["produitId"] == product.id
        assert fake_store.order_lines[0]["quantite"] == 2

    def test_quantity_defaults_to_one(self, dispatcher, fake_store, contact_id):
        fake_store.add_product("Doliprane", "2000")

        dispatcher.execute_intent(
            contact_id,
            {"action": "create_order", "data": {"produit": "Doliprane", "quantite": "beaucoup"}},
        )

        assert fake_store.order_lines[0]["quantite"] == 1

    def test_missing_product_name_asks(self, dispatcher, fake_store, contact_id):
        reply = dispatcher.execute_intent(contact_id, {"action": "create_order", "data": {}})

        assert reply == REPLY_ASK_PRODUCT
        assert fake_store.connections == []


class TestFallback:
    def test_unknown_action(self, dispatcher, fake_store, contact_id):
        reply = dispatcher.execute_intent(contact_id, {"action": "frobnicate"})

        assert reply == REPLY_FALLBACK
        assert fake_store.writes == []
        assert fake_store.connections == []

    @pytest.mark.parametrize("intent", [None, {}, {"data": {"x": 1}}, {"action": 42}])
    def test_missing_action(self, dispatcher, fake_store, contact_id, intent):
        assert dispatcher.execute_intent(contact_id, intent) == REPLY_FALLBACK
        assert fake_store.connections == []

    def test_action_name_is_normalized(self, dispatcher, fake_store, contact_id):
        fake_store.add_product("Doliprane", "2000")
        reply = dispatcher.execute_intent(contact_id, Intent(action=" Present_Products "))
        assert reply == "Doliprane: 2000 FCFA"


class TestRegistry:
    class GreetingHandler(ActionHandler):
        action = "greeting"

        def execute(self, contact_id, data):
            return f"Bonjour {data.get('name', 'cher client')} !"

    def test_register_adds_action(self, settings, fake_store, contact_id):
        dispatcher = IntentDispatcher(settings)
        dispatcher.register(self.GreetingHandler(settings))

        assert "greeting" in dispatcher.actions
        assert dispatcher.execute_intent(
            contact_id, {"action": "greeting", "data": {"name": "Awa"}}
        ) == "Bonjour Awa !"

    def test_register_replaces_existing(self, settings, fake_store, contact_id):
        class Quiet(ActionHandler):
            action = "present_products"

            def execute(self, contact_id, data):
                return "catalogue indisponible"

        dispatcher = IntentDispatcher(settings)
        dispatcher.register(Quiet(settings))

        assert dispatcher.execute_intent(contact_id, {"action": "present_products"}) == (
            "catalogue indisponible"
        )

    def test_custom_handler_set(self, settings, fake_store, contact_id):
        dispatcher = IntentDispatcher(settings, handlers=[self.GreetingHandler(settings)])
        assert dispatcher.actions == frozenset({"greeting"})
        assert dispatcher.execute_intent(contact_id, {"action": "present_products"}) == (
            REPLY_FALLBACK
        )

    def test_handler_without_action_rejected(self, settings):
        class Nameless(ActionHandler):
            def execute(self, contact_id, data):
                return ""

        with pytest.raises(ValueError):
            IntentDispatcher(settings).register(Nameless(settings))


class TestStoreErrors:
    def test_store_error_propagates(self, dispatcher, fake_store, contact_id, monkeypatch):
        def broken(cur, limit):
            raise StoreError("store failure: OperationalError")

        monkeypatch.setattr(products_repository, "list_products", broken)

        with pytest.raises(StoreError):
            dispatcher.execute_intent(contact_id, {"action": "present_products"})
        assert fake_store.all_connections_closed()


class TestFormatPrice:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("1500.00"), "1500"),
            (Decimal("12.50"), "12.5"),
            (Decimal("1E+3"), "1000"),
            (2000, "2000"),
            (0.25, "0.25"),
        ],
    )
    def test_format(self, value, expected):
        assert format_price(value) == expected

    def test_with_currency(self):
        assert format_price(Decimal("1500"), "FCFA") == "1500 FCFA"
