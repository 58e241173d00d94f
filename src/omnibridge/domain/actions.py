"""Intent dispatch - business actions driven by classified intents.

The dispatcher owns a registry of action handlers keyed by action name.
Adding an action means registering one more handler; dispatch itself never
changes. Unknown or missing actions are a normal outcome answered with a
fallback reply and no store access.

Handler contract: `execute(contact_id, data) -> reply`. Handlers open their
own scoped transaction only when they actually need the store, and let
StoreError propagate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Iterable, Mapping

from omnibridge.config import BridgeSettings
from omnibridge.domain.intents import ContactUpdate, Intent, OrderRequest
from omnibridge.infra.db import txn
from omnibridge.infra.repositories import (
    contacts_repository,
    orders_repository,
    products_repository,
)
from omnibridge.observability.logging import get_logger
from omnibridge.observability.redaction import safe_log_context

logger = get_logger(__name__)

# Fixed user-facing replies
REPLY_CONTACT_UPDATED = "Vos informations ont été mises à jour."
REPLY_PRODUCT_NOT_FOUND = "Produit introuvable."
REPLY_NO_PRODUCTS = "Aucun produit disponible pour le moment."
REPLY_ASK_PRODUCT = "Quel produit souhaitez-vous commander ?"
REPLY_FALLBACK = (
    "Je n'ai pas bien compris votre demande. "
    "Vous pouvez consulter nos produits ou passer une commande."
)


def format_price(value: Decimal | int | float, currency: str = "") -> str:
    """Format a price without trailing zeros: Decimal("1500.00") -> "1500"."""
    amount = Decimal(str(value))
    if amount == amount.to_integral_value():
        text = str(amount.quantize(Decimal(1)))
    else:
        text = str(amount.normalize())
    return f"{text} {currency}" if currency else text


class ActionHandler(ABC):
    """One business action reachable from an intent."""

    action: str = ""

    def __init__(self, settings: BridgeSettings) -> None:
        self._settings = settings

    @abstractmethod
    def execute(self, contact_id: int, data: Mapping[str, Any]) -> str:
        """Run the action for a resolved contact and return the reply text."""


class PresentProductsHandler(ActionHandler):
    action = "present_products"

    def execute(self, contact_id: int, data: Mapping[str, Any]) -> str:
        with txn(self._settings.database) as cur:
            products = products_repository.list_products(
                cur, self._settings.product_list_limit
            )

        if not products:
            return REPLY_NO_PRODUCTS

        return "\n".join(
            f"{p.name}: {format_price(p.price, self._settings.currency)}"
            for p in products
        )


class CreateContactHandler(ActionHandler):
    """Fill in contact details; fields the intent omits are left untouched."""

    action = "create_contact"

    def execute(self, contact_id: int, data: Mapping[str, Any]) -> str:
        update = ContactUpdate.model_validate(dict(data))
        if update.is_empty():
            return REPLY_CONTACT_UPDATED

        with txn(self._settings.database) as cur:
            found = contacts_repository.update_contact_partial(
                cur,
                contact_id,
                last_name=update.last_name,
                first_name=update.first_name,
                email=update.email,
                phone=update.phone,
            )

        if not found:
            logger.warning(
                "contact update matched no row",
                extra={"extra_fields": safe_log_context(contact_id=contact_id)},
            )
        return REPLY_CONTACT_UPDATED


class CreateOrderHandler(ActionHandler):
    action = "create_order"

    def execute(self, contact_id: int, data: Mapping[str, Any]) -> str:
        request = OrderRequest.model_validate(dict(data))
        if request.product is None:
            return REPLY_ASK_PRODUCT

        currency = self._settings.currency
        with txn(self._settings.database) as cur:
            product = products_repository.find_by_exact_name(cur, request.product)
            if product is None:
                return REPLY_PRODUCT_NOT_FOUND

            order_id = orders_repository.insert_order(
                cur,
                contact_id=contact_id,
                product_id=product.id,
                quantity=request.quantity,
                unit_price=product.price,
            )

        logger.info(
            "order created",
            extra={
                "extra_fields": safe_log_context(
                    contact_id=contact_id,
                    order_id=order_id,
                    product_id=product.id,
                    quantity=request.quantity,
                )
            },
        )
        total = product.price * request.quantity
        return (
            f"Commande #{order_id} enregistrée : {request.quantity} x {product.name} "
            f"({format_price(product.price, currency)}), "
            f"total {format_price(total, currency)}."
        )


def default_handlers(settings: BridgeSettings) -> list[ActionHandler]:
    return [
        PresentProductsHandler(settings),
        CreateContactHandler(settings),
        CreateOrderHandler(settings),
    ]


class IntentDispatcher:
    """Routes an intent to the handler registered for its action."""

    def __init__(
        self,
        settings: BridgeSettings,
        handlers: Iterable[ActionHandler] | None = None,
    ) -> None:
        self._settings = settings
        self._handlers: dict[str, ActionHandler] = {}
        for handler in default_handlers(settings) if handlers is None else handlers:
            self.register(handler)

    def register(self, handler: ActionHandler) -> None:
        """Add a handler, replacing any handler registered for the same action."""
        if not handler.action:
            raise ValueError(f"{type(handler).__name__} has no action name")
        self._handlers[handler.action] = handler

    @property
    def actions(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def execute_intent(
        self,
        contact_id: int,
        intent: Intent | Mapping[str, Any] | None,
    ) -> str:
        """Execute an intent for a contact and return the reply text.

        Raises:
            StoreError: If the store fails during the action.
        """
        intent = Intent.from_raw(intent)
        handler = self._handlers.get(intent.action or "")

        if handler is None:
            logger.info(
                "unhandled intent",
                extra={
                    "extra_fields": safe_log_context(
                        contact_id=contact_id, action=intent.action
                    )
                },
            )
            return REPLY_FALLBACK

        logger.info(
            "executing intent",
            extra={
                "extra_fields": safe_log_context(
                    contact_id=contact_id, action=intent.action, data=intent.data
                )
            },
        )
        return handler.execute(contact_id, intent.data)
