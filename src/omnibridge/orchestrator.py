"""Conversation orchestrator - one inbound message, one unit of work.

Sequence (never reordered):
  1. IdentityResolver   → contact id
  2. IntentDispatcher   → reply text (+ store mutation)
  3. NotificationSender → outbound call to the originating channel

Failure policy:
- Unknown channel: nothing touches the store, nothing is sent.
- StoreError in steps 1-2: logged, a generic apology is sent (never the
  internal error), then the StoreError is re-raised to the caller.
- DeliveryError in step 3: propagated as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from omnibridge.config import BridgeSettings
from omnibridge.domain.actions import IntentDispatcher
from omnibridge.domain.channels import Channel, normalize_external_id, parse_channel
from omnibridge.domain.identity import IdentityResolver
from omnibridge.domain.intents import Intent, SeedProfile
from omnibridge.infra.db import StoreError
from omnibridge.infra.hashing import hash_identifier
from omnibridge.messaging.inbound import InboundMessage
from omnibridge.messaging.sender import DeliveryError, DeliveryReceipt, NotificationSender
from omnibridge.observability.correlation import correlation_scope
from omnibridge.observability.logging import get_logger
from omnibridge.observability.redaction import safe_log_context

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConversationResult:
    contact_id: int
    action: str | None
    reply: str
    receipt: DeliveryReceipt


class ConversationOrchestrator:
    """Composition root for the conversational bridge."""

    def __init__(
        self,
        settings: BridgeSettings,
        resolver: IdentityResolver,
        dispatcher: IntentDispatcher,
        sender: NotificationSender,
    ) -> None:
        self._settings = settings
        self._resolver = resolver
        self._dispatcher = dispatcher
        self._sender = sender

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> ConversationOrchestrator:
        return cls(
            settings,
            IdentityResolver(settings),
            IntentDispatcher(settings),
            NotificationSender(settings),
        )

    def handle_message(
        self,
        channel: Channel | str,
        external_id: str,
        intent: Intent | Mapping[str, Any] | None,
        seed_profile: SeedProfile | None = None,
    ) -> ConversationResult:
        """Resolve the sender, execute the intent and send the reply.

        Args:
            channel: "whatsapp" or "messenger".
            external_id: Phone number or Messenger sender id. NEVER logged.
            intent: Classifier output {"action": ..., "data": {...}}.
            seed_profile: Optional names/email for a first-time contact.

        Raises:
            UnsupportedChannelError: If the channel is unknown.
            ValueError: If external_id is empty after normalization.
            StoreError: If the store failed (after the apology attempt).
            DeliveryError: If the reply could not be delivered.
        """
        channel = parse_channel(channel)
        # the reply goes to the same key the contact is stored under
        external_id = normalize_external_id(channel, external_id)
        intent = Intent.from_raw(intent)

        with correlation_scope():
            log_ctx = safe_log_context(
                channel=channel.value,
                identity_hash=hash_identifier(external_id, channel.value),
                action=intent.action,
            )
            logger.info("inbound message received", extra={"extra_fields": log_ctx})

            try:
                contact_id = self._resolver.resolve_contact(channel, external_id, seed_profile)
                reply = self._dispatcher.execute_intent(contact_id, intent)
            except StoreError as e:
                logger.exception(
                    "store failure while handling message",
                    extra={
                        "extra_fields": {
                            **log_ctx,
                            **safe_log_context(
                                error_type=type(e).__name__, retryable=e.retryable
                            ),
                        }
                    },
                )
                self._send_apology(channel, external_id, log_ctx)
                raise

            receipt = self._sender.send(channel, external_id, reply)

            logger.info(
                "message handled",
                extra={
                    "extra_fields": {
                        **log_ctx,
                        **safe_log_context(contact_id=contact_id, reply_len=len(reply)),
                    }
                },
            )
            return ConversationResult(
                contact_id=contact_id,
                action=intent.action,
                reply=reply,
                receipt=receipt,
            )

    def handle_inbound(
        self,
        message: InboundMessage,
        intent: Intent | Mapping[str, Any] | None,
    ) -> ConversationResult:
        """handle_message() for a payload normalized by messaging.inbound."""
        return self.handle_message(
            message.channel, message.external_id, intent, message.seed_profile
        )

    def _send_apology(self, channel: Channel, external_id: str, log_ctx: dict[str, str]) -> None:
        if not self._settings.apology_text:
            return
        try:
            self._sender.send(channel, external_id, self._settings.apology_text)
        except DeliveryError as e:
            # The store failure is what the caller must see.
            logger.warning(
                "apology delivery failed",
                extra={
                    "extra_fields": {
                        **log_ctx,
                        **safe_log_context(error_type=type(e).__name__),
                    }
                },
            )
