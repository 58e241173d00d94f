"""Meta webhook adapter - validate and normalize inbound chat payloads.

Handles WhatsApp Cloud API and Messenger webhook payloads: signature
verification, subscription handshake, and extraction of the sender identity
and text the orchestrator needs.

The result carries PII (sender id, text). Use it in memory only; NEVER log it.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from omnibridge.domain.channels import Channel
from omnibridge.domain.intents import SeedProfile


class InvalidPayloadError(Exception):
    """Raised when a webhook payload has an invalid shape."""


class SignatureVerificationError(Exception):
    """Raised when HMAC signature verification fails."""


@dataclass(frozen=True)
class InboundMessage:
    """One inbound chat message, normalized across channels."""

    channel: Channel
    external_id: str
    message_id: str
    kind: str
    text: str | None
    seed_profile: SeedProfile | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def verify_signature(payload_bytes: bytes, signature_header: str, app_secret: str) -> None:
    """Verify a Meta webhook signature (X-Hub-Signature-256: sha256=<hex>).

    Raises:
        SignatureVerificationError: If the signature is missing or invalid.
    """
    if not signature_header:
        raise SignatureVerificationError("missing signature header")

    if not signature_header.startswith("sha256="):
        raise SignatureVerificationError("invalid signature format")

    expected_sig = signature_header[len("sha256="):]
    computed_sig = hmac.new(
        key=app_secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(computed_sig, expected_sig):
        raise SignatureVerificationError("signature mismatch")


def verify_subscription(
    mode: str | None,
    token: str | None,
    challenge: str | None,
    expected_token: str,
) -> str | None:
    """Answer the GET handshake Meta sends when a webhook is registered.

    Returns:
        The challenge to echo back, or None when the request must be refused.
    """
    if not expected_token:
        return None
    if mode != "subscribe" or token is None:
        return None
    if not hmac.compare_digest(token, expected_token):
        return None
    return challenge or ""


def normalize_whatsapp(payload: dict[str, Any]) -> InboundMessage:
    """Normalize a WhatsApp Cloud API webhook payload.

    Payload structure:
    {
      "object": "whatsapp_business_account",
      "entry": [{
        "changes": [{
          "value": {
            "contacts": [{"profile": {"name": "..."}, "wa_id": "PHONE"}],
            "messages": [{"from": "PHONE", "id": "MSG_ID", "type": "text",
                          "text": {"body": "..."}}]
          },
          "field": "messages"
        }]
      }]
    }

    Raises:
        InvalidPayloadError: If no usable message is present.
    """
    value = _first_change_value(payload)
    messages = value.get("messages")
    if not isinstance(messages, list) or not messages or not isinstance(messages[0], dict):
        raise InvalidPayloadError("no message found in payload")
    message = messages[0]

    message_id = message.get("id")
    if not message_id or not isinstance(message_id, str):
        raise InvalidPayloadError("missing or invalid message_id")

    sender_phone = message.get("from")
    if not sender_phone or not isinstance(sender_phone, str):
        raise InvalidPayloadError("missing sender phone number")

    kind = str(message.get("type", "unknown"))
    text = None
    if kind == "text":
        text_obj = message.get("text")
        text = text_obj.get("body") if isinstance(text_obj, dict) else None

    return InboundMessage(
        channel=Channel.WHATSAPP,
        external_id=sender_phone,
        message_id=message_id,
        kind=kind,
        text=text,
        seed_profile=_whatsapp_profile(value, sender_phone),
    )


def normalize_messenger(payload: dict[str, Any]) -> InboundMessage:
    """Normalize a Messenger webhook payload.

    Payload structure:
    {
      "object": "page",
      "entry": [{
        "messaging": [{
          "sender": {"id": "PSID"},
          "recipient": {"id": "PAGE_ID"},
          "message": {"mid": "MSG_ID", "text": "..."}
        }]
      }]
    }

    Raises:
        InvalidPayloadError: If no usable message is present.
    """
    try:
        event = payload["entry"][0]["messaging"][0]
    except (IndexError, KeyError, TypeError):
        raise InvalidPayloadError("no messaging event found in payload") from None

    if not isinstance(event, dict):
        raise InvalidPayloadError("invalid messaging event")

    sender = event.get("sender")
    sender_id = sender.get("id") if isinstance(sender, dict) else None
    if not sender_id or not isinstance(sender_id, str):
        raise InvalidPayloadError("missing sender id")

    message = event.get("message")
    if not isinstance(message, dict):
        raise InvalidPayloadError("event is not a message")

    message_id = message.get("mid")
    if not message_id or not isinstance(message_id, str):
        raise InvalidPayloadError("missing or invalid message id")

    text = message.get("text")
    return InboundMessage(
        channel=Channel.MESSENGER,
        external_id=sender_id,
        message_id=message_id,
        kind="text" if isinstance(text, str) else "attachment",
        text=text if isinstance(text, str) else None,
    )


def _first_change_value(payload: dict[str, Any]) -> dict[str, Any]:
    try:
        value = payload["entry"][0]["changes"][0]["value"]
    except (IndexError, KeyError, TypeError):
        raise InvalidPayloadError("no change value found in payload") from None
    if not isinstance(value, dict):
        raise InvalidPayloadError("invalid change value")
    return value


def _whatsapp_profile(value: dict[str, Any], sender_phone: str) -> SeedProfile | None:
    for contact in value.get("contacts") or []:
        if not isinstance(contact, dict) or contact.get("wa_id") not in (None, sender_phone):
            continue
        profile = contact.get("profile")
        name = profile.get("name") if isinstance(profile, dict) else None
        if isinstance(name, str) and name.strip():
            first, _, last = name.strip().partition(" ")
            return SeedProfile(first_name=first, last_name=last or None)
    return None
