"""Outbound replies via the Meta Graph API (WhatsApp Cloud API and Messenger).

Exactly one HTTP call per send(), bounded by the configured timeout. No retry
happens here: retry/backoff is a caller policy.

Security: NEVER log recipient keys or text. Only log hashes and lengths.
"""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

from omnibridge.config import BridgeSettings
from omnibridge.domain.channels import Channel, parse_channel
from omnibridge.infra.hashing import hash_identifier
from omnibridge.observability.correlation import get_correlation_id
from omnibridge.observability.logging import get_logger
from omnibridge.observability.redaction import safe_log_context

logger = get_logger(__name__)

# Upstream error bodies are kept for the caller, truncated
MAX_ERROR_BODY = 2000


class DeliveryError(Exception):
    """Raised when the messaging API did not accept a reply."""

    retryable = False

    def __init__(
        self,
        channel: Channel,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(f"{channel.value} delivery failed: {message}")
        self.channel = channel
        self.status_code = status_code
        self.body = body


class DeliveryTimeoutError(DeliveryError):
    """Raised when the messaging API did not answer within the timeout."""

    retryable = True


@dataclass(frozen=True)
class DeliveryReceipt:
    channel: Channel
    status_code: int
    message_id: str | None = None


def _do_request(
    url: str, data: bytes, headers: dict[str, str], timeout: float
) -> tuple[int, dict[str, Any]]:
    """Execute HTTP POST. Raises urllib errors on non-2xx and network failures."""
    req = urllib.request.Request(url, data=data, headers=headers, method="POST")
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        raw = resp.read().decode("utf-8")
        return resp.status, json.loads(raw) if raw else {}


def _extract_message_id(channel: Channel, body: dict[str, Any]) -> str | None:
    if channel is Channel.WHATSAPP:
        messages = body.get("messages") or []
        if messages and isinstance(messages[0], dict):
            return messages[0].get("id")
        return None
    return body.get("message_id")


class NotificationSender:
    """Sends text replies back through the channel a message came from."""

    def __init__(self, settings: BridgeSettings) -> None:
        self._settings = settings

    def _build_request(
        self, channel: Channel, recipient_key: str, text: str
    ) -> tuple[str, dict[str, Any], str]:
        base = self._settings.graph_api_base.rstrip("/")

        if channel is Channel.WHATSAPP:
            wa = self._settings.whatsapp
            if not wa.is_configured():
                raise DeliveryError(
                    channel, "WHATSAPP_TOKEN and WHATSAPP_PHONE_ID required"
                )
            payload = {
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": recipient_key,
                "type": "text",
                "text": {"body": text},
            }
            return f"{base}/{wa.phone_number_id}/messages", payload, wa.access_token

        ms = self._settings.messenger
        if not ms.is_configured():
            raise DeliveryError(channel, "MESSENGER_TOKEN required")
        payload = {
            "recipient": {"id": recipient_key},
            "message": {"text": text},
            "messaging_type": "RESPONSE",
        }
        return f"{base}/me/messages", payload, ms.page_access_token

    def send(self, channel: Channel | str, recipient_key: str, text: str) -> DeliveryReceipt:
        """Send one text message.

        Args:
            channel: "whatsapp" or "messenger".
            recipient_key: Phone number or Messenger sender id. NEVER logged.
            text: Message text. NEVER logged.

        Returns:
            DeliveryReceipt with the upstream status and message id.

        Raises:
            UnsupportedChannelError: If the channel is unknown.
            DeliveryError: On missing credentials, HTTP or network failure.
            DeliveryTimeoutError: If the API did not answer in time.
        """
        channel = parse_channel(channel)
        url, payload, token = self._build_request(channel, recipient_key, text)

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        data = json.dumps(payload).encode("utf-8")

        log_ctx = safe_log_context(
            correlationId=get_correlation_id(),
            channel=channel.value,
            to_hash=hash_identifier(recipient_key, channel.value),
            text_len=len(text),
        )
        logger.info("sending outbound message", extra={"extra_fields": log_ctx})

        try:
            status, body = _do_request(url, data, headers, self._settings.http_timeout)
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace")[:MAX_ERROR_BODY]
            self._log_failure(log_ctx, type(e).__name__, e.code)
            raise DeliveryError(
                channel, f"HTTP {e.code}", status_code=e.code, body=error_body
            ) from e
        except urllib.error.URLError as e:
            self._log_failure(log_ctx, type(e.reason).__name__, None)
            if isinstance(e.reason, TimeoutError):
                raise DeliveryTimeoutError(channel, "timed out") from e
            raise DeliveryError(channel, f"network error: {type(e.reason).__name__}") from e
        except TimeoutError as e:
            self._log_failure(log_ctx, type(e).__name__, None)
            raise DeliveryTimeoutError(channel, "timed out") from e
        except (OSError, http.client.HTTPException) as e:
            # dropped connections and short reads bypass URLError
            self._log_failure(log_ctx, type(e).__name__, None)
            raise DeliveryError(channel, f"network error: {type(e).__name__}") from e
        except ValueError as e:
            # 2xx with a body that is not JSON
            self._log_failure(log_ctx, type(e).__name__, None)
            raise DeliveryError(channel, "invalid response body") from e

        receipt = DeliveryReceipt(
            channel=channel,
            status_code=status,
            message_id=_extract_message_id(channel, body),
        )
        logger.info(
            "outbound message sent",
            extra={"extra_fields": {**log_ctx, **safe_log_context(status=status)}},
        )
        return receipt

    @staticmethod
    def _log_failure(log_ctx: dict[str, str], error_type: str, status: int | None) -> None:
        logger.error(
            "outbound message failed",
            extra={
                "extra_fields": {
                    **log_ctx,
                    **safe_log_context(error_type=error_type, status=status),
                }
            },
        )
