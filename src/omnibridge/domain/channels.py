"""Messaging channels and their natural keys.

A channel decides which `contacts` column identifies the person on the other
side: the phone number for WhatsApp, the page-scoped sender id for Messenger.
"""

from __future__ import annotations

import re
from enum import Enum


class UnsupportedChannelError(ValueError):
    """Raised when a channel tag is not one of the supported channels."""

    def __init__(self, channel: object) -> None:
        super().__init__(f"unsupported channel: {channel!r}")
        self.channel = channel


class Channel(str, Enum):
    WHATSAPP = "whatsapp"
    MESSENGER = "messenger"

    @property
    def natural_key(self) -> str:
        """Column of `contacts` holding this channel's external id."""
        return NATURAL_KEYS[self]

    @property
    def label(self) -> str:
        """Human label used as the default last name of new contacts."""
        return LABELS[self]


NATURAL_KEYS: dict[Channel, str] = {
    Channel.WHATSAPP: "telephone",
    Channel.MESSENGER: "compte",
}

LABELS: dict[Channel, str] = {
    Channel.WHATSAPP: "WhatsApp",
    Channel.MESSENGER: "Messenger",
}


def parse_channel(value: Channel | str) -> Channel:
    """Coerce a channel tag into a Channel.

    Raises:
        UnsupportedChannelError: If the tag is unknown.
    """
    if isinstance(value, Channel):
        return value
    if isinstance(value, str):
        try:
            return Channel(value.strip().lower())
        except ValueError:
            pass
    raise UnsupportedChannelError(value)


_WHATSAPP_PREFIX = "whatsapp:"
_NON_PHONE_CHARS = re.compile(r"[^\d+]")


def normalize_external_id(channel: Channel, external_id: str) -> str:
    """Return the canonical natural key for an external id.

    WhatsApp ids lose a "whatsapp:" prefix and everything except digits
    and "+", so "whatsapp:+221 77 000 00 00" and "+221770000000" are the
    same contact. Messenger ids are only trimmed.

    Raises:
        ValueError: If nothing usable is left.
    """
    if not isinstance(external_id, str):
        raise ValueError("external_id must be a non-empty string")
    key = external_id.strip()
    if channel is Channel.WHATSAPP:
        if key.lower().startswith(_WHATSAPP_PREFIX):
            key = key[len(_WHATSAPP_PREFIX):]
        key = _NON_PHONE_CHARS.sub("", key)
    if not key:
        raise ValueError("external_id must be a non-empty string")
    return key
