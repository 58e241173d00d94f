"""Identity resolution - map a channel identity onto a CRM contact.

Resolution strategy
───────────────────
  1. Look up contacts by the channel's natural key (exact match).
  2. Found → return its id. Nothing is overwritten on a repeat contact.
  3. Not found → insert with the natural key, seed or default names, the
     configured parent id and contact type.
  4. Insert rejected by a unique index → another message created the contact
     concurrently; re-read and return that id.

Each call is one scoped transaction: the connection is released whether the
call succeeds or fails.
"""

from __future__ import annotations

from omnibridge.config import BridgeSettings
from omnibridge.domain.channels import Channel, normalize_external_id, parse_channel
from omnibridge.domain.intents import SeedProfile
from omnibridge.infra.db import StoreError, txn
from omnibridge.infra.hashing import hash_identifier
from omnibridge.infra.repositories import contacts_repository
from omnibridge.observability.logging import get_logger
from omnibridge.observability.redaction import safe_log_context

logger = get_logger(__name__)

DEFAULT_FIRST_NAME = "User"


class IdentityResolver:
    """Resolves (channel, external id) pairs to contact ids."""

    def __init__(self, settings: BridgeSettings) -> None:
        self._settings = settings

    def resolve_contact(
        self,
        channel: Channel | str,
        external_id: str,
        seed_profile: SeedProfile | None = None,
    ) -> int:
        """Return the contact id for an external identity, creating it if needed.

        Args:
            channel: "whatsapp" or "messenger".
            external_id: Phone number (WhatsApp) or sender id (Messenger). NEVER logged.
            seed_profile: Names/email used only when the contact is created.

        Returns:
            Contact id.

        Raises:
            UnsupportedChannelError: If the channel is unknown.
            ValueError: If external_id is empty after normalization.
            StoreError: On any store failure.
        """
        channel = parse_channel(channel)
        external_id = normalize_external_id(channel, external_id)
        seed = seed_profile or SeedProfile()

        with txn(self._settings.database) as cur:
            contact_id = contacts_repository.find_id_by_natural_key(cur, channel, external_id)
            created = False

            if contact_id is None:
                contact_id = contacts_repository.insert_contact_if_absent(
                    cur,
                    channel=channel,
                    external_id=external_id,
                    last_name=seed.last_name or channel.label,
                    first_name=seed.first_name or DEFAULT_FIRST_NAME,
                    email=seed.email,
                    parent_id=self._settings.default_parent_id,
                    contact_type=self._settings.default_contact_type,
                )
                created = contact_id is not None

                if contact_id is None:
                    contact_id = contacts_repository.find_id_by_natural_key(
                        cur, channel, external_id
                    )
                    if contact_id is None:
                        raise StoreError("contact insert conflicted but no row was found")

        logger.info(
            "contact resolved",
            extra={
                "extra_fields": safe_log_context(
                    channel=channel.value,
                    identity_hash=hash_identifier(external_id, channel.value),
                    contact_id=contact_id,
                    created=created,
                )
            },
        )
        return contact_id
