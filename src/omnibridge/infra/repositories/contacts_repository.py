"""Contacts repository - natural-key lookup and partial updates.

Uses raw SQL with psycopg2 (no ORM).

Natural keys
────────────
Each channel addresses a contact through exactly one column:

  whatsapp  → contacts.telephone
  messenger → contacts.compte

Lookups are exact equality on that column. Column names come from the closed
NATURAL_KEYS map in omnibridge.domain.channels, never from caller input.

Duplicate creation
──────────────────
insert_contact_if_absent() uses ON CONFLICT DO NOTHING. With the partial
unique indexes from migration 001 in place, a concurrent duplicate insert
returns no row and the caller re-reads the winner. Without the indexes the
insert always succeeds and the narrow lookup/insert race remains.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from omnibridge.domain.channels import Channel


def find_id_by_natural_key(cur: PgCursor, channel: Channel, external_id: str) -> int | None:
    """Return the id of the contact addressed by (channel, external_id), if any."""
    cur.execute(
        f"SELECT id FROM contacts WHERE {channel.natural_key} = %s ORDER BY id LIMIT 1",
        (external_id,),
    )
    row = cur.fetchone()
    return int(row[0]) if row else None


def insert_contact_if_absent(
    cur: PgCursor,
    *,
    channel: Channel,
    external_id: str,
    last_name: str,
    first_name: str,
    email: str | None,
    parent_id: int,
    contact_type: str,
) -> int | None:
    """Insert a contact keyed by the channel's natural key.

    Returns:
        New contact id, or None when a unique index rejected the row
        (another unit of work created it first).
    """
    phone = external_id if channel is Channel.WHATSAPP else None
    account = external_id if channel is Channel.MESSENGER else None

    cur.execute(
        """
        INSERT INTO contacts (
            nom, prenom, telephone, email, compte,
            contactId, typeContact, createdAt, updatedAt
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, now(), now())
        ON CONFLICT DO NOTHING
        RETURNING id
        """,
        (last_name, first_name, phone, email, account, parent_id, contact_type),
    )
    row = cur.fetchone()
    return int(row[0]) if row else None


def update_contact_partial(
    cur: PgCursor,
    contact_id: int,
    *,
    last_name: str | None = None,
    first_name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> bool:
    """Overwrite only the supplied (non-None) fields of a contact.

    Returns:
        True if the contact row exists.
    """
    cur.execute(
        """
        UPDATE contacts
        SET nom       = COALESCE(%s, nom),
            prenom    = COALESCE(%s, prenom),
            email     = COALESCE(%s, email),
            telephone = COALESCE(%s, telephone),
            updatedAt = now()
        WHERE id = %s
        """,
        (last_name, first_name, email, phone, contact_id),
    )
    return cur.rowcount > 0
