"""Contact natural keys - partial unique indexes on contacts.telephone and contacts.compte.

Lets the identity resolver's INSERT ... ON CONFLICT DO NOTHING detect a
concurrent first-contact duplicate instead of creating a second row.
Existing duplicates must be merged before this runs; the index build fails
otherwise.

Revision ID: 001_contact_natural_keys
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op

revision = "001_contact_natural_keys"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS uq_contacts_telephone
        ON contacts (telephone)
        WHERE telephone IS NOT NULL
        """
    )
    op.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS uq_contacts_compte
        ON contacts (compte)
        WHERE compte IS NOT NULL
        """
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS uq_contacts_compte")
    op.execute("DROP INDEX IF EXISTS uq_contacts_telephone")
