"""Non-reversible identifiers for logs.

Phone numbers and Messenger sender ids are personal data. Logs carry a short
sha256 digest instead, stable enough to correlate lines for one contact.
"""

import hashlib


def hash_identifier(value: str, channel: str = "") -> str:
    """Return the first 12 hex chars of sha256(channel|value)."""
    material = f"{channel}|{value}" if channel else value
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:12]
