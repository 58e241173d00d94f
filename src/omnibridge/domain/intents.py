"""Intent value objects.

The classifier is a language model: its output is loosely structured and
untrusted. These models accept what it produces and reduce it to values the
action handlers can use without further checks. Nothing here raises on bad
classifier output; garbage becomes "missing".
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _clean_text(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class Intent(BaseModel):
    """Classified action plus its payload: {"action": ..., "data": {...}}."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    action: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("action", mode="before")
    @classmethod
    def _normalize_action(cls, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        return value.strip().lower() or None

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, value: Any) -> dict[str, Any]:
        if isinstance(value, Mapping):
            return {str(k): v for k, v in value.items()}
        return {}

    @classmethod
    def from_raw(cls, raw: Intent | Mapping[str, Any] | None) -> Intent:
        """Build an Intent from classifier output (dict, Intent or None)."""
        if isinstance(raw, Intent):
            return raw
        if isinstance(raw, Mapping):
            return cls.model_validate(dict(raw))
        return cls()


class SeedProfile(BaseModel):
    """Partial profile used only when a contact is created."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    first_name: str | None = Field(
        default=None, validation_alias=AliasChoices("first_name", "prenom")
    )
    last_name: str | None = Field(
        default=None, validation_alias=AliasChoices("last_name", "nom")
    )
    email: str | None = None

    @field_validator("first_name", "last_name", "email", mode="before")
    @classmethod
    def _clean(cls, value: Any) -> str | None:
        return _clean_text(value)


class ContactUpdate(BaseModel):
    """Payload of `create_contact`. Unset fields leave the column unchanged."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    last_name: str | None = Field(
        default=None, validation_alias=AliasChoices("nom", "last_name")
    )
    first_name: str | None = Field(
        default=None, validation_alias=AliasChoices("prenom", "first_name")
    )
    email: str | None = None
    phone: str | None = Field(
        default=None, validation_alias=AliasChoices("phone", "telephone")
    )

    @field_validator("last_name", "first_name", "phone", mode="before")
    @classmethod
    def _clean(cls, value: Any) -> str | None:
        return _clean_text(value)

    @field_validator("email", mode="before")
    @classmethod
    def _clean_email(cls, value: Any) -> str | None:
        value = _clean_text(value)
        if value is None or "@" not in value:
            return None
        return value.lower()

    def is_empty(self) -> bool:
        return all(
            v is None for v in (self.last_name, self.first_name, self.email, self.phone)
        )


class OrderRequest(BaseModel):
    """Payload of `create_order`: a product name and an optional quantity."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    product: str | None = Field(
        default=None, validation_alias=AliasChoices("produit", "product")
    )
    quantity: int = Field(
        default=1, validation_alias=AliasChoices("quantite", "quantity")
    )

    @field_validator("product", mode="before")
    @classmethod
    def _clean_product(cls, value: Any) -> str | None:
        return _clean_text(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _clamp_quantity(cls, value: Any) -> int:
        if isinstance(value, bool):
            return 1
        try:
            quantity = int(str(value).strip())
        except (TypeError, ValueError):
            return 1
        return max(1, quantity)
