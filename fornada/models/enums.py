"""Enums for model fields."""

from enum import Enum


class UserRole(str, Enum):
    """Account roles."""

    CLIENT = "cliente"
    OWNER = "estabelecimento"

    def can_own_establishments(self) -> bool:
        """Check if this role may create establishments."""
        return self == UserRole.OWNER


class EstablishmentKind(str, Enum):
    """Kinds of establishment shown in the directory."""

    BAKERY = "padaria"
    MARKET = "mercado"
    CAKE_SHOP = "casaDeBolos"
    OTHER = "outros"
