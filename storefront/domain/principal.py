# storefront/domain/principal.py
from dataclasses import dataclass

ROLES = ("customer", "seller", "admin")


@dataclass(frozen=True)
class Principal:
    """Caller identity as supplied by the external identity service."""

    user_id: int
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def can_access(self, owner_id: int) -> bool:
        return self.is_admin or self.user_id == owner_id
