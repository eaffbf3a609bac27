from dataclasses import dataclass

from timeledger.domain.entities.user import Role


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as resolved from the bearer token."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
