from pydantic import BaseModel
import enum


class ActorRole(str, enum.Enum):
    """
    Caller roles as asserted by the upstream identity provider.

    - ADMIN: full access, including registry and ledger deletions
    - HR: resolves requests and manages balances
    - EMPLOYEE: self-service access
    """
    ADMIN = "admin"
    HR = "hr"
    EMPLOYEE = "employee"


class Actor(BaseModel):
    id: str
    role: ActorRole

    @property
    def is_privileged(self) -> bool:
        """Admin or HR: may act on other employees' leave."""
        return self.role in (ActorRole.ADMIN, ActorRole.HR)

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN
