"""
Principal value object.

Identity of the caller as forwarded by the auth gateway.

Dependencies: dataclasses
System role: Caller identity passed from the API layer into services
"""

from dataclasses import dataclass

ANONYMOUS_OWNER_ID = "anonymous"


@dataclass(frozen=True)
class Principal:
    """
    Caller identity.

    Attributes:
        user_id: Authenticated user id, None for unauthenticated callers
        is_admin: Administrator flag; admins may read any job
    """

    user_id: str | None = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def owner_id(self) -> str:
        """Owner id recorded on jobs; guests share the anonymous sentinel."""
        return self.user_id or ANONYMOUS_OWNER_ID

    def can_access(self, owner_id: str) -> bool:
        return self.is_admin or owner_id == self.owner_id

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls()
