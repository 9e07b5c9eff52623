"""
Resolved caller identity. Rebuilt from the credential on every request.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional

ANONYMOUS_ROLE = "anonymous"
AUTHENTICATED_ROLE = "authenticated"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Identity:
    """
    Caller context for one request.

    `is_anonymous` is derived rather than stored: it holds exactly when there
    is no user id and the role set is {"anonymous"}.
    """

    user_id: Optional[str] = None
    email: Optional[str] = None
    roles: FrozenSet[str] = field(default_factory=lambda: frozenset({ANONYMOUS_ROLE}))

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls()

    @classmethod
    def of(
        cls,
        user_id: Optional[str],
        roles: Iterable[str],
        email: Optional[str] = None,
    ) -> "Identity":
        return cls(user_id=user_id, email=email or None, roles=frozenset(roles))

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None and self.roles == frozenset({ANONYMOUS_ROLE})

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def sorted_roles(self) -> List[str]:
        return sorted(self.roles)
