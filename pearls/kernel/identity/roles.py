"""
Role resolution from static configuration.
"""

from functools import lru_cache
from typing import FrozenSet, Iterable

from pearls.config import Settings, get_settings
from pearls.kernel.identity.identity import ADMIN_ROLE, AUTHENTICATED_ROLE


class RoleResolver:
    """
    Maps a verified user id to its role labels.

    Pure function of the allow-lists captured at construction; the lists are
    never mutated afterwards, so one instance is shared process-wide.
    """

    def __init__(
        self,
        admin_ids: Iterable[str] = (),
        cohort_ids: Iterable[str] = (),
        cohort_role: str = "aurora:member",
    ):
        self._admin_ids = frozenset(admin_ids)
        self._cohort_ids = frozenset(cohort_ids)
        self.cohort_role = cohort_role

    @classmethod
    def from_settings(cls, settings: Settings) -> "RoleResolver":
        return cls(
            admin_ids=settings.admin_ids,
            cohort_ids=settings.cohort_ids,
            cohort_role=settings.cohort_role,
        )

    def roles_for(self, user_id: str) -> FrozenSet[str]:
        roles = {AUTHENTICATED_ROLE}
        if user_id in self._admin_ids:
            roles.add(ADMIN_ROLE)
        if user_id in self._cohort_ids:
            roles.add(self.cohort_role)
        return frozenset(roles)


@lru_cache
def get_role_resolver() -> RoleResolver:
    """Process-wide resolver built once from settings."""
    return RoleResolver.from_settings(get_settings())
