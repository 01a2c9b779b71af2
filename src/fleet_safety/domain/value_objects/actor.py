"""Acting user identity as asserted by the calling layer."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class ActorRole(Enum):
    """Roles recognized by trip review rules."""

    DRIVER = "driver"
    MECHANIC = "mechanic"
    SUPERVISOR = "supervisor"
    ORG_ADMIN = "org_admin"
    ADMIN = "admin"


REVIEWER_ROLES = frozenset({ActorRole.SUPERVISOR, ActorRole.ORG_ADMIN, ActorRole.ADMIN})
RESOLVER_ROLES = frozenset({ActorRole.DRIVER, ActorRole.MECHANIC, ActorRole.SUPERVISOR, ActorRole.ORG_ADMIN, ActorRole.ADMIN})


@dataclass(frozen=True)
class Actor:
    """User performing an action.

    Authentication happens upstream; this only carries the identity and role
    the caller vouched for.
    """

    actor_id: UUID
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        """Check if the actor has admin rights."""
        return self.role == ActorRole.ADMIN

    @property
    def can_review(self) -> bool:
        """Check if the actor may approve, reject or recalculate trips."""
        return self.role in REVIEWER_ROLES

    def can_view_trip(self, driver_id: UUID) -> bool:
        """Check if the actor may see risk detail of a trip.

        Drivers only see their own trips; staff roles see every trip.
        """
        return self.role != ActorRole.DRIVER or self.actor_id == driver_id

    @property
    def can_resolve_failures(self) -> bool:
        """Check if the actor may resolve critical failures."""
        return self.role in RESOLVER_ROLES
