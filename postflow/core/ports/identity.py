from typing import Protocol

from postflow.domain.entities import IdentitySnapshot


class IdentityPort(Protocol):
    """Authenticated user and their followers, supplied by the profile subsystem."""

    def current_user(self) -> IdentitySnapshot | None:
        """Return the signed-in author, or None when signed out."""
        ...

    def follower_ids(self) -> set[str]:
        """Return ids of users following the current author."""
        ...
