"""
Static Identity Adapter.

Fixed signed-in user and follower set, for local runs and tests.
The profile subsystem supplies the real implementation.
"""

from __future__ import annotations

from collections.abc import Iterable

from postflow.domain.entities import IdentitySnapshot


class StaticIdentity:
    """IdentityPort backed by in-memory values."""

    def __init__(
        self,
        user: IdentitySnapshot | None = None,
        followers: Iterable[str] = (),
    ) -> None:
        self._user = user
        self._followers = set(followers)

    def current_user(self) -> IdentitySnapshot | None:
        return self._user

    def follower_ids(self) -> set[str]:
        return set(self._followers)

    def sign_in(self, user: IdentitySnapshot) -> None:
        self._user = user

    def sign_out(self) -> None:
        self._user = None

    def add_follower(self, user_id: str) -> None:
        self._followers.add(user_id)
