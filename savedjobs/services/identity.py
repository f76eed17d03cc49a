"""Identity resolvers for the saved-jobs facade."""

from __future__ import annotations


class StaticIdentityResolver:
    """Resolves to a fixed user id; ``None`` means nobody is logged in."""

    def __init__(self, user_id: str | int | None = None) -> None:
        self._user_id = None if user_id is None else str(user_id)

    async def current_user_id(self) -> str | None:
        return self._user_id

    def set_user(self, user_id: str | int | None) -> None:
        self._user_id = None if user_id is None else str(user_id)
