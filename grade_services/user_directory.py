"""
grade_services.user_directory -- Identity lookups for display data.

Responsibility:
    Implements the kernel's UserDirectory Protocol over the local ``users``
    mirror.  Calls to the remote identity service are out of scope; a
    deployment that has one plugs in its own UserDirectory.

Failure modes:
    - Unknown ids are simply absent from the result.
    - Database errors propagate.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from grade_kernel.domain.approval import UserDirectory, UserSummary
from grade_kernel.models.user import User


class DatabaseUserDirectory:
    """Reads the ``users`` table in a short session of its own."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def lookup(self, user_ids: Iterable[int]) -> dict[int, UserSummary]:
        ids = {int(user_id) for user_id in user_ids}
        if not ids:
            return {}
        with self.session_factory() as session:
            users = session.execute(select(User).where(User.id.in_(ids))).scalars()
            return {user.id: user.to_summary() for user in users}


class StaticUserDirectory:
    """In-memory directory, for tooling and tests."""

    def __init__(self, users: Iterable[UserSummary] = ()):
        self._users = {user.id: user for user in users}

    def add(self, user: UserSummary) -> None:
        self._users[user.id] = user

    def lookup(self, user_ids: Iterable[int]) -> dict[int, UserSummary]:
        return {uid: self._users[uid] for uid in user_ids if uid in self._users}


__all__ = ["DatabaseUserDirectory", "StaticUserDirectory", "UserDirectory"]
