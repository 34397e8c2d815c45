"""
Record store for users and hobbies: a SQLAlchemy implementation and an
in-memory one for development and tests.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, replace
from typing import Dict, Optional, Protocol

from sqlalchemy import Column, Date, Integer, String, create_engine, delete, select, update
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from hobbyboard.errors import PersistenceError

import logging

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Interface for the users/hobbies tables."""

    def create_schema(self) -> None:
        ...

    def list_users(self) -> list["UserRecord"]:
        ...

    def get_user(self, user_id: int) -> Optional["UserRecord"]:
        ...

    def find_user_by_credentials(
        self, username: str, password: str
    ) -> Optional["UserRecord"]:
        ...

    def create_user(
        self, username: str, password: str, profile_image: Optional[str]
    ) -> None:
        ...

    def update_user(
        self,
        user_id: int,
        *,
        username: str,
        password: str,
        profile_image: Optional[str],
    ) -> int:
        ...

    def delete_user(self, user_id: int) -> int:
        ...

    def list_hobbies(self, user_id: int) -> list["HobbyRecord"]:
        ...

    def create_hobby(
        self, user_id: int, hobby_description: str, date_learned: datetime.date
    ) -> None:
        ...

    def delete_hobby(self, user_id: int, hobby_id: int) -> int:
        ...


@dataclass(frozen=True)
class UserRecord:
    id: int
    username: str
    password: str
    profile_image: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "password": self.password,
            "profile_image": self.profile_image,
        }


@dataclass(frozen=True)
class HobbyRecord:
    id: int
    user_id: int
    hobby_description: str
    date_learned: datetime.date

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "hobby_description": self.hobby_description,
            "date_learned": self.date_learned.isoformat(),
        }


class InMemoryRecordStore:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[int, UserRecord] = {}
        self.hobbies: Dict[int, HobbyRecord] = {}
        self._next_user_id = 1
        self._next_hobby_id = 1

    def create_schema(self) -> None:
        return None

    def list_users(self) -> list[UserRecord]:
        return [self.users[key] for key in sorted(self.users)]

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def find_user_by_credentials(
        self, username: str, password: str
    ) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.username == username and user.password == password:
                return user
        return None

    def _check_unique(self, username: str, exclude_id: Optional[int] = None) -> None:
        for user in self.users.values():
            if user.username == username and user.id != exclude_id:
                raise PersistenceError(
                    f"duplicate key value violates unique constraint: username={username!r}"
                )

    def create_user(
        self, username: str, password: str, profile_image: Optional[str]
    ) -> None:
        self._check_unique(username)
        record = UserRecord(
            id=self._next_user_id,
            username=username,
            password=password,
            profile_image=profile_image,
        )
        self.users[record.id] = record
        self._next_user_id += 1

    def update_user(
        self,
        user_id: int,
        *,
        username: str,
        password: str,
        profile_image: Optional[str],
    ) -> int:
        user = self.users.get(user_id)
        if not user:
            return 0
        self._check_unique(username, exclude_id=user_id)
        self.users[user_id] = replace(
            user, username=username, password=password, profile_image=profile_image
        )
        return 1

    def delete_user(self, user_id: int) -> int:
        # Hobbies are left behind on purpose; there is no cascade.
        return 1 if self.users.pop(user_id, None) else 0

    def list_hobbies(self, user_id: int) -> list[HobbyRecord]:
        return [
            self.hobbies[key]
            for key in sorted(self.hobbies)
            if self.hobbies[key].user_id == user_id
        ]

    def create_hobby(
        self, user_id: int, hobby_description: str, date_learned: datetime.date
    ) -> None:
        record = HobbyRecord(
            id=self._next_hobby_id,
            user_id=user_id,
            hobby_description=hobby_description,
            date_learned=date_learned,
        )
        self.hobbies[record.id] = record
        self._next_hobby_id += 1

    def delete_hobby(self, user_id: int, hobby_id: int) -> int:
        hobby = self.hobbies.get(hobby_id)
        if not hobby or hobby.user_id != user_id:
            return 0
        del self.hobbies[hobby_id]
        return 1


class SqlRecordStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str | URL):
        if not database_url:
            raise ValueError("a database URL is required for SqlRecordStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )

    def create_schema(self) -> None:
        """Create missing tables. This is the first call that connects."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    @staticmethod
    def _to_user_record(row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            username=row.username,
            password=row.password,
            profile_image=row.profile_image,
        )

    @staticmethod
    def _to_hobby_record(row: "HobbyRow") -> HobbyRecord:
        return HobbyRecord(
            id=row.id,
            user_id=row.user_id,
            hobby_description=row.hobby_description,
            date_learned=row.date_learned,
        )

    def list_users(self) -> list[UserRecord]:
        try:
            with self.Session() as session:
                rows = session.execute(select(UserRow).order_by(UserRow.id)).scalars()
                return [self._to_user_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        try:
            with self.Session() as session:
                row = session.get(UserRow, user_id)
                return self._to_user_record(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def find_user_by_credentials(
        self, username: str, password: str
    ) -> Optional[UserRecord]:
        try:
            with self.Session() as session:
                stmt = (
                    select(UserRow)
                    .where(UserRow.username == username)
                    .where(UserRow.password == password)
                    .limit(1)
                )
                row = session.execute(stmt).scalar_one_or_none()
                return self._to_user_record(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def create_user(
        self, username: str, password: str, profile_image: Optional[str]
    ) -> None:
        try:
            with self.Session() as session:
                session.add(
                    UserRow(
                        username=username,
                        password=password,
                        profile_image=profile_image,
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def update_user(
        self,
        user_id: int,
        *,
        username: str,
        password: str,
        profile_image: Optional[str],
    ) -> int:
        try:
            with self.Session() as session:
                result = session.execute(
                    update(UserRow)
                    .where(UserRow.id == user_id)
                    .values(
                        username=username,
                        password=password,
                        profile_image=profile_image,
                    )
                )
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def delete_user(self, user_id: int) -> int:
        try:
            with self.Session() as session:
                result = session.execute(delete(UserRow).where(UserRow.id == user_id))
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def list_hobbies(self, user_id: int) -> list[HobbyRecord]:
        try:
            with self.Session() as session:
                stmt = (
                    select(HobbyRow)
                    .where(HobbyRow.user_id == user_id)
                    .order_by(HobbyRow.id.asc())
                )
                rows = session.execute(stmt).scalars()
                return [self._to_hobby_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def create_hobby(
        self, user_id: int, hobby_description: str, date_learned: datetime.date
    ) -> None:
        try:
            with self.Session() as session:
                session.add(
                    HobbyRow(
                        user_id=user_id,
                        hobby_description=hobby_description,
                        date_learned=date_learned,
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def delete_hobby(self, user_id: int, hobby_id: int) -> int:
        try:
            with self.Session() as session:
                result = session.execute(
                    delete(HobbyRow).where(
                        HobbyRow.id == hobby_id,
                        HobbyRow.user_id == user_id,
                    )
                )
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc


def seed_default_user(store: RecordStore) -> bool:
    """Insert the greg/admin login unless a user with that name exists."""
    for user in store.list_users():
        if user.username == DEFAULT_USERNAME:
            return False
    store.create_user(DEFAULT_USERNAME, DEFAULT_PASSWORD, None)
    logger.info("Seeded default user %s", DEFAULT_USERNAME)
    return True


DEFAULT_USERNAME = "greg"
DEFAULT_PASSWORD = "admin"

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    profile_image = Column(String(500), nullable=True)


class HobbyRow(Base):
    __tablename__ = "hobbies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # No foreign key: deleting a user leaves its hobbies behind.
    user_id = Column(Integer, nullable=False, index=True)
    hobby_description = Column(String(50), nullable=False)
    date_learned = Column(Date, nullable=False)
