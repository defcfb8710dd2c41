"""User accounts, their roles and their removal."""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import sqlite3
from dataclasses import dataclass, field
from typing import Any

import bcrypt

from contractdesk.database import NotFoundError, RepositoryError

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "bcrypt"
SALT_BYTES = 16
ADMIN_ROLE_ID = 1
MANAGER_ROLE_ID = 2

_ROLE_NAMES = {ADMIN_ROLE_ID: "admin", MANAGER_ROLE_ID: "manager"}


@dataclass(frozen=True)
class Role:
    """A role a user can hold."""

    role_id: int
    name: str


@dataclass
class User:
    """A user account without its credentials."""

    surname: str = ""
    username: str = ""
    patronymic: str = ""
    phone: str = ""
    email: str = ""
    login: str = ""
    user_id: int = 0
    roles: list[Role] = field(default_factory=list)


def _generate_salt(size: int = SALT_BYTES) -> str:
    return base64.b64encode(secrets.token_bytes(size)).decode("ascii")


def _hash_password(password: str, salt: str) -> str:
    # Pre-hashing keeps the input within bcrypt's 72-byte limit.
    digest = hashlib.sha256((password + salt).encode("utf-8")).digest()
    return bcrypt.hashpw(base64.b64encode(digest), bcrypt.gensalt()).decode("ascii")


def _role_name(role_id: int) -> str:
    try:
        return _ROLE_NAMES[role_id]
    except KeyError:
        raise ValueError(f"unknown role ID: {role_id}") from None


def _fetch(
    connection: sqlite3.Connection, query: str, params: tuple[Any, ...] = ()
) -> list[sqlite3.Row]:
    try:
        return connection.execute(query, params).fetchall()
    except sqlite3.Error as exc:
        raise RepositoryError(f"query error: {exc}") from exc


_USER_COLUMNS = "u.id_user, u.surname, u.username, u.patronymic, u.phone, u.email, u.login"


def _users_with_roles(rows: list[sqlite3.Row]) -> list[User]:
    users: dict[int, User] = {}
    for user_id, surname, username, patronymic, phone, email, login, role_id, role_name in rows:
        user = users.get(user_id)
        if user is None:
            user = User(
                surname=surname,
                username=username,
                patronymic=patronymic,
                phone=phone,
                email=email,
                login=login,
                user_id=user_id,
            )
            users[user_id] = user
        if role_id is not None:
            user.roles.append(Role(role_id, role_name))
    return list(users.values())


_USERS_QUERY = f"""
    SELECT {_USER_COLUMNS}, r.id_role, r.name_role
    FROM users u
    LEFT JOIN user_by_role ubr ON u.id_user = ubr.id_user
    LEFT JOIN roles r ON ubr.id_role = r.id_role"""


def get_users(connection: sqlite3.Connection) -> list[User]:
    """Return every user with their roles, ordered by identifier."""
    rows = _fetch(connection, f"{_USERS_QUERY} ORDER BY u.id_user, ubr.id_user_by_role")
    return _users_with_roles(rows)


def get_user(connection: sqlite3.Connection, user_id: int) -> User | None:
    """Return one user with their roles, or None if there is no such user."""
    rows = _fetch(
        connection,
        f"{_USERS_QUERY} WHERE u.id_user = ? ORDER BY ubr.id_user_by_role",
        (user_id,),
    )
    users = _users_with_roles(rows)
    return users[0] if users else None


def add_user(connection: sqlite3.Connection, user: User, password: str) -> None:
    """Create a user whose password is stored salted and hashed."""
    salt = _generate_salt()
    hashed = _hash_password(password, salt)
    try:
        with connection:
            connection.execute(
                """
                INSERT INTO users (
                    surname, username, patronymic, phone, email, login,
                    password_hash, salt, password_algorithm
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user.surname,
                    user.username,
                    user.patronymic,
                    user.phone,
                    user.email,
                    user.login,
                    hashed,
                    salt,
                    HASH_ALGORITHM,
                ),
            )
    except sqlite3.Error as exc:
        logger.error("Error creating user: %s", exc)
        raise RepositoryError(f"error creating user: {exc}") from exc


def get_user_id(connection: sqlite3.Connection, login: str) -> int:
    """Return the identifier of the user with the given login."""
    rows = _fetch(connection, "SELECT id_user FROM users WHERE login = ?", (login,))
    if not rows:
        raise NotFoundError(f"no user with login {login!r}")
    return rows[0][0]


def _has_role(connection: sqlite3.Connection, user_id: int, role_id: int, role_name: str) -> bool:
    try:
        (exists,) = connection.execute(
            "SELECT EXISTS(SELECT 1 FROM user_by_role WHERE id_user = ? AND id_role = ?)",
            (user_id, role_id),
        ).fetchone()
    except sqlite3.Error as exc:
        logger.error("Error checking %s role: %s", role_name, exc)
        raise RepositoryError(f"failed to check {role_name} role: {exc}") from exc
    return bool(exists)


def add_user_role(connection: sqlite3.Connection, user_id: int, role_id: int) -> None:
    """Give a user the admin (1) or manager (2) role."""
    role_name = _role_name(role_id)
    if _has_role(connection, user_id, role_id, role_name):
        raise RepositoryError(f"user already has {role_name} role (id_role={role_id})")
    try:
        with connection:
            connection.execute(
                "INSERT INTO user_by_role (id_user, id_role) VALUES (?, ?)", (user_id, role_id)
            )
    except sqlite3.Error as exc:
        logger.error("Error adding %s role: %s", role_name, exc)
        raise RepositoryError(f"failed to add {role_name} role: {exc}") from exc


def add_admin(connection: sqlite3.Connection, user_id: int) -> None:
    """Give a user the admin role."""
    add_user_role(connection, user_id, ADMIN_ROLE_ID)


def add_manager(connection: sqlite3.Connection, user_id: int) -> None:
    """Give a user the manager role."""
    add_user_role(connection, user_id, MANAGER_ROLE_ID)


def remove_user_role(connection: sqlite3.Connection, user_id: int, role_id: int) -> None:
    """Take the admin (1) or manager (2) role away from a user."""
    role_name = _role_name(role_id)
    if not _has_role(connection, user_id, role_id, role_name):
        raise NotFoundError(f"user doesn't have {role_name} role (id_role={role_id})")
    try:
        with connection:
            cursor = connection.execute(
                "DELETE FROM user_by_role WHERE id_user = ? AND id_role = ?", (user_id, role_id)
            )
    except sqlite3.Error as exc:
        logger.error("Error removing %s role: %s", role_name, exc)
        raise RepositoryError(f"failed to remove {role_name} role: {exc}") from exc
    if cursor.rowcount == 0:
        raise RepositoryError(f"no {role_name} role was removed (id_user={user_id})")


def remove_admin(connection: sqlite3.Connection, user_id: int) -> None:
    """Take the admin role away from a user."""
    remove_user_role(connection, user_id, ADMIN_ROLE_ID)


def remove_manager(connection: sqlite3.Connection, user_id: int) -> None:
    """Take the manager role away from a user."""
    remove_user_role(connection, user_id, MANAGER_ROLE_ID)


def get_user_roles(connection: sqlite3.Connection, user_id: int) -> list[Role]:
    """Return the roles a user holds."""
    rows = _fetch(
        connection,
        "SELECT r.id_role, r.name_role FROM user_by_role ubr "
        "JOIN roles r ON ubr.id_role = r.id_role "
        "WHERE ubr.id_user = ? ORDER BY ubr.id_user_by_role",
        (user_id,),
    )
    return [Role(role_id, name) for role_id, name in rows]


def change_user(connection: sqlite3.Connection, user: User) -> None:
    """Update a user's details; empty fields keep their current values."""
    if user.user_id == 0:
        raise ValueError("user ID is required")
    try:
        with connection:
            cursor = connection.execute(
                """
                UPDATE users SET
                    surname = COALESCE(NULLIF(?, ''), surname),
                    username = COALESCE(NULLIF(?, ''), username),
                    patronymic = COALESCE(NULLIF(?, ''), patronymic),
                    phone = COALESCE(NULLIF(?, ''), phone),
                    login = COALESCE(NULLIF(?, ''), login),
                    email = COALESCE(NULLIF(?, ''), email)
                WHERE id_user = ?
                """,
                (
                    user.surname,
                    user.username,
                    user.patronymic,
                    user.phone,
                    user.login,
                    user.email,
                    user.user_id,
                ),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to update user: {exc}") from exc
    if cursor.rowcount == 0:
        raise NotFoundError("no rows were updated - user not found or no changes made")


_USER_DEPENDENTS: tuple[tuple[str, str], ...] = (
    ("user_photos", "DELETE FROM user_photos WHERE id_user = ?"),
    ("notification_settings_by_user", "DELETE FROM notification_settings_by_user WHERE id_user = ?"),
    ("user_by_role", "DELETE FROM user_by_role WHERE id_user = ?"),
)


def delete_user(connection: sqlite3.Connection, user_id: int) -> None:
    """Delete a user with their photo, settings and roles.

    A user who still owns contracts or stages is not deleted.
    """
    step = "contracts check"
    try:
        with connection:
            (contracts,) = connection.execute(
                "SELECT COUNT(*) FROM contracts WHERE id_user = ?", (user_id,)
            ).fetchone()
            if contracts > 0:
                raise RepositoryError(
                    f"cannot delete user - user has {contracts} associated contracts"
                )
            step = "stages check"
            (stages,) = connection.execute(
                "SELECT COUNT(*) FROM stages WHERE id_user = ?", (user_id,)
            ).fetchone()
            if stages > 0:
                raise RepositoryError(
                    f"cannot delete user - user has {stages} associated stages"
                )
            for table, statement in _USER_DEPENDENTS:
                step = f"{table} delete"
                connection.execute(statement, (user_id,))
            step = "users delete"
            cursor = connection.execute("DELETE FROM users WHERE id_user = ?", (user_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"user with id {user_id} not found")
    except sqlite3.Error as exc:
        raise RepositoryError(f"{step} error: {exc}") from exc