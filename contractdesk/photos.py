"""Storage of user profile photos."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from contractdesk.database import RepositoryError

logger = logging.getLogger(__name__)


@dataclass
class Photo:
    """A user's profile photo."""

    user_id: int
    data: bytes
    content_type: str
    photo_id: int | None = None


def get_photo(connection: sqlite3.Connection, user_id: int) -> Photo | None:
    """Return the user's photo, or None if the user has none."""
    try:
        row = connection.execute(
            "SELECT id_photo, data, type FROM user_photos WHERE id_user = ? LIMIT 1",
            (user_id,),
        ).fetchone()
    except sqlite3.Error as exc:
        logger.error("Error getting photo: %s", exc)
        raise RepositoryError(f"error getting photo: {exc}") from exc
    if row is None:
        return None
    photo_id, data, content_type = row
    return Photo(user_id=user_id, data=bytes(data), content_type=content_type, photo_id=photo_id)


def _insert(connection: sqlite3.Connection, photo: Photo) -> None:
    connection.execute(
        "INSERT INTO user_photos (data, type, id_user) VALUES (?, ?, ?)",
        (photo.data, photo.content_type, photo.user_id),
    )


def add_photo(connection: sqlite3.Connection, photo: Photo) -> None:
    """Store a photo for a user who has none yet."""
    try:
        with connection:
            _insert(connection, photo)
    except sqlite3.Error as exc:
        logger.error("Error inserting new photo: %s", exc)
        raise RepositoryError(f"error inserting photo: {exc}") from exc


def change_photo(connection: sqlite3.Connection, photo: Photo) -> None:
    """Replace whatever photo the user has with this one."""
    try:
        with connection:
            connection.execute("DELETE FROM user_photos WHERE id_user = ?", (photo.user_id,))
            _insert(connection, photo)
    except sqlite3.Error as exc:
        logger.error("Error replacing photo: %s", exc)
        raise RepositoryError(f"error replacing photo: {exc}") from exc


def delete_photo(connection: sqlite3.Connection, user_id: int) -> None:
    """Remove the user's photo, if any."""
    try:
        with connection:
            connection.execute("DELETE FROM user_photos WHERE id_user = ?", (user_id,))
    except sqlite3.Error as exc:
        logger.error("Error deleting photos: %s", exc)
        raise RepositoryError(f"error deleting photo: {exc}") from exc