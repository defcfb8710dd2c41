"""Creating, editing and deleting stages, their files, statuses and comments."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from typing import Any

from contractdesk.database import NotFoundError, RepositoryError
from contractdesk.stage_queries import Stage, StageFile

logger = logging.getLogger(__name__)

INITIAL_STATUS_ID = 1


def _day(value: Any) -> Any:
    return value.isoformat() if isinstance(value, date) else value


def _now() -> str:
    return datetime.now().isoformat(sep=" ", timespec="seconds")


def add_file(connection: sqlite3.Connection, stage_file: StageFile) -> None:
    """Attach a file to a stage."""
    try:
        with connection:
            connection.execute(
                "INSERT INTO files (name_file, data, type_file, id_stage) VALUES (?, ?, ?, ?)",
                (
                    stage_file.name,
                    stage_file.data,
                    stage_file.content_type,
                    stage_file.stage_id,
                ),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to add file: {exc}") from exc


def add_stage(connection: sqlite3.Connection, stage: Stage) -> int:
    """Store a new stage with the initial status and return its identifier."""
    step = "insert stage"
    try:
        with connection:
            cursor = connection.execute(
                """
                INSERT INTO stages (
                    name_stage, id_user, description, date_create_start, date_create_end,
                    id_contract
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    stage.name,
                    stage.user_id,
                    stage.description,
                    _day(stage.date_start),
                    _day(stage.date_end),
                    stage.contract_id,
                ),
            )
            stage_id = int(cursor.lastrowid)
            step = "insert status history"
            connection.execute(
                "INSERT INTO history_status (id_stage, id_status_stage, data_change_status) "
                "VALUES (?, ?, ?)",
                (stage_id, INITIAL_STATUS_ID, date.today().isoformat()),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to {step}: {exc}") from exc
    return stage_id


def add_comment(
    connection: sqlite3.Connection, stage_id: int, status_id: int, comment: str, user_id: int
) -> None:
    """Comment on the moment the stage received the given status."""
    try:
        row = connection.execute(
            "SELECT id_history_status FROM history_status "
            "WHERE id_stage = ? AND id_status_stage = ? "
            "ORDER BY id_history_status DESC LIMIT 1",
            (stage_id, status_id),
        ).fetchone()
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to find status history: {exc}") from exc
    if row is None:
        raise NotFoundError(f"stage {stage_id} never had status {status_id}")
    (history_id,) = row
    try:
        with connection:
            connection.execute(
                "INSERT INTO comments (id_history_status, comment, id_user, date_create_comment) "
                "VALUES (?, ?, ?, ?)",
                (history_id, comment, user_id, _now()),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to add comment: {exc}") from exc


def change_stage_status(
    connection: sqlite3.Connection, stage_id: int, status_id: int, comment: str, user_id: int
) -> None:
    """Give the stage a new status, recording it in the history with a comment."""
    try:
        row = connection.execute(
            "SELECT id_status_stage FROM history_status WHERE id_stage = ? "
            "ORDER BY data_change_status DESC, id_history_status DESC LIMIT 1",
            (stage_id,),
        ).fetchone()
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to read current status: {exc}") from exc
    if row is not None and row[0] == status_id:
        raise RepositoryError(f"stage already has status {status_id}")

    step = "adding status history"
    try:
        with connection:
            now = _now()
            cursor = connection.execute(
                "INSERT INTO history_status (id_stage, id_status_stage, data_change_status) "
                "VALUES (?, ?, ?)",
                (stage_id, status_id, now),
            )
            step = "adding comment"
            connection.execute(
                "INSERT INTO comments (id_history_status, comment, date_create_comment, id_user) "
                "VALUES (?, ?, ?, ?)",
                (cursor.lastrowid, comment, now, user_id),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"error {step}: {exc}") from exc


def delete_file(connection: sqlite3.Connection, file_id: int) -> None:
    """Remove a file."""
    try:
        with connection:
            connection.execute("DELETE FROM files WHERE id_file = ?", (file_id,))
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to delete file: {exc}") from exc


def change_stage(connection: sqlite3.Connection, stage_id: int, stage: Stage) -> None:
    """Overwrite the name, description, assignee and dates of a stage."""
    try:
        with connection:
            connection.execute(
                """
                UPDATE stages SET
                    name_stage = ?,
                    description = ?,
                    id_user = ?,
                    date_create_start = ?,
                    date_create_end = ?
                WHERE id_stage = ?
                """,
                (
                    stage.name,
                    stage.description,
                    stage.user_id,
                    _day(stage.date_start),
                    _day(stage.date_end),
                    stage_id,
                ),
            )
    except sqlite3.Error as exc:
        logger.error("Failed to update stage: %s", exc)
        raise RepositoryError(f"failed to update stage: {exc}") from exc


_DELETE_STEPS: tuple[tuple[str, str], ...] = (
    (
        "comments",
        "DELETE FROM comments WHERE id_history_status IN "
        "(SELECT id_history_status FROM history_status WHERE id_stage = ?)",
    ),
    ("history_status", "DELETE FROM history_status WHERE id_stage = ?"),
    ("files", "DELETE FROM files WHERE id_stage = ?"),
    ("stage", "DELETE FROM stages WHERE id_stage = ?"),
)


def delete_stage(connection: sqlite3.Connection, stage_id: int) -> None:
    """Delete a stage with its comments, status history and files."""
    step = ""
    try:
        with connection:
            for step, statement in _DELETE_STEPS:
                connection.execute(statement, (stage_id,))
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to delete {step}: {exc}") from exc


def delete_comment(connection: sqlite3.Connection, comment_id: int) -> None:
    """Remove a comment."""
    try:
        with connection:
            connection.execute("DELETE FROM comments WHERE id_comment = ?", (comment_id,))
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to delete comment: {exc}") from exc