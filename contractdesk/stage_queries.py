"""Read access to contract stages, their files, statuses and comments."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any

from contractdesk.database import NotFoundError, RepositoryError


@dataclass
class Stage:
    """A stage of a contract with its assignee and latest status."""

    name: str
    user_id: int = 0
    description: str = ""
    date_start: date | None = None
    date_end: date | None = None
    contract_id: int = 0
    stage_id: int = 0
    surname: str = ""
    username: str = ""
    patronymic: str = ""
    phone: str = ""
    email: str = ""
    contract_name: str = ""
    contract_created: date | None = None
    status_id: int = 0
    status_name: str = ""
    status_changed_at: datetime | None = None
    contract_surname: str = ""
    contract_username: str = ""
    contract_patronymic: str = ""


@dataclass
class StageFile:
    """A file attached to a stage."""

    name: str
    data: bytes
    content_type: str
    stage_id: int
    file_id: int | None = None


@dataclass(frozen=True)
class StageComment:
    """A comment left on a status change of a stage."""

    comment_id: int
    history_status_id: int
    text: str
    created_at: datetime | None
    user_id: int
    stage_id: int
    status_id: int
    status_name: str
    surname: str
    username: str
    patronymic: str


@dataclass(frozen=True)
class StageStatus:
    """A possible status of a stage."""

    status_id: int
    name: str


def _to_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _to_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


_DATE_FIELDS = ("date_start", "date_end", "contract_created")
_STAGE_DEFAULTS = {f.name: f.default for f in fields(Stage)}

_COLUMNS = """
    s.id_stage AS stage_id,
    s.name_stage AS name,
    s.id_user AS user_id,
    u.surname AS surname,
    u.username AS username,
    u.patronymic AS patronymic,
    u.phone AS phone,
    u.email AS email,
    s.description AS description,
    s.date_create_start AS date_start,
    s.date_create_end AS date_end,
    s.id_contract AS contract_id,
    c.name_contract AS contract_name,
    c.date_create_contract AS contract_created,
    hs.id_status_stage AS status_id,
    ss.name_status_stage AS status_name,
    hs.data_change_status AS status_changed_at,
    cu.surname AS contract_surname,
    cu.username AS contract_username,
    cu.patronymic AS contract_patronymic"""

_BASE_JOINS = """
    FROM stages s
    LEFT JOIN users u ON s.id_user = u.id_user
    LEFT JOIN contracts c ON s.id_contract = c.id_contract
    LEFT JOIN users cu ON c.id_user = cu.id_user"""

_LATEST_STATUS = """
    LEFT JOIN history_status hs ON hs.id_history_status = (
        SELECT h.id_history_status FROM history_status h
        WHERE h.id_stage = s.id_stage
        ORDER BY h.data_change_status DESC, h.id_history_status DESC
        LIMIT 1)
    LEFT JOIN status_stages ss ON hs.id_status_stage = ss.id_status_stage"""

_EVERY_STATUS = """
    JOIN history_status hs ON s.id_stage = hs.id_stage
    JOIN status_stages ss ON hs.id_status_stage = ss.id_status_stage"""


def _to_stage(record: dict[str, Any]) -> Stage:
    for name, value in record.items():
        if value is None:
            record[name] = _STAGE_DEFAULTS[name]
    for name in _DATE_FIELDS:
        record[name] = _to_date(record[name])
    record["status_changed_at"] = _to_datetime(record["status_changed_at"])
    return Stage(**record)


def _select_stages(
    connection: sqlite3.Connection,
    status_join: str,
    where: str = "",
    params: tuple[Any, ...] = (),
    order: str = "s.id_stage",
) -> list[Stage]:
    sql = f"SELECT {_COLUMNS} {_BASE_JOINS} {status_join}"
    if where:
        sql += f" WHERE {where}"
    sql += f" ORDER BY {order}"
    try:
        cursor = connection.execute(sql, params)
        names = [description[0] for description in cursor.description]
        rows = cursor.fetchall()
    except sqlite3.Error as exc:
        raise RepositoryError(f"query failed: {exc}") from exc
    return [_to_stage(dict(zip(names, row))) for row in rows]


def get_stages(connection: sqlite3.Connection) -> list[Stage]:
    """Return every stage once for each status it has passed through."""
    return _select_stages(connection, _EVERY_STATUS, order="s.id_stage, hs.id_history_status")


def get_contract_stages(connection: sqlite3.Connection, contract_id: int) -> list[Stage]:
    """Return the stages of a contract with their latest status."""
    return _select_stages(connection, _LATEST_STATUS, "s.id_contract = ?", (contract_id,))


def get_user_stages(connection: sqlite3.Connection, user_id: int) -> list[Stage]:
    """Return the stages assigned to a user with their latest status."""
    return _select_stages(connection, _LATEST_STATUS, "s.id_user = ?", (user_id,))


def get_stage(connection: sqlite3.Connection, stage_id: int) -> Stage:
    """Return one stage with its latest status; a stage without history has status 0."""
    try:
        (exists,) = connection.execute(
            "SELECT EXISTS(SELECT 1 FROM stages WHERE id_stage = ?)", (stage_id,)
        ).fetchone()
    except sqlite3.Error as exc:
        raise RepositoryError(f"existence check failed: {exc}") from exc
    if not exists:
        raise NotFoundError(f"stage with id {stage_id} does not exist")
    return _select_stages(connection, _LATEST_STATUS, "s.id_stage = ?", (stage_id,))[0]


def _fetch(connection: sqlite3.Connection, query: str, params: tuple[Any, ...]) -> list[Any]:
    try:
        return connection.execute(query, params).fetchall()
    except sqlite3.Error as exc:
        raise RepositoryError(f"database error: {exc}") from exc


def _to_file(row: Any) -> StageFile:
    file_id, name, data, content_type, stage_id = row
    return StageFile(
        name=name, data=bytes(data), content_type=content_type, stage_id=stage_id, file_id=file_id
    )


_FILE_COLUMNS = "SELECT id_file, name_file, data, type_file, id_stage FROM files"


def get_stage_file(connection: sqlite3.Connection, stage_id: int, file_id: int) -> StageFile:
    """Return one file of a stage."""
    rows = _fetch(
        connection, f"{_FILE_COLUMNS} WHERE id_stage = ? AND id_file = ?", (stage_id, file_id)
    )
    if not rows:
        raise NotFoundError("file not found")
    return _to_file(rows[0])


def get_stage_files(connection: sqlite3.Connection, stage_id: int) -> list[StageFile]:
    """Return every file of a stage."""
    rows = _fetch(connection, f"{_FILE_COLUMNS} WHERE id_stage = ? ORDER BY id_file", (stage_id,))
    return [_to_file(row) for row in rows]


def get_stage_status(connection: sqlite3.Connection, status_id: int) -> StageStatus | None:
    """Return a stage status, or None if there is no such status."""
    rows = _fetch(
        connection,
        "SELECT id_status_stage, name_status_stage FROM status_stages WHERE id_status_stage = ?",
        (status_id,),
    )
    return StageStatus(*rows[0]) if rows else None


def get_comments(connection: sqlite3.Connection, stage_id: int) -> list[StageComment]:
    """Return the comments left on a stage, with their authors and statuses."""
    rows = _fetch(
        connection,
        """
        SELECT c.id_comment, c.id_history_status, c.comment, c.date_create_comment, c.id_user,
               hs.id_stage, hs.id_status_stage, ss.name_status_stage,
               u.surname, u.username, u.patronymic
        FROM comments c
        JOIN users u ON c.id_user = u.id_user
        JOIN history_status hs ON c.id_history_status = hs.id_history_status
        JOIN status_stages ss ON hs.id_status_stage = ss.id_status_stage
        WHERE hs.id_stage = ?
        ORDER BY c.id_comment
        """,
        (stage_id,),
    )
    return [
        StageComment(
            comment_id=comment_id,
            history_status_id=history_id,
            text=text,
            created_at=_to_datetime(created),
            user_id=user_id,
            stage_id=row_stage_id,
            status_id=status_id,
            status_name=status_name,
            surname=surname,
            username=username,
            patronymic=patronymic,
        )
        for (
            comment_id,
            history_id,
            text,
            created,
            user_id,
            row_stage_id,
            status_id,
            status_name,
            surname,
            username,
            patronymic,
        ) in rows
    ]