"""Deadline notifications and per-user notification settings."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from contractdesk.database import NotFoundError, RepositoryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractNotification:
    """A contract whose end date is a user's chosen number of days away."""

    user_id: int
    email: str
    contract_id: int
    contract_name: str
    date_end: date
    days_before: int


@dataclass(frozen=True)
class StageNotification:
    """A stage whose end date is a user's chosen number of days away."""

    user_id: int
    email: str
    stage_id: int
    stage_name: str
    contract_id: int
    date_end: date
    days_before: int


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _fetch(
    connection: sqlite3.Connection, query: str, params: Any, what: str
) -> list[sqlite3.Row]:
    try:
        return connection.execute(query, params).fetchall()
    except sqlite3.Error as exc:
        raise RepositoryError(f"error {what}: {exc}") from exc


def _fetch_one(connection: sqlite3.Connection, query: str, params: Any, what: str) -> sqlite3.Row:
    try:
        row = connection.execute(query, params).fetchone()
    except sqlite3.Error as exc:
        raise RepositoryError(f"error getting {what}: {exc}") from exc
    if row is None:
        raise NotFoundError(f"error getting {what}: no rows in result set")
    return row


def get_contract_notifications(
    connection: sqlite3.Connection, today: date | None = None
) -> list[ContractNotification]:
    """Return contracts ending exactly as many days after today as a user asked for."""
    today = today if today is not None else date.today()
    logger.info("Looking for contracts to notify about")
    rows = _fetch(
        connection,
        """
        SELECT u.id_user, u.email, c.id_contract, c.name_contract, c.date_end,
               ns.variant_notification_settings
        FROM users u
        JOIN contracts c ON u.id_user = c.id_user
        JOIN notification_settings_by_user nsu ON u.id_user = nsu.id_user
        JOIN notification_settings ns
            ON nsu.id_notification_settings = ns.id_notification_settings
        WHERE CAST(julianday(c.date_end) - julianday(:today) AS INTEGER)
              = ns.variant_notification_settings
          AND c.date_end >= :today
        ORDER BY u.id_user, c.id_contract
        """,
        {"today": today.isoformat()},
        "querying contracts",
    )
    notifications = [
        ContractNotification(
            user_id=user_id,
            email=email,
            contract_id=contract_id,
            contract_name=name,
            date_end=_to_date(date_end),
            days_before=days,
        )
        for user_id, email, contract_id, name, date_end, days in rows
    ]
    logger.info("Found %d contracts to notify about", len(notifications))
    return notifications


def get_stage_notifications(
    connection: sqlite3.Connection, today: date | None = None
) -> list[StageNotification]:
    """Return stages ending exactly as many days after today as a user asked for."""
    today = today if today is not None else date.today()
    logger.info("Looking for stages to notify about")
    rows = _fetch(
        connection,
        """
        SELECT u.id_user, u.email, s.id_stage, s.name_stage, s.id_contract,
               s.date_create_end, ns.variant_notification_settings
        FROM users u
        JOIN stages s ON u.id_user = s.id_user
        JOIN notification_settings_by_user nsu ON u.id_user = nsu.id_user
        JOIN notification_settings ns
            ON nsu.id_notification_settings = ns.id_notification_settings
        WHERE CAST(julianday(s.date_create_end) - julianday(:today) AS INTEGER)
              = ns.variant_notification_settings
          AND s.date_create_end >= :today
        ORDER BY u.id_user, s.id_stage
        """,
        {"today": today.isoformat()},
        "querying stages",
    )
    notifications = [
        StageNotification(
            user_id=user_id,
            email=email,
            stage_id=stage_id,
            stage_name=name,
            contract_id=contract_id,
            date_end=_to_date(date_end),
            days_before=days,
        )
        for user_id, email, stage_id, name, contract_id, date_end, days in rows
    ]
    logger.info("Found %d stages to notify about", len(notifications))
    return notifications


def set_user_notification_settings(
    connection: sqlite3.Connection, user_id: int, variants: Iterable[int]
) -> None:
    """Replace the user's settings with the given day counts.

    Day counts that have no matching notification setting are ignored.
    """
    chosen = list(variants)
    try:
        with connection:
            connection.execute(
                "DELETE FROM notification_settings_by_user WHERE id_user = ?", (user_id,)
            )
            if chosen:
                placeholders = ", ".join("?" for _ in chosen)
                connection.execute(
                    "INSERT INTO notification_settings_by_user "
                    "(id_user, id_notification_settings) "
                    "SELECT ?, ns.id_notification_settings FROM notification_settings ns "
                    f"WHERE ns.variant_notification_settings IN ({placeholders})",
                    (user_id, *chosen),
                )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to update notification settings: {exc}") from exc


def get_user_notification_settings(connection: sqlite3.Connection, user_id: int) -> list[int]:
    """Return the day counts the user wants to be notified at."""
    rows = _fetch(
        connection,
        """
        SELECT ns.variant_notification_settings
        FROM notification_settings_by_user nsu
        JOIN notification_settings ns
            ON ns.id_notification_settings = nsu.id_notification_settings
        WHERE nsu.id_user = ?
        ORDER BY nsu.id_notification_settings_by_user
        """,
        (user_id,),
        "getting settings",
    )
    return [variant for (variant,) in rows]


def get_users_to_notify_for_stage(connection: sqlite3.Connection, stage_id: int) -> list[int]:
    """Return the users to tell about a change of the stage.

    These are the stage's assignee and the owner of its contract, if that owner has a role.
    """
    rows = _fetch(
        connection,
        """
        SELECT DISTINCT u.id_user
        FROM users u
        JOIN user_by_role ur ON u.id_user = ur.id_user
        JOIN contracts c ON c.id_user = u.id_user
        JOIN stages s ON s.id_contract = c.id_contract
        WHERE s.id_stage = :stage_id
        UNION
        SELECT s.id_user FROM stages s WHERE s.id_stage = :stage_id
        """,
        {"stage_id": stage_id},
        "querying users to notify",
    )
    return [user_id for (user_id,) in rows]


def get_user_email(connection: sqlite3.Connection, user_id: int) -> str:
    """Return the user's e-mail address."""
    (email,) = _fetch_one(
        connection, "SELECT email FROM users WHERE id_user = ?", (user_id,), "user email"
    )
    return email


def get_stage_info(connection: sqlite3.Connection, stage_id: int) -> tuple[str, str]:
    """Return the stage's name and the name of its contract."""
    stage_name, contract_name = _fetch_one(
        connection,
        "SELECT s.name_stage, c.name_contract FROM stages s "
        "JOIN contracts c ON s.id_contract = c.id_contract WHERE s.id_stage = ?",
        (stage_id,),
        "stage info",
    )
    return stage_name, contract_name


def get_status_name(connection: sqlite3.Connection, status_id: int) -> str:
    """Return the name of a stage status."""
    (name,) = _fetch_one(
        connection,
        "SELECT name_status_stage FROM status_stages WHERE id_status_stage = ?",
        (status_id,),
        "status name",
    )
    return name