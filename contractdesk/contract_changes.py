"""Creating, editing, reassigning and deleting contracts."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Any

from contractdesk.contract_queries import Contract
from contractdesk.database import NotFoundError, RepositoryError

logger = logging.getLogger(__name__)


def _day(value: Any) -> Any:
    return value.isoformat() if isinstance(value, date) else value


def _exists(connection: sqlite3.Connection, query: str, params: tuple[Any, ...], what: str) -> bool:
    try:
        (found,) = connection.execute(query, params).fetchone()
    except sqlite3.Error as exc:
        logger.error("%s check query failed: %s", what, exc)
        raise RepositoryError(f"{what} verification failed: {exc}") from exc
    return bool(found)


def _user_exists(connection: sqlite3.Connection, user_id: int) -> bool:
    return _exists(
        connection, "SELECT EXISTS(SELECT 1 FROM users WHERE id_user = ?)", (user_id,), "user"
    )


def add_contract(connection: sqlite3.Connection, contract: Contract) -> int:
    """Store a new contract and return its identifier."""
    if not _user_exists(connection, contract.user_id):
        raise NotFoundError("user not found")
    try:
        with connection:
            cursor = connection.execute(
                """
                INSERT INTO contracts (
                    name_contract, date_create_contract, id_user, date_conclusion, date_end,
                    id_type, cost, object_contract, term_payment, id_counterparty,
                    id_status_contract, notes, conditions
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    contract.name,
                    _day(contract.date_created),
                    contract.user_id,
                    _day(contract.date_conclusion),
                    _day(contract.date_end),
                    contract.type_id,
                    contract.cost,
                    contract.object_contract,
                    contract.term_payment,
                    contract.counterparty_id,
                    contract.status_id,
                    contract.notes,
                    contract.conditions,
                ),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to add contract: {exc}") from exc
    return int(cursor.lastrowid)


def change_contract(connection: sqlite3.Connection, contract: Contract) -> None:
    """Overwrite the editable fields of the contract with the given identifier."""
    try:
        with connection:
            connection.execute(
                """
                UPDATE contracts SET
                    name_contract = ?,
                    date_conclusion = ?,
                    date_end = ?,
                    id_type = ?,
                    cost = ?,
                    object_contract = ?,
                    term_payment = ?,
                    id_counterparty = ?,
                    id_status_contract = ?,
                    notes = ?,
                    conditions = ?
                WHERE id_contract = ?
                """,
                (
                    contract.name,
                    _day(contract.date_conclusion),
                    _day(contract.date_end),
                    contract.type_id,
                    contract.cost,
                    contract.object_contract,
                    contract.term_payment,
                    contract.counterparty_id,
                    contract.status_id,
                    contract.notes,
                    contract.conditions,
                    contract.contract_id,
                ),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to update contract: {exc}") from exc


def change_contract_user(connection: sqlite3.Connection, contract_id: int, user_id: int) -> None:
    """Make another user responsible for the contract."""
    logger.debug("Reassigning contract %d to user %d", contract_id, user_id)
    if not _user_exists(connection, user_id):
        logger.warning("User %d not found", user_id)
        raise NotFoundError(f"user {user_id} does not exist")
    if not _exists(
        connection,
        "SELECT EXISTS(SELECT 1 FROM contracts WHERE id_contract = ?)",
        (contract_id,),
        "contract",
    ):
        logger.warning("Contract %d not found", contract_id)
        raise NotFoundError(f"contract {contract_id} does not exist")
    try:
        with connection:
            cursor = connection.execute(
                "UPDATE contracts SET id_user = ? WHERE id_contract = ?", (user_id, contract_id)
            )
    except sqlite3.Error as exc:
        logger.error("Update failed: %s", exc)
        raise RepositoryError(f"update operation failed: {exc}") from exc
    if cursor.rowcount == 0:
        raise RepositoryError(f"no changes made to contract {contract_id}")
    logger.info("Contract %d now belongs to user %d", contract_id, user_id)


_DELETE_STEPS: tuple[tuple[str, str], ...] = (
    (
        "files",
        "DELETE FROM files WHERE id_stage IN "
        "(SELECT id_stage FROM stages WHERE id_contract = ?)",
    ),
    (
        "comments",
        "DELETE FROM comments WHERE id_history_status IN ("
        "SELECT id_history_status FROM history_status WHERE id_stage IN "
        "(SELECT id_stage FROM stages WHERE id_contract = ?))",
    ),
    (
        "history_status",
        "DELETE FROM history_status WHERE id_stage IN "
        "(SELECT id_stage FROM stages WHERE id_contract = ?)",
    ),
    ("stages", "DELETE FROM stages WHERE id_contract = ?"),
    ("contracts_by_tegs", "DELETE FROM contracts_by_tegs WHERE id_contract = ?"),
    ("contract", "DELETE FROM contracts WHERE id_contract = ?"),
)


def delete_contract(connection: sqlite3.Connection, contract_id: int) -> None:
    """Delete a contract with its stages, their history, comments, files and tag links."""
    step = ""
    try:
        with connection:
            for step, statement in _DELETE_STEPS:
                connection.execute(statement, (contract_id,))
    except sqlite3.Error as exc:
        raise RepositoryError(f"error deleting {step}: {exc}") from exc