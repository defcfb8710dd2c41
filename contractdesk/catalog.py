"""Reference data: tags, statuses, contract types and counterparties."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from contractdesk.database import NotFoundError, RepositoryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tag:
    """A label that can be attached to contracts."""

    tag_id: int
    name: str


@dataclass(frozen=True)
class NamedItem:
    """An entry of a lookup table: an identifier and its display name."""

    item_id: int
    name: str


@dataclass(frozen=True)
class Counterparty:
    """The other party of a contract."""

    counterparty_id: int
    name: str
    contact_info: str
    inn: str
    ogrn: str
    address: str
    additional_info: str


def _fetch(
    connection: sqlite3.Connection,
    query: str,
    params: Iterable[Any] = (),
) -> list[sqlite3.Row]:
    try:
        return connection.execute(query, tuple(params)).fetchall()
    except sqlite3.Error as exc:
        raise RepositoryError(f"query error: {exc}") from exc


def _named_items(connection: sqlite3.Connection, query: str) -> list[NamedItem]:
    return [NamedItem(item_id, name) for item_id, name in _fetch(connection, query)]


def get_tags(connection: sqlite3.Connection) -> list[Tag]:
    """Return every tag."""
    rows = _fetch(connection, "SELECT id_teg, name_teg FROM tegs ORDER BY id_teg")
    return [Tag(tag_id, name) for tag_id, name in rows]


def get_contract_statuses(connection: sqlite3.Connection) -> list[NamedItem]:
    """Return every contract status."""
    return _named_items(
        connection,
        "SELECT id_status_contract, name_status_contract FROM status_contracts "
        "ORDER BY id_status_contract",
    )


def get_stage_statuses(connection: sqlite3.Connection) -> list[NamedItem]:
    """Return every stage status."""
    return _named_items(
        connection,
        "SELECT id_status_stage, name_status_stage FROM status_stages ORDER BY id_status_stage",
    )


def get_contract_types(connection: sqlite3.Connection) -> list[NamedItem]:
    """Return every contract type."""
    return _named_items(
        connection,
        "SELECT id_type_contract, name_type_contract FROM types_contracts "
        "ORDER BY id_type_contract",
    )


def add_tag_to_contract(connection: sqlite3.Connection, contract_id: int, tag_id: int) -> None:
    """Attach a tag to a contract; attaching it twice changes nothing."""
    try:
        (exists,) = connection.execute(
            "SELECT EXISTS(SELECT 1 FROM tegs WHERE id_teg = ?)", (tag_id,)
        ).fetchone()
    except sqlite3.Error as exc:
        raise RepositoryError(f"tag check error: {exc}") from exc
    if not exists:
        raise NotFoundError("tag does not exist")
    try:
        with connection:
            connection.execute(
                "INSERT INTO contracts_by_tegs (id_contract, id_teg) VALUES (?, ?) "
                "ON CONFLICT (id_contract, id_teg) DO NOTHING",
                (contract_id, tag_id),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to add tag: {exc}") from exc


def remove_tag_from_contract(
    connection: sqlite3.Connection, contract_id: int, tag_id: int
) -> None:
    """Detach a tag from a contract."""
    try:
        with connection:
            cursor = connection.execute(
                "DELETE FROM contracts_by_tegs WHERE id_contract = ? AND id_teg = ?",
                (contract_id, tag_id),
            )
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to remove tag: {exc}") from exc
    if cursor.rowcount == 0:
        raise NotFoundError("tag association not found")


def get_contract_tags(connection: sqlite3.Connection, contract_id: int) -> list[Tag]:
    """Return the tags attached to a contract."""
    rows = _fetch(
        connection,
        "SELECT t.id_teg, t.name_teg FROM contracts_by_tegs cbt "
        "JOIN tegs t ON cbt.id_teg = t.id_teg "
        "WHERE cbt.id_contract = ? ORDER BY t.id_teg",
        (contract_id,),
    )
    return [Tag(tag_id, name) for tag_id, name in rows]


_COUNTERPARTY_COLUMNS = (
    "SELECT id_counterparty, name_counterparty, contact, inn, ogrn, address, dop_info "
    "FROM counterparty"
)


def get_counterparties(connection: sqlite3.Connection) -> list[Counterparty]:
    """Return every counterparty."""
    rows = _fetch(connection, f"{_COUNTERPARTY_COLUMNS} ORDER BY id_counterparty")
    return [Counterparty(*row) for row in rows]


def get_counterparty(connection: sqlite3.Connection, counterparty_id: int) -> Counterparty | None:
    """Return one counterparty, or None if there is no such record."""
    rows = _fetch(
        connection, f"{_COUNTERPARTY_COLUMNS} WHERE id_counterparty = ?", (counterparty_id,)
    )
    return Counterparty(*rows[0]) if rows else None