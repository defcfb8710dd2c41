"""Read access to contracts, with their owners, types, statuses and tags."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from contractdesk.catalog import Tag
from contractdesk.database import RepositoryError

_TAG_CHUNK = 500


@dataclass
class Contract:
    """A contract together with the names of everything it refers to."""

    name: str
    contract_id: int = 0
    user_id: int = 0
    surname: str = ""
    username: str = ""
    patronymic: str = ""
    phone: str = ""
    email: str = ""
    date_conclusion: date | None = None
    date_end: date | None = None
    date_created: date | None = None
    type_id: int = 0
    type_name: str = ""
    cost: int = 0
    object_contract: str = ""
    term_payment: str = ""
    counterparty_id: int = 0
    counterparty_name: str = ""
    contact_info: str = ""
    inn: str = ""
    ogrn: str = ""
    address: str = ""
    additional_info: str = ""
    status_id: int = 0
    status_name: str = ""
    notes: str = ""
    conditions: str = ""
    tags: list[Tag] = field(default_factory=list)


@dataclass(frozen=True)
class DateRange:
    """An inclusive range of calendar days."""

    start: date
    end: date


_SUMMARY_COLUMNS = """
    c.id_contract AS contract_id,
    c.name_contract AS name,
    c.id_user AS user_id,
    u.surname AS surname,
    u.username AS username,
    u.patronymic AS patronymic,
    c.date_conclusion AS date_conclusion,
    c.date_end AS date_end,
    c.date_create_contract AS date_created,
    c.id_type AS type_id,
    tc.name_type_contract AS type_name,
    c.id_counterparty AS counterparty_id,
    cp.name_counterparty AS counterparty_name,
    c.id_status_contract AS status_id,
    sc.name_status_contract AS status_name"""

_DETAIL_COLUMNS = (
    _SUMMARY_COLUMNS
    + """,
    c.cost AS cost,
    c.object_contract AS object_contract,
    c.term_payment AS term_payment,
    c.notes AS notes,
    c.conditions AS conditions,
    u.phone AS phone,
    u.email AS email,
    cp.contact AS contact_info,
    cp.inn AS inn,
    cp.ogrn AS ogrn,
    cp.address AS address,
    cp.dop_info AS additional_info"""
)

_FROM = """
    FROM contracts c
    JOIN users u ON c.id_user = u.id_user
    JOIN types_contracts tc ON c.id_type = tc.id_type_contract
    JOIN counterparty cp ON c.id_counterparty = cp.id_counterparty
    JOIN status_contracts sc ON c.id_status_contract = sc.id_status_contract"""

_DATE_FIELDS = ("date_conclusion", "date_end", "date_created")


def _to_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _tags_by_contract(
    connection: sqlite3.Connection, contract_ids: Sequence[int]
) -> dict[int, list[Tag]]:
    tags: dict[int, list[Tag]] = {}
    for start in range(0, len(contract_ids), _TAG_CHUNK):
        chunk = contract_ids[start : start + _TAG_CHUNK]
        placeholders = ", ".join("?" for _ in chunk)
        rows = connection.execute(
            "SELECT cbt.id_contract, t.id_teg, t.name_teg "
            "FROM contracts_by_tegs cbt JOIN tegs t ON cbt.id_teg = t.id_teg "
            f"WHERE cbt.id_contract IN ({placeholders}) "
            "ORDER BY cbt.id_contract, t.id_teg",
            tuple(chunk),
        ).fetchall()
        for contract_id, tag_id, tag_name in rows:
            tags.setdefault(contract_id, []).append(Tag(tag_id, tag_name))
    return tags


def _query(
    connection: sqlite3.Connection,
    columns: str,
    where: str = "",
    order: str = "c.id_contract",
    params: Iterable[Any] = (),
) -> list[Contract]:
    sql = f"SELECT {columns} {_FROM}"
    if where:
        sql += f" WHERE {where}"
    sql += f" ORDER BY {order}"
    try:
        cursor = connection.execute(sql, tuple(params))
        names = [description[0] for description in cursor.description]
        records = [dict(zip(names, row)) for row in cursor.fetchall()]
        tags = _tags_by_contract(connection, [record["contract_id"] for record in records])
    except sqlite3.Error as exc:
        raise RepositoryError(f"query error: {exc}") from exc

    contracts = []
    for record in records:
        for name in _DATE_FIELDS:
            record[name] = _to_date(record[name])
        record["tags"] = tags.get(record["contract_id"], [])
        contracts.append(Contract(**record))
    return contracts


def get_contracts(connection: sqlite3.Connection) -> list[Contract]:
    """Return every contract, ordered by identifier."""
    return _query(connection, _SUMMARY_COLUMNS)


def get_contracts_by_type(connection: sqlite3.Connection, type_id: int) -> list[Contract]:
    """Return the contracts of one type, ordered by identifier."""
    return _query(connection, _SUMMARY_COLUMNS, "c.id_type = ?", params=(type_id,))


def get_contracts_by_create_date(
    connection: sqlite3.Connection, period: DateRange
) -> list[Contract]:
    """Return the contracts created within the period, oldest first."""
    return _query(
        connection,
        _SUMMARY_COLUMNS,
        "c.date_create_contract BETWEEN ? AND ?",
        "c.date_create_contract, c.id_contract",
        (period.start.isoformat(), period.end.isoformat()),
    )


def get_contracts_by_tags(connection: sqlite3.Connection) -> list[Contract]:
    """Return every contract with its tags, ordered by identifier."""
    return _query(connection, _SUMMARY_COLUMNS)


def get_contracts_by_status(connection: sqlite3.Connection) -> list[Contract]:
    """Return every contract, ordered by status."""
    return _query(connection, _SUMMARY_COLUMNS, order="c.id_status_contract, c.id_contract")


def get_contract(connection: sqlite3.Connection, contract_id: int) -> Contract | None:
    """Return one contract in full, or None if there is no such contract."""
    contracts = _query(connection, _DETAIL_COLUMNS, "c.id_contract = ?", params=(contract_id,))
    return contracts[0] if contracts else None


def get_user_contracts(connection: sqlite3.Connection, user_id: int) -> list[Contract]:
    """Return the contracts a user is responsible for, in full."""
    return _query(connection, _DETAIL_COLUMNS, "c.id_user = ?", params=(user_id,))