from datetime import date

import pytest

from contractdesk.catalog import Tag
from contractdesk.contract_queries import (
    DateRange,
    get_contract,
    get_contracts,
    get_contracts_by_create_date,
    get_contracts_by_status,
    get_contracts_by_tags,
    get_contracts_by_type,
    get_user_contracts,
)
from contractdesk.database import (
    DatabaseSettings,
    RepositoryError,
    connect,
    setup_database,
)


@pytest.fixture
def empty_connection():
    connection = connect(DatabaseSettings(path=":memory:"))
    setup_database(connection)
    yield connection
    connection.close()


@pytest.fixture
def connection(empty_connection):
    conn = empty_connection
    password_hash = "placeholder"
    with conn:
        conn.executemany(
            "INSERT INTO users (id_user, surname, username, patronymic, phone, email, "
            "login, password_hash) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (1, "Ivanov", "Ivan", "Ivanovich", "n/a", "ivan@example.com", "ivan",
                 password_hash),
                (2, "Petrov", "Petr", "Petrovich", "n/a", "petr@example.com", "petr",
                 password_hash),
            ],
        )
        conn.executemany(
            "INSERT INTO types_contracts (id_type_contract, name_type_contract) VALUES (?, ?)",
            [(1, "supply"), (2, "lease")],
        )
        conn.executemany(
            "INSERT INTO status_contracts (id_status_contract, name_status_contract) "
            "VALUES (?, ?)",
            [(1, "draft"), (2, "active")],
        )
        conn.execute(
            "INSERT INTO counterparty (id_counterparty, name_counterparty, contact, inn, "
            "ogrn, address, dop_info) VALUES (1, 'Acme', 'acme@example.com', 'INN-A', "
            "'OGRN-A', 'Main street', 'none')"
        )
        conn.executemany(
            "INSERT INTO tegs (id_teg, name_teg) VALUES (?, ?)",
            [(1, "urgent"), (2, "large")],
        )
        conn.executemany(
            "INSERT INTO contracts (id_contract, name_contract, date_create_contract, "
            "id_user, date_conclusion, date_end, id_type, cost, object_contract, "
            "term_payment, id_counterparty, id_status_contract, notes, conditions) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?)",
            [
                (1, "Supply", "2024-03-10", 1, "2024-03-15", "2024-12-31", 1, 1000,
                 "goods", "monthly", 2, "first notes", "first conditions"),
                (2, "Lease", "2024-01-05", 1, "2024-01-10", "2025-01-10", 2, 500,
                 "office", "quarterly", 1, "second notes", "second conditions"),
                (3, "Service", "2024-02-20", 2, "2024-02-25", "2024-08-25", 1, 700,
                 "support", "once", 1, "third notes", "third conditions"),
            ],
        )
        conn.executemany(
            "INSERT INTO contracts_by_tegs (id_contract, id_teg) VALUES (?, ?)",
            [(1, 2), (1, 1), (3, 2)],
        )
    return conn


def test_get_contracts_ordered_with_names_and_tags(connection):
    contracts = get_contracts(connection)
    assert [c.contract_id for c in contracts] == [1, 2, 3]
    first = contracts[0]
    assert first.name == "Supply"
    assert first.surname == "Ivanov"
    assert first.type_name == "supply"
    assert first.status_name == "active"
    assert first.counterparty_name == "Acme"
    assert first.date_created == date(2024, 3, 10)
    assert first.date_end == date(2024, 12, 31)
    assert first.tags == [Tag(1, "urgent"), Tag(2, "large")]
    assert contracts[1].tags == []
    assert contracts[2].tags == [Tag(2, "large")]


def test_get_contracts_empty_database(empty_connection):
    assert get_contracts(empty_connection) == []


def test_get_contracts_by_type_filters(connection):
    contracts = get_contracts_by_type(connection, 1)
    assert [c.contract_id for c in contracts] == [1, 3]
    assert all(c.type_id == 1 for c in contracts)
    assert get_contracts_by_type(connection, 42) == []


def test_get_contracts_by_create_date_is_inclusive_and_sorted(connection):
    period = DateRange(date(2024, 1, 5), date(2024, 2, 20))
    contracts = get_contracts_by_create_date(connection, period)
    assert [c.contract_id for c in contracts] == [2, 3]
    created = [c.date_created for c in contracts]
    assert created == sorted(created)


def test_get_contracts_by_create_date_reversed_range_is_empty(connection):
    period = DateRange(date(2024, 12, 31), date(2024, 1, 1))
    assert get_contracts_by_create_date(connection, period) == []


def test_get_contracts_by_status_orders_by_status(connection):
    contracts = get_contracts_by_status(connection)
    statuses = [c.status_id for c in contracts]
    assert statuses == sorted(statuses)
    assert {c.contract_id for c in contracts[:2]} == {2, 3}
    assert contracts[-1].contract_id == 1


def test_get_contracts_by_tags_matches_all(connection):
    assert get_contracts_by_tags(connection) == get_contracts(connection)


def test_get_contract_returns_details(connection):
    contract = get_contract(connection, 1)
    assert contract is not None
    assert contract.cost == 1000
    assert contract.notes == "first notes"
    assert contract.conditions == "first conditions"
    assert contract.object_contract == "goods"
    assert contract.term_payment == "monthly"
    assert contract.tags == [Tag(1, "urgent"), Tag(2, "large")]


def test_get_contract_missing_returns_none(connection):
    assert get_contract(connection, 99) is None


def test_get_user_contracts_includes_user_and_counterparty(connection):
    contracts = get_user_contracts(connection, 2)
    assert [c.contract_id for c in contracts] == [3]
    contract = contracts[0]
    assert contract.email == "petr@example.com"
    assert contract.inn == "INN-A"
    assert contract.ogrn == "OGRN-A"
    assert contract.address == "Main street"
    assert contract.contact_info == "acme@example.com"
    assert contract.cost == 700


def test_get_user_contracts_unknown_user(connection):
    assert get_user_contracts(connection, 77) == []


def test_closed_connection_raises(connection):
    connection.close()
    with pytest.raises(RepositoryError):
        get_contracts(connection)