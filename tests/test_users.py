import pytest

from contractdesk.database import (
    DatabaseSettings,
    NotFoundError,
    RepositoryError,
    connect,
    setup_database,
)
from contractdesk.users import (
    Role,
    User,
    add_admin,
    add_manager,
    add_user,
    add_user_role,
    change_user,
    delete_user,
    get_user,
    get_user_id,
    get_user_roles,
    get_users,
    remove_admin,
    remove_manager,
    remove_user_role,
)

PASSWORD = "password"


@pytest.fixture
def conn():
    connection = connect(DatabaseSettings(path=":memory:"))
    setup_database(connection)
    with connection:
        connection.execute("INSERT INTO roles (name_role) VALUES ('admin'), ('manager')")
    yield connection
    connection.close()


def _user(login, email):
    return User(
        surname="Ivanov",
        username="Ivan",
        patronymic="Ivanovich",
        phone="100",
        email=email,
        login=login,
    )


def _create(conn, login="ivan", email="ivan@example.com"):
    add_user(conn, _user(login, email), PASSWORD)
    return get_user_id(conn, login)


def test_add_and_get_user(conn):
    user_id = _create(conn)
    user = get_user(conn, user_id)
    assert user == User(
        surname="Ivanov",
        username="Ivan",
        patronymic="Ivanovich",
        phone="100",
        email="ivan@example.com",
        login="ivan",
        user_id=user_id,
        roles=[],
    )


def test_password_is_stored_hashed(conn):
    user_id = _create(conn)
    password_hash, salt, algorithm = conn.execute(
        "SELECT password_hash, salt, password_algorithm FROM users WHERE id_user = ?",
        (user_id,),
    ).fetchone()
    assert algorithm == "bcrypt"
    assert password_hash.startswith("$2")
    assert PASSWORD not in password_hash
    assert salt


def test_salts_differ_between_users(conn):
    _create(conn, "a", "a@example.com")
    _create(conn, "b", "b@example.com")
    salts = {row[0] for row in conn.execute("SELECT salt FROM users")}
    assert len(salts) == 2


def test_duplicate_login_rejected(conn):
    _create(conn)
    with pytest.raises(RepositoryError):
        add_user(conn, _user("ivan", "other@example.com"), PASSWORD)


def test_get_user_id_unknown_login(conn):
    with pytest.raises(NotFoundError):
        get_user_id(conn, "nobody")


def test_get_missing_user_is_none(conn):
    assert get_user(conn, 42) is None


def test_roles_add_and_remove(conn):
    user_id = _create(conn)
    add_admin(conn, user_id)
    add_manager(conn, user_id)
    assert get_user_roles(conn, user_id) == [Role(1, "admin"), Role(2, "manager")]
    remove_admin(conn, user_id)
    assert get_user_roles(conn, user_id) == [Role(2, "manager")]
    remove_manager(conn, user_id)
    assert get_user_roles(conn, user_id) == []


def test_add_role_twice_fails(conn):
    user_id = _create(conn)
    add_admin(conn, user_id)
    with pytest.raises(RepositoryError, match="already has admin role"):
        add_user_role(conn, user_id, 1)


def test_remove_absent_role_fails(conn):
    user_id = _create(conn)
    with pytest.raises(NotFoundError, match="manager"):
        remove_user_role(conn, user_id, 2)


@pytest.mark.parametrize("role_id", [0, 3])
def test_unknown_role_rejected(conn, role_id):
    user_id = _create(conn)
    with pytest.raises(ValueError):
        add_user_role(conn, user_id, role_id)
    with pytest.raises(ValueError):
        remove_user_role(conn, user_id, role_id)


def test_get_users_groups_roles(conn):
    first = _create(conn, "a", "a@example.com")
    second = _create(conn, "b", "b@example.com")
    add_admin(conn, first)
    add_manager(conn, first)
    users = get_users(conn)
    assert [user.user_id for user in users] == [first, second]
    assert users[0].roles == [Role(1, "admin"), Role(2, "manager")]
    assert users[1].roles == []
    assert get_user(conn, first).roles == users[0].roles


def test_change_user_keeps_empty_fields(conn):
    user_id = _create(conn)
    change_user(conn, User(surname="Petrov", email="petrov@example.com", user_id=user_id))
    user = get_user(conn, user_id)
    assert user.surname == "Petrov"
    assert user.email == "petrov@example.com"
    assert user.username == "Ivan"
    assert user.login == "ivan"


def test_change_user_requires_id(conn):
    with pytest.raises(ValueError):
        change_user(conn, User(surname="Petrov"))


def test_change_missing_user(conn):
    with pytest.raises(NotFoundError):
        change_user(conn, User(surname="Petrov", user_id=99))


def test_delete_user_removes_dependents(conn):
    user_id = _create(conn)
    add_admin(conn, user_id)
    with conn:
        conn.execute(
            "INSERT INTO user_photos (data, type, id_user) VALUES (?, ?, ?)",
            (b"img", "image/png", user_id),
        )
    delete_user(conn, user_id)
    assert get_user(conn, user_id) is None
    assert conn.execute("SELECT COUNT(*) FROM user_photos").fetchone()[0] == 0
    assert conn.execute("SELECT COUNT(*) FROM user_by_role").fetchone()[0] == 0


def test_delete_missing_user(conn):
    with pytest.raises(NotFoundError):
        delete_user(conn, 7)


def test_delete_user_with_contract_refused(conn):
    user_id = _create(conn)
    with conn:
        conn.execute("INSERT INTO types_contracts (name_type_contract) VALUES ('supply')")
        conn.execute("INSERT INTO status_contracts (name_status_contract) VALUES ('open')")
        conn.execute(
            "INSERT INTO counterparty (name_counterparty, contact, inn, ogrn, address, dop_info) "
            "VALUES ('Acme', 'c', 'i', 'o', 'a', 'd')"
        )
        conn.execute(
            "INSERT INTO contracts (name_contract, date_create_contract, id_user, "
            "date_conclusion, date_end, id_type, cost, object_contract, term_payment, "
            "id_counterparty, id_status_contract, notes, conditions) "
            "VALUES ('C', '2024-01-01', ?, '2024-01-02', '2024-12-31', 1, 10, 'o', 't', "
            "1, 1, 'n', 'c')",
            (user_id,),
        )
    with pytest.raises(RepositoryError, match="1 associated contracts"):
        delete_user(conn, user_id)
    assert get_user(conn, user_id).login == "ivan"