import pytest

from contractdesk.database import DatabaseSettings, RepositoryError, connect, setup_database
from contractdesk.photos import Photo, add_photo, change_photo, delete_photo, get_photo


@pytest.fixture
def connection(tmp_path):
    conn = connect(DatabaseSettings(path=str(tmp_path / "photos.db")))
    setup_database(conn)
    yield conn
    conn.close()


@pytest.fixture
def user_id(connection):
    with connection:
        cursor = connection.execute(
            "INSERT INTO users (surname, username, patronymic, phone, email, login, password_hash) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            ("Petrov", "Petr", "Petrovich", "200", "petr@example.com", "petr", "hash"),
        )
    return cursor.lastrowid


def test_no_photo_returns_none(connection, user_id):
    assert get_photo(connection, user_id) is None


def test_add_and_get_round_trip(connection, user_id):
    add_photo(connection, Photo(user_id=user_id, data=b"\x89PNG", content_type="image/png"))
    stored = get_photo(connection, user_id)
    assert stored.data == b"\x89PNG"
    assert stored.content_type == "image/png"
    assert stored.user_id == user_id
    assert stored.photo_id >= 1


def test_second_add_is_rejected(connection, user_id):
    add_photo(connection, Photo(user_id=user_id, data=b"a", content_type="image/png"))
    with pytest.raises(RepositoryError):
        add_photo(connection, Photo(user_id=user_id, data=b"b", content_type="image/png"))
    assert get_photo(connection, user_id).data == b"a"


def test_add_for_unknown_user_fails(connection):
    with pytest.raises(RepositoryError):
        add_photo(connection, Photo(user_id=12345, data=b"a", content_type="image/png"))


def test_change_replaces_photo(connection, user_id):
    add_photo(connection, Photo(user_id=user_id, data=b"old", content_type="image/png"))
    change_photo(connection, Photo(user_id=user_id, data=b"new", content_type="image/jpeg"))
    stored = get_photo(connection, user_id)
    assert stored.data == b"new"
    assert stored.content_type == "image/jpeg"
    count = connection.execute(
        "SELECT COUNT(*) FROM user_photos WHERE id_user = ?", (user_id,)
    ).fetchone()[0]
    assert count == 1


def test_change_without_existing_photo_inserts(connection, user_id):
    change_photo(connection, Photo(user_id=user_id, data=b"fresh", content_type="image/gif"))
    assert get_photo(connection, user_id).data == b"fresh"


def test_failed_change_keeps_old_photo(connection, user_id):
    add_photo(connection, Photo(user_id=user_id, data=b"keep", content_type="image/png"))
    with pytest.raises(RepositoryError):
        change_photo(connection, Photo(user_id=user_id, data=None, content_type="image/png"))
    assert get_photo(connection, user_id).data == b"keep"


def test_delete_removes_photo(connection, user_id):
    add_photo(connection, Photo(user_id=user_id, data=b"x", content_type="image/png"))
    delete_photo(connection, user_id)
    assert get_photo(connection, user_id) is None