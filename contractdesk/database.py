"""Connection settings, connection handling and the database schema."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from types import TracebackType

logger = logging.getLogger(__name__)

PASSWORD = "password"


class RepositoryError(Exception):
    """Raised when a storage operation fails."""


class NotFoundError(RepositoryError):
    """Raised when a requested record does not exist."""


@dataclass(frozen=True)
class DatabaseSettings:
    """Where the database lives and how to reach it."""

    host: str = "localhost"
    port: str = "5432"
    user: str = "postgres"
    password: str = PASSWORD
    name: str = "contract_db"
    ssl_mode: str = "disable"
    path: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DatabaseSettings:
        """Read settings from the environment; unset variables fall back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        name = env.get("DB_NAME", defaults.name)
        return cls(
            host=env.get("DB_HOST", defaults.host),
            port=env.get("DB_PORT", defaults.port),
            user=env.get("DB_USER", defaults.user),
            password=env.get("DB_PASSWORD", defaults.password),
            name=name,
            ssl_mode=env.get("SSL_MODE", defaults.ssl_mode),
            path=env.get("DB_PATH", f"{name}.db"),
        )

    @property
    def dsn(self) -> str:
        """Connection URL built from the settings."""
        return (
            f"postgres://{self.user}:{self.password}@{self.host}:{self.port}"
            f"/{self.name}?sslmode={self.ssl_mode}"
        )

    @property
    def database_path(self) -> str:
        """File that holds the data."""
        return self.path if self.path is not None else f"{self.name}.db"


_SCHEMA: tuple[tuple[str, str], ...] = (
    ("roles", """CREATE TABLE IF NOT EXISTS roles (
        id_role INTEGER PRIMARY KEY AUTOINCREMENT,
        name_role VARCHAR(255) NOT NULL)"""),
    ("notification_settings", """CREATE TABLE IF NOT EXISTS notification_settings (
        id_notification_settings INTEGER PRIMARY KEY AUTOINCREMENT,
        variant_notification_settings INT NOT NULL)"""),
    ("users", """CREATE TABLE IF NOT EXISTS users (
        id_user INTEGER PRIMARY KEY AUTOINCREMENT,
        surname VARCHAR(255) NOT NULL,
        username VARCHAR(255) NOT NULL,
        patronymic VARCHAR(255) NOT NULL,
        phone VARCHAR(20) NOT NULL,
        email VARCHAR(255) NOT NULL,
        login VARCHAR(255) NOT NULL,
        password_hash VARCHAR(255) NOT NULL,
        salt VARCHAR(255),
        password_algorithm VARCHAR(50) DEFAULT 'bcrypt',
        password_updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT unique_email UNIQUE (email),
        CONSTRAINT unique_login UNIQUE (login))"""),
    ("user_photos", """CREATE TABLE IF NOT EXISTS user_photos (
        id_photo INTEGER PRIMARY KEY AUTOINCREMENT,
        data BLOB NOT NULL,
        type VARCHAR(50) NOT NULL,
        id_user INT NOT NULL UNIQUE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT fk_user_id FOREIGN KEY (id_user) REFERENCES users(id_user))"""),
    ("user_by_role", """CREATE TABLE IF NOT EXISTS user_by_role (
        id_user_by_role INTEGER PRIMARY KEY AUTOINCREMENT,
        id_user INT NOT NULL,
        id_role INT NOT NULL,
        CONSTRAINT fk_role_id FOREIGN KEY (id_role) REFERENCES roles(id_role),
        CONSTRAINT fk_user_id FOREIGN KEY (id_user) REFERENCES users(id_user))"""),
    ("types_contracts", """CREATE TABLE IF NOT EXISTS types_contracts (
        id_type_contract INTEGER PRIMARY KEY AUTOINCREMENT,
        name_type_contract VARCHAR(255) NOT NULL)"""),
    ("status_contracts", """CREATE TABLE IF NOT EXISTS status_contracts (
        id_status_contract INTEGER PRIMARY KEY AUTOINCREMENT,
        name_status_contract VARCHAR(255) NOT NULL)"""),
    ("counterparty", """CREATE TABLE IF NOT EXISTS counterparty (
        id_counterparty INTEGER PRIMARY KEY AUTOINCREMENT,
        name_counterparty VARCHAR(255) NOT NULL,
        contact VARCHAR(255) NOT NULL,
        inn VARCHAR(255) NOT NULL,
        ogrn VARCHAR(255) NOT NULL,
        address VARCHAR(255) NOT NULL,
        dop_info VARCHAR(255) NOT NULL)"""),
    ("tegs", """CREATE TABLE IF NOT EXISTS tegs (
        id_teg INTEGER PRIMARY KEY AUTOINCREMENT,
        name_teg VARCHAR(255) NOT NULL)"""),
    ("status_stages", """CREATE TABLE IF NOT EXISTS status_stages (
        id_status_stage INTEGER PRIMARY KEY AUTOINCREMENT,
        name_status_stage VARCHAR(255) NOT NULL)"""),
    ("contracts", """CREATE TABLE IF NOT EXISTS contracts (
        id_contract INTEGER PRIMARY KEY AUTOINCREMENT,
        name_contract VARCHAR(255) NOT NULL,
        date_create_contract DATE NOT NULL,
        id_user INT NOT NULL,
        date_conclusion DATE NOT NULL,
        date_end DATE NOT NULL,
        id_type INT NOT NULL,
        cost INT NOT NULL,
        object_contract VARCHAR(255) NOT NULL,
        term_payment VARCHAR(255) NOT NULL,
        id_counterparty INT NOT NULL,
        id_status_contract INT NOT NULL,
        notes VARCHAR(1000) NOT NULL,
        conditions VARCHAR(1000) NOT NULL,
        CONSTRAINT id_user FOREIGN KEY (id_user) REFERENCES users(id_user),
        CONSTRAINT id_type FOREIGN KEY (id_type) REFERENCES types_contracts(id_type_contract),
        CONSTRAINT id_counterparty FOREIGN KEY (id_counterparty)
            REFERENCES counterparty(id_counterparty),
        CONSTRAINT id_status_contract FOREIGN KEY (id_status_contract)
            REFERENCES status_contracts(id_status_contract))"""),
    ("notification_settings_by_user", """CREATE TABLE IF NOT EXISTS notification_settings_by_user (
        id_notification_settings_by_user INTEGER PRIMARY KEY AUTOINCREMENT,
        id_user INT NOT NULL,
        id_notification_settings INT NOT NULL,
        CONSTRAINT fk_user FOREIGN KEY (id_user) REFERENCES users(id_user),
        CONSTRAINT fk_notification_settings FOREIGN KEY (id_notification_settings)
            REFERENCES notification_settings(id_notification_settings))"""),
    ("stages", """CREATE TABLE IF NOT EXISTS stages (
        id_stage INTEGER PRIMARY KEY AUTOINCREMENT,
        name_stage VARCHAR(255) NOT NULL,
        id_user INT NOT NULL,
        description VARCHAR(1000) NOT NULL,
        date_create_start DATE NOT NULL,
        date_create_end DATE NOT NULL,
        id_contract INT NOT NULL,
        CONSTRAINT id_user FOREIGN KEY (id_user) REFERENCES users(id_user),
        CONSTRAINT id_contract FOREIGN KEY (id_contract) REFERENCES contracts(id_contract))"""),
    ("history_status", """CREATE TABLE IF NOT EXISTS history_status (
        id_history_status INTEGER PRIMARY KEY AUTOINCREMENT,
        id_stage INT NOT NULL,
        id_status_stage INT NOT NULL,
        data_change_status TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT id_stage FOREIGN KEY (id_stage) REFERENCES stages(id_stage),
        CONSTRAINT id_status_stage FOREIGN KEY (id_status_stage)
            REFERENCES status_stages(id_status_stage))"""),
    ("comments", """CREATE TABLE IF NOT EXISTS comments (
        id_comment INTEGER PRIMARY KEY AUTOINCREMENT,
        id_history_status INT NOT NULL,
        comment VARCHAR(1000) NOT NULL,
        date_create_comment TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        id_user INT NOT NULL,
        CONSTRAINT id_user FOREIGN KEY (id_user) REFERENCES users(id_user),
        CONSTRAINT id_history_status FOREIGN KEY (id_history_status)
            REFERENCES history_status(id_history_status))"""),
    ("files", """CREATE TABLE IF NOT EXISTS files (
        id_file INTEGER PRIMARY KEY AUTOINCREMENT,
        name_file VARCHAR(255) NOT NULL,
        data BLOB NOT NULL,
        type_file VARCHAR(255) NOT NULL,
        id_stage INT NOT NULL,
        CONSTRAINT id_stage FOREIGN KEY (id_stage) REFERENCES stages(id_stage) ON DELETE CASCADE)"""),
    ("contracts_by_tegs", """CREATE TABLE IF NOT EXISTS contracts_by_tegs (
        id_contract_by_teg INTEGER PRIMARY KEY AUTOINCREMENT,
        id_contract INT NOT NULL,
        id_teg INT NOT NULL,
        CONSTRAINT id_contract FOREIGN KEY (id_contract) REFERENCES contracts(id_contract),
        CONSTRAINT id_teg FOREIGN KEY (id_teg) REFERENCES tegs(id_teg),
        CONSTRAINT unique_contract_tag UNIQUE (id_contract, id_teg))"""),
)

TABLE_NAMES: tuple[str, ...] = tuple(name for name, _ in _SCHEMA)


def _existing_tables(connection: sqlite3.Connection) -> set[str]:
    rows = connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row[0] for row in rows}


def setup_database(connection: sqlite3.Connection) -> bool:
    """Create every missing table in one transaction.

    Returns True when the schema had to be created, False when it was complete.
    """
    try:
        missing = set(TABLE_NAMES) - _existing_tables(connection)
    except sqlite3.Error as exc:
        raise RepositoryError(f"error checking database existence: {exc}") from exc
    if not missing:
        return False

    table = ""
    try:
        if not connection.in_transaction:
            connection.execute("BEGIN")
        for table, statement in _SCHEMA:
            connection.execute(statement)
            logger.info("Table %s created successfully", table)
        connection.commit()
    except sqlite3.Error as exc:
        connection.rollback()
        raise RepositoryError(f"error creating table {table}: {exc}") from exc
    return True


def connect(settings: DatabaseSettings | None = None) -> sqlite3.Connection:
    """Open a connection with named-column rows and foreign keys enforced."""
    settings = settings if settings is not None else DatabaseSettings.from_env()
    try:
        connection = sqlite3.connect(settings.database_path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error as exc:
        raise RepositoryError(f"error connecting to database: {exc}") from exc
    logger.info("Successfully connected to database")
    return connection


class Database:
    """A shared connection, opened on first use and closed on exit."""

    def __init__(self, settings: DatabaseSettings | None = None) -> None:
        self.settings = settings if settings is not None else DatabaseSettings.from_env()
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def connection(self) -> sqlite3.Connection:
        """Return the shared connection, opening it if needed."""
        with self._lock:
            if self._connection is None:
                self._connection = connect(self.settings)
            return self._connection

    def close(self) -> None:
        """Close the shared connection if it is open."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                logger.info("Database connection closed")

    def __enter__(self) -> Database:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()