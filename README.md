# contractdesk

contractdesk is the storage layer of a small contract-management system, kept in a
SQLite database file. It keeps track of:

- **contracts**: their type, status, counterparty, responsible user, dates, cost and tags
- **stages** of a contract: status history, comments and attached files
- **users**: roles (admin, manager), profile photos and notification preferences
- **deadline notifications**: which users have to be reminded that a contract or stage
  is about to end

Every repository function takes an open `sqlite3.Connection` as its first argument, so
you decide when connections are opened, reused and closed. Functions that change
several tables do so in one transaction. Failures are raised as exceptions.

## Connecting

`DatabaseSettings` (in `contractdesk.database`) holds the settings.
`DatabaseSettings.from_env(environ)` reads them from a mapping (by default
`os.environ`); a missing variable takes its default:

| Variable      | Field      | Default                 |
|---------------|------------|-------------------------|
| `DB_PATH`     | `path`     | `<DB_NAME>.db`          |
| `DB_NAME`     | `name`     | `contract_db`           |
| `DB_HOST`     | `host`     | `localhost`             |
| `DB_PORT`     | `port`     | `5432`                  |
| `DB_USER`     | `user`     | `postgres`              |
| `DB_PASSWORD` | `password` | built-in                |
| `SSL_MODE`    | `ssl_mode` | `disable`               |

Only the file path (`database_path`: `path`, or `<name>.db` when it is unset) is used
to open the database. The host, port, user, password and SSL mode only go into the
`dsn` property, a connection URL built from the settings.

- `connect(settings)` opens a connection whose rows are `sqlite3.Row` and which
  enforces foreign keys.
- `Database(settings)` shares one connection: `connection()` opens it on first use,
  `close()` closes it, and using the object as a context manager closes it on exit.
- `setup_database(connection)` creates the whole schema in one transaction when any
  table is missing, and returns `True`; it returns `False` when the schema is complete.
  The tables are roles, users, photos, contract types and statuses, counterparties, tags,
  contracts, stages, status history, comments, files and notification settings.

```python
import os

from contractdesk.database import Database, DatabaseSettings, setup_database

settings = DatabaseSettings.from_env(os.environ)

with Database(settings) as db:
    conn = db.connection()
    setup_database(conn)
```

Lookup tables (roles, contract types and statuses, stage statuses, tags,
notification settings) are created empty; filling them is up to you.

## Errors

- `RepositoryError`: a database operation failed, or a rule was broken, for example
  giving a user a role they already have, deleting a user who still owns contracts or
  stages, or setting a stage to the status it already has.
- `NotFoundError` (a `RepositoryError`): a referenced record does not exist.
- `ValueError`: an unknown role ID, or `change_user` called with a user ID of 0.

## Reference data (`contractdesk.catalog`)

`get_tags`, `get_contract_statuses`, `get_stage_statuses`, `get_contract_types`,
`get_counterparties` and `get_counterparty` (which returns `None` when missing) read the
lookup tables. `add_tag_to_contract` attaches a tag (attaching it twice changes nothing;
an unknown tag raises `NotFoundError`), `remove_tag_from_contract` detaches it, and
`get_contract_tags` lists a contract's tags.

## Contracts

```python
from contractdesk.contract_changes import add_contract, change_contract_user, delete_contract
from contractdesk.contract_queries import DateRange, get_contract, get_contracts_by_create_date

contract = get_contract(conn, 1)          # None if there is no such contract
recent = get_contracts_by_create_date(conn, DateRange(start, end))

change_contract_user(conn, contract_id=1, user_id=5)   # NotFoundError if either is missing
delete_contract(conn, 1)                               # also removes stages, files, comments, tag links
```

`contract_queries` also has `get_contracts`, `get_contracts_by_type`,
`get_contracts_by_tags`, `get_contracts_by_status` and `get_user_contracts`; each
returns `Contract` objects with their tags. `contract_changes` also has `add_contract`,
which returns the new identifier, and `change_contract`.

## Stages

`contractdesk.stage_queries` reads stages (`get_stages`, `get_contract_stages`,
`get_user_stages`, `get_stage`), files (`get_stage_file`, `get_stage_files`), statuses
(`get_stage_status`) and comments (`get_comments`). `get_stage` raises `NotFoundError`
for an unknown stage; a stage without history has status 0.

`contractdesk.stage_changes` writes them:

```python
from contractdesk.stage_changes import add_stage, change_stage_status

stage_id = add_stage(conn, stage)          # starts with status 1
change_stage_status(conn, stage_id=stage_id, status_id=2, comment="Sent for review", user_id=5)
```

It also has `add_file`, `delete_file`, `add_comment`, `delete_comment`, `change_stage`
and `delete_stage` (which removes the stage's comments, history and files too).

## Users, roles and photos

```python
from contractdesk.users import User, add_admin, add_user, get_user_id, get_user_roles

password = "password"
add_user(conn, User(surname="Doe", username="Jane", patronymic="", phone="",
                    email="jane@example.com", login="jdoe"), password)
user_id = get_user_id(conn, "jdoe")
add_admin(conn, user_id)
print(get_user_roles(conn, user_id))
```

`add_user` stores a bcrypt hash of the password together with a random salt; no query
returns the hash. `contractdesk.users` also has `get_users`, `get_user`,
`add_user_role`, `add_manager`, `remove_user_role`, `remove_admin`, `remove_manager`,
`change_user` (empty fields keep their values) and `delete_user`.

`contractdesk.photos` keeps one profile photo per user: `get_photo`, `add_photo`,
`change_photo` and `delete_photo`.

## Deadline notifications

```python
import datetime

from contractdesk.notifications import (
    get_contract_notifications,
    get_stage_notifications,
    set_user_notification_settings,
)

set_user_notification_settings(conn, user_id=5, variants=[1, 3, 7])

today = datetime.date.today()
contract_notes = get_contract_notifications(conn, today)
stage_notes = get_stage_notifications(conn, today)
```

These return the contracts and stages whose end date is exactly one of the user's
chosen numbers of days after `today`. Day counts with no matching notification setting
are ignored. The module also has `get_user_notification_settings`,
`get_users_to_notify_for_stage`, `get_user_email`, `get_stage_info` and
`get_status_name`.

## What this package does not do

It is only the storage layer. It has no HTTP API or server, no command-line program,
no scheduler that runs the notification checks, and it sends no e-mail: it finds who
should be notified and returns that to you.