"""SQLite schema management (code-first approach)."""

import logging

from neighborly.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "profiles",
    "help_requests",
    "tasks",
]


TABLE_SCHEMAS: dict[str, str] = {
    "profiles": """CREATE TABLE IF NOT EXISTS profiles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        full_name TEXT NOT NULL DEFAULT '',
        location TEXT NOT NULL DEFAULT '',
        role TEXT NOT NULL DEFAULT 'individual' CHECK (role IN ('individual', 'admin')),
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
    )""",
    "help_requests": """CREATE TABLE IF NOT EXISTS help_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        owner_id INTEGER NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        category TEXT NOT NULL DEFAULT '',
        request_type TEXT NOT NULL DEFAULT 'individual'
            CHECK (request_type IN ('individual', 'organization')),
        status TEXT NOT NULL DEFAULT 'open'
            CHECK (status IN ('open', 'in_progress', 'completed')),
        created_at TEXT NOT NULL
    )""",
    # help_request_id is intentionally not a foreign key: tasks outlive their request
    "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        help_request_id INTEGER NOT NULL,
        assignee_id INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in_progress', 'done')),
        created_at TEXT NOT NULL
    )""",
}


INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_help_requests_owner_id ON help_requests (owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_help_requests_status ON help_requests (status)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_help_request_id ON tasks (help_request_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assignee_id ON tasks (assignee_id)",
    # At most one unfinished task per help request
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_one_active_per_request ON tasks (help_request_id) WHERE status != 'done'",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not already exist."""
    conn = await db_client.get_connection(db_path=db_path)

    for table_name in COLLECTIONS:
        await conn.execute(TABLE_SCHEMAS[table_name])
        logger.debug("Ensured table", extra={"table": table_name})

    for index_sql in INDEXES:
        await conn.execute(index_sql)

    await conn.commit()
    logger.info("Database schema initialized", extra={"tables": COLLECTIONS})
