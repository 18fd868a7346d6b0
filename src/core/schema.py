"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "users",
    "tasks",
    "documents",
]


_TABLES: dict[str, str] = {
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE COLLATE NOCASE,
            password_hash TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'To Do' CHECK (status IN ('To Do', 'In Progress', 'Done')),
            due_date TEXT NOT NULL,
            user_id INTEGER NOT NULL REFERENCES users(id),
            assigned_by_id INTEGER NOT NULL REFERENCES users(id),
            location TEXT,
            priority TEXT NOT NULL DEFAULT 'Medium' CHECK (priority IN ('Low', 'Medium', 'High')),
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    # No ON DELETE CASCADE: deletion_service removes documents explicitly, and the
    # foreign key makes deleting a task that still has documents fail.
    "documents": """
        CREATE TABLE IF NOT EXISTS documents (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            file_url TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'Pending' CHECK (status IN ('Pending', 'Approved', 'Rejected')),
            task_id INTEGER NOT NULL REFERENCES tasks(id),
            user_id INTEGER NOT NULL REFERENCES users(id),
            file_type TEXT NOT NULL DEFAULT 'other'
                CHECK (file_type IN ('pdf', 'doc', 'docx', 'txt', 'image', 'other')),
            file_size INTEGER NOT NULL DEFAULT 0,
            audit_log TEXT NOT NULL DEFAULT '[]',
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
}


_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_user_status ON tasks (user_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_by ON tasks (assigned_by_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks (due_date)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks (created)",
    "CREATE INDEX IF NOT EXISTS idx_documents_task ON documents (task_id)",
    "CREATE INDEX IF NOT EXISTS idx_documents_user ON documents (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_documents_status ON documents (status)",
    "CREATE INDEX IF NOT EXISTS idx_documents_task_status ON documents (task_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_documents_created ON documents (created)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    conn = await db_client.get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(_TABLES[collection])
        logger.debug("Ensured table", extra={"collection": collection})

    for statement in _INDEXES:
        await conn.execute(statement)

    await conn.commit()
    logger.info("Database schema initialized", extra={"collections": COLLECTIONS})
