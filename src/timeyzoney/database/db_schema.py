"""
Database schema initialization.

Two tables back the bot: ``users`` holds each user's timezone and
``user_servers`` records the guilds a user was seen in.
"""

import aiosqlite
from timeyzoney.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates tables and indexes and records the schema version."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized (version %d)", SCHEMA_VERSION)

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                timezone_identifier TEXT NOT NULL,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_servers (
                user_id TEXT NOT NULL,
                server_id TEXT NOT NULL,
                joined_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (user_id, server_id),
                FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_users_timezone ON users(timezone_identifier)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_user_servers_user ON user_servers(user_id)")
