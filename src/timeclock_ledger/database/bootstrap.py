from __future__ import annotations

import mysql.connector

from ..common.log import get_logger
from .connection import DatabaseConnection

logger = get_logger(__name__)

LEDGER_TABLE = "ledger_kv"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
    k VARBINARY(768) NOT NULL,
    v JSON NOT NULL,
    versionstamp CHAR(32) NOT NULL,
    PRIMARY KEY (k)
) ENGINE=InnoDB
"""


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    database = conn_factory.config.database
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection) -> None:
    """Create the database and the ledger table if missing (idempotent)."""
    ensure_database_exists(conn_factory)

    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()
    logger.info("ledger schema ready", extra={"table": LEDGER_TABLE})


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    except mysql.connector.Error:
        logger.exception("could not list tables")
        raise
    finally:
        conn.close()
