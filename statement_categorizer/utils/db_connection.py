"""
Database connection utilities
"""
import os
from pathlib import Path
from typing import Optional

import psycopg2
from dotenv import load_dotenv

from ..logging_setup import get_logger

# Load environment variables
load_dotenv()

logger = get_logger(__name__)

SCHEMA_FILE = Path(__file__).parent.parent / "db" / "schema.sql"


def get_db_connection(
    host: Optional[str] = None,
    port: Optional[int] = None,
    database: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None
):
    """
    Get database connection using environment variables or provided values

    Args:
        host: Database host (default: from DB_HOST env var)
        port: Database port (default: from DB_PORT env var)
        database: Database name (default: from DB_NAME env var)
        user: Database user (default: from DB_USER env var)
        password: Database password (default: from DB_PASSWORD env var)

    Returns:
        psycopg2 connection object
    """
    return psycopg2.connect(
        host=host or os.getenv('DB_HOST', 'localhost'),
        port=port or int(os.getenv('DB_PORT', '5432')),
        database=database or os.getenv('DB_NAME', 'statements_db'),
        user=user or os.getenv('DB_USER', 'statements_user'),
        password=password or os.getenv('DB_PASSWORD', '')
    )


def apply_schema(conn, schema_file: Optional[Path] = None):
    """Create the reference tables (idempotent)"""
    sql = Path(schema_file or SCHEMA_FILE).read_text(encoding='utf-8')
    cursor = conn.cursor()
    try:
        cursor.execute(sql)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
    logger.info("Schema applied from %s", schema_file or SCHEMA_FILE)
