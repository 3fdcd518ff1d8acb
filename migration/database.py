"""
Database module for tracking migration progress.
Uses SQLite to hand results from one stage to the next: the fetched source
asset list, source -> destination asset id mappings and migrated documents.
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, List, Iterable

from config import STATE_DIR, DATABASE_FILE
from .models import Asset, IdMapping


class MigrationDatabase:
    """
    Stage hand-off store: source inventory, asset id mappings and document outcomes.
    """

    def __init__(self, db_path: str = None):
        """
        Open (and if needed create) the hand-off database.

        Args:
            db_path: Path to SQLite database file.
                     Defaults to ~/.prismic_migrate/migration.db
        """
        if db_path is None:
            STATE_DIR.mkdir(parents=True, exist_ok=True)
            db_path = str(STATE_DIR / DATABASE_FILE)

        self.db_path = db_path
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row  # Access columns by name
        self._create_tables()

    def _create_tables(self):
        """Create database tables if they don't exist."""
        cursor = self.conn.cursor()

        # Source inventory as last fetched, in API order
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS source_assets (
                position INTEGER NOT NULL,
                asset_id TEXT PRIMARY KEY,
                filename TEXT NOT NULL,
                url TEXT,
                fetched_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS asset_mappings (
                prev_id TEXT PRIMARY KEY,              -- source asset id
                new_id TEXT NOT NULL,                  -- destination asset id
                filename TEXT,
                origin TEXT NOT NULL,                  -- 'upload' or 'filename'
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                source_id TEXT PRIMARY KEY,
                destination_id TEXT,
                title TEXT,
                status TEXT NOT NULL,                  -- 'migrated' or 'failed'
                reason TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_asset_mappings_origin
            ON asset_mappings(origin)
        """)

        self.conn.commit()

    def replace_source_assets(self, assets: Iterable[Asset]) -> int:
        """Store the fetched source inventory, replacing the previous one."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM source_assets")
        count = 0
        for position, asset in enumerate(assets):
            cursor.execute(
                """
                INSERT OR REPLACE INTO source_assets (position, asset_id, filename, url, fetched_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (position, asset.id, asset.filename, asset.url, datetime.now().isoformat()),
            )
            count += 1
        self.conn.commit()
        return count

    def get_source_assets(self) -> List[Asset]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT asset_id, filename, url FROM source_assets ORDER BY position")
        return [Asset(id=row["asset_id"], filename=row["filename"], url=row["url"]) for row in cursor.fetchall()]

    def add_mapping(self, mapping: IdMapping, origin: str, filename: Optional[str] = None) -> bool:
        """
        Add or update a source -> destination asset mapping.

        Upload mappings are authoritative: a filename-derived mapping never
        replaces one recorded from an upload response.
        """
        cursor = self.conn.cursor()
        if origin != "upload":
            cursor.execute(
                "SELECT origin FROM asset_mappings WHERE prev_id = ?", (mapping.prev_id,)
            )
            row = cursor.fetchone()
            if row and row["origin"] == "upload":
                return False

        cursor.execute(
            """
            INSERT OR REPLACE INTO asset_mappings (prev_id, new_id, filename, origin, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (mapping.prev_id, mapping.id, filename, origin, datetime.now().isoformat()),
        )
        self.conn.commit()
        return True

    def get_mappings(self, origin: Optional[str] = None) -> List[IdMapping]:
        cursor = self.conn.cursor()
        if origin:
            cursor.execute(
                "SELECT prev_id, new_id FROM asset_mappings WHERE origin = ? ORDER BY created_at, prev_id",
                (origin,),
            )
        else:
            cursor.execute("SELECT prev_id, new_id FROM asset_mappings ORDER BY created_at, prev_id")
        return [IdMapping(prev_id=row["prev_id"], id=row["new_id"]) for row in cursor.fetchall()]

    def record_document(self, source_id: str, status: str, destination_id: str = None,
                        title: str = None, reason: str = None) -> bool:
        """Record the outcome of one document submission."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT OR REPLACE INTO documents (source_id, destination_id, title, status, reason, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (source_id, destination_id, title, status, reason, datetime.now().isoformat()),
        )
        self.conn.commit()
        return True

    def get_documents(self, status: Optional[str] = None) -> List[Dict[str, str]]:
        cursor = self.conn.cursor()
        if status:
            cursor.execute("SELECT * FROM documents WHERE status = ? ORDER BY source_id", (status,))
        else:
            cursor.execute("SELECT * FROM documents ORDER BY source_id")
        return [dict(row) for row in cursor.fetchall()]

    def get_stats(self) -> Dict[str, int]:
        """Row counts for the `status` command."""
        cursor = self.conn.cursor()

        cursor.execute("SELECT COUNT(*) as count FROM source_assets")
        asset_count = cursor.fetchone()['count']

        cursor.execute("SELECT COUNT(*) as count FROM asset_mappings")
        mapping_count = cursor.fetchone()['count']

        cursor.execute("SELECT COUNT(*) as count FROM documents WHERE status = 'migrated'")
        migrated_count = cursor.fetchone()['count']

        cursor.execute("SELECT COUNT(*) as count FROM documents WHERE status = 'failed'")
        failed_count = cursor.fetchone()['count']

        return {
            'source_assets': asset_count,
            'mappings': mapping_count,
            'documents_migrated': migrated_count,
            'documents_failed': failed_count,
        }

    def clear_all(self):
        """Forget the stored inventory, mappings and document outcomes."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM source_assets")
        cursor.execute("DELETE FROM asset_mappings")
        cursor.execute("DELETE FROM documents")
        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
