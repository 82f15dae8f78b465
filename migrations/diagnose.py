#!/usr/bin/env python3
"""
Schema Diagnosis Tool

Inspects a PERSCOM store without changing it:
- Migrations recorded in schema_versions
- Tables whose foreign keys still point at the users_old shadow table
- A leftover users_old table from an interrupted rebuild
- Foreign key violations
- Expected tables that are missing

Usage:
    python3 -m migrations.diagnose --db data/perscom.db
"""

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, List

from schema import EXPECTED_TABLES, SHADOW_USERS_TABLE, USERS_MARKER_COLUMN


class SchemaDiagnostics:
    """Diagnose schema issues in a store file."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        # Read-only so diagnosing never creates or modifies a store.
        return sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)

    def get_applied_versions(self) -> Dict[str, dict]:
        """Get versions from schema_versions table with metadata"""
        with closing(self._connect()) as conn:
            try:
                cursor = conn.execute(
                    """
                    SELECT version, applied_at, description, checksum
                    FROM schema_versions
                    ORDER BY version
                    """
                )
            except sqlite3.OperationalError:
                return {}
            return {
                row[0]: {"applied_at": row[1], "description": row[2], "checksum": row[3]}
                for row in cursor.fetchall()
            }

    def get_all_tables(self) -> Dict[str, int]:
        """Table name -> column count"""
        with closing(self._connect()) as conn:
            names = [
                row[0]
                for row in conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                    ORDER BY name
                    """
                )
            ]
            return {
                name: len(conn.execute(f'PRAGMA table_info("{name}")').fetchall())
                for name in names
            }

    def find_shadow_references(self) -> List[str]:
        """Tables whose stored definition mentions the shadow table."""
        with closing(self._connect()) as conn:
            cursor = conn.execute(
                """
                SELECT name FROM sqlite_master
                WHERE type='table' AND name != ? AND instr(sql, ?) > 0
                ORDER BY name
                """,
                (SHADOW_USERS_TABLE, SHADOW_USERS_TABLE),
            )
            return [row[0] for row in cursor.fetchall()]

    def find_foreign_key_violations(self) -> List[Dict[str, Any]]:
        with closing(self._connect()) as conn:
            return [
                {"table": row[0], "rowid": row[1], "parent": row[2]}
                for row in conn.execute("PRAGMA foreign_key_check").fetchall()
            ]

    def analyze(self) -> Dict[str, Any]:
        tables = self.get_all_tables()
        users_columns = []
        if "users" in tables:
            with closing(self._connect()) as conn:
                users_columns = [row[1] for row in conn.execute("PRAGMA table_info(users)")]

        result = {
            "applied_versions": sorted(self.get_applied_versions()),
            "tables": tables,
            "missing_tables": [t for t in EXPECTED_TABLES if t not in tables],
            "shadow_references": self.find_shadow_references(),
            "shadow_table_present": SHADOW_USERS_TABLE in tables,
            "users_migrated": USERS_MARKER_COLUMN in users_columns,
            "foreign_key_violations": self.find_foreign_key_violations(),
        }
        result["healthy"] = not (
            result["missing_tables"]
            or result["shadow_references"]
            or result["shadow_table_present"]
            or result["foreign_key_violations"]
            or not result["users_migrated"]
        )
        return result

    def generate_report(self) -> str:
        """Generate comprehensive diagnostic report"""
        a = self.analyze()
        lines = []
        lines.append("=" * 80)
        lines.append("SCHEMA DIAGNOSTICS REPORT")
        lines.append("=" * 80)
        lines.append(f"Database: {self.db_path}")
        lines.append(f"Applied migrations: {', '.join(a['applied_versions']) or 'none'}")
        lines.append(f"Users table has {USERS_MARKER_COLUMN}: {a['users_migrated']}")
        lines.append("")

        lines.append("TABLES")
        for name, column_count in a["tables"].items():
            lines.append(f"  {name} ({column_count} columns)")
        if a["missing_tables"]:
            lines.append(f"  Missing: {', '.join(a['missing_tables'])}")
        lines.append("")

        lines.append("FOREIGN KEYS")
        if a["shadow_references"]:
            lines.append(
                f"  Tables referencing {SHADOW_USERS_TABLE}: {', '.join(a['shadow_references'])}"
            )
        if a["shadow_table_present"]:
            lines.append(f"  Leftover {SHADOW_USERS_TABLE} table present")
        if a["foreign_key_violations"]:
            lines.append(f"  {len(a['foreign_key_violations'])} violation(s):")
            for v in a["foreign_key_violations"][:20]:
                lines.append(f"    {v['table']} row {v['rowid']} -> {v['parent']}")
        if not (
            a["shadow_references"] or a["shadow_table_present"] or a["foreign_key_violations"]
        ):
            lines.append("  OK")
        lines.append("")

        if a["healthy"]:
            lines.append("VERDICT: schema is current and consistent")
        else:
            lines.append("VERDICT: schema needs attention")
            lines.append("  Start the app (or run: python3 -m migrations.manager migrate)")
            lines.append("  to apply pending migrations and repairs.")

        return "\n".join(lines)


def main():
    import argparse

    from config import get_database_path

    parser = argparse.ArgumentParser(description="Diagnose PERSCOM schema issues")
    parser.add_argument("--db", default=None, help="Database path (default: DATABASE_PATH)")
    args = parser.parse_args()

    db_path = args.db or get_database_path()
    if not Path(db_path).exists():
        print(f"Database not found: {db_path}")
        return

    print(SchemaDiagnostics(str(db_path)).generate_report())


if __name__ == "__main__":
    main()
