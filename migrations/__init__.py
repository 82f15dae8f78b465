"""
Database Migration System for PERSCOM

This package provides a lightweight migration system that:
- Tracks applied migrations in the schema_versions table
- Applies each migration and its version row in one transaction
- Preserves existing data during schema changes
- Backs up the store before migrating
- Supports forward migrations only
"""

from .manager import MigrationError, MigrationManager

__all__ = ["MigrationError", "MigrationManager"]
