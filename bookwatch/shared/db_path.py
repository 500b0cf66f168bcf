"""Database path resolution shared by the command entry points."""

from __future__ import annotations

import os
from pathlib import Path

from bookwatch.shared.constants import DB_PATH_ENV, DEFAULT_DB_PATH, PROJECT_ROOT


def resolve_db_path(db_name: str | None) -> Path:
    """
    Resolve the SQLite database path.

    An explicit value wins, then the BOOKWATCH_DB environment variable,
    then data/app.db under the project root. Relative paths resolve
    against the project root.

    Args:
        db_name: Optional database path from the command line.

    Returns:
        Resolved database path with its parent directory created.
    """
    value = (db_name or "").strip() or os.getenv(DB_PATH_ENV, "").strip()
    if value == ":memory:":
        return Path(value)
    db_path = Path(value) if value else DEFAULT_DB_PATH
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path
