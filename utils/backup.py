from __future__ import annotations

import re
import sqlite3
from pathlib import Path

from flask import current_app
from sqlalchemy.engine import make_url
from werkzeug.utils import secure_filename

from extensions import db
from utils.timezone_helpers import file_timestamp

SQLITE_HEADER = b"SQLite format 3\x00"
_BACKUP_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class BackupException(Exception):
    pass


class InvalidBackupName(BackupException):
    pass


def backup_root(app=None) -> Path:
    application = app or current_app._get_current_object()
    root = Path(application.config.get("BACKUP_DIRECTORY") or "backups")
    root.mkdir(parents=True, exist_ok=True)
    return root.resolve()


def validate_backup_name(filename: str | None) -> str:
    """Return ``filename`` if it is a plain file name safe to use inside the backup directory."""
    name = (filename or "").strip()
    if not name or not _BACKUP_NAME_RE.match(name) or secure_filename(name) != name:
        raise InvalidBackupName(f"Invalid backup filename: {filename!r}")
    return name


def resolve_backup_path(filename: str | None, app=None) -> Path:
    root = backup_root(app)
    path = (root / validate_backup_name(filename)).resolve()
    if path.parent != root:
        raise InvalidBackupName(f"Backup path escapes backup directory: {filename!r}")
    return path


def sqlite_database_path(uri: str) -> Path:
    url = make_url(uri)
    if url.get_backend_name() != "sqlite":
        raise BackupException(f"Backups require a SQLite database, got {url.get_backend_name()!r}")
    if not url.database or url.database == ":memory:":
        raise BackupException("In-memory SQLite databases cannot be backed up")
    return Path(url.database).resolve()


def is_sqlite_file(data: bytes) -> bool:
    return data[: len(SQLITE_HEADER)] == SQLITE_HEADER


def _copy_database(source: Path, dest: Path) -> None:
    """Copy one SQLite database into another with the online backup API."""
    src_conn = sqlite3.connect(str(source))
    try:
        dest_conn = sqlite3.connect(str(dest))
        try:
            src_conn.backup(dest_conn)
        finally:
            dest_conn.close()
    finally:
        src_conn.close()


def _database_path(application) -> Path:
    path = sqlite_database_path(application.config.get("SQLALCHEMY_DATABASE_URI", ""))
    if not path.exists():
        raise BackupException(f"Database file not found: {path}")
    return path


def snapshot_database(prefix: str = "backup", app=None) -> Path:
    """Copy the live database to ``<prefix>-<timestamp>.db`` in the backup directory."""
    application = app or current_app._get_current_object()
    source = _database_path(application)
    dest = backup_root(application) / f"{prefix}-{file_timestamp()}.db"
    try:
        _copy_database(source, dest)
    except sqlite3.Error as exc:
        dest.unlink(missing_ok=True)
        raise BackupException(f"Unable to copy database: {exc}") from exc
    return dest


def restore_database(source: Path, app=None) -> Path:
    """Replace the live database with ``source``.

    The current database is first saved as a ``pre-restore-*`` snapshot whose
    path is returned. Pooled connections are dropped before and after the copy
    so no session keeps reading the replaced file.
    """
    application = app or current_app._get_current_object()
    target = _database_path(application)
    pre_restore = snapshot_database("pre-restore", application)
    db.session.remove()
    db.engine.dispose()
    try:
        _copy_database(source, target)
    except sqlite3.Error as exc:
        raise BackupException(f"Unable to restore database: {exc}") from exc
    finally:
        db.engine.dispose()
    return pre_restore


def store_upload(data: bytes, app=None) -> Path:
    application = app or current_app._get_current_object()
    dest = backup_root(application) / f"uploaded-{file_timestamp()}.db"
    dest.write_bytes(data)
    return dest


def remove_backup_file(filename: str, app=None) -> bool:
    """Delete a backup file if present. Returns whether a file was removed."""
    path = resolve_backup_path(filename, app)
    if path.is_file():
        path.unlink()
        return True
    return False


def format_bytes(value) -> str:
    try:
        size = float(value or 0)
    except (TypeError, ValueError):
        return "0 B"
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    idx = 0
    while size >= 1024 and idx < len(suffixes) - 1:
        size /= 1024
        idx += 1
    return f"{size:.1f} {suffixes[idx]}"
