"""SQLite cache for game version information, executable hashes and changelogs."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import platformdirs

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS game_versions (
    sha256 TEXT PRIMARY KEY,
    version TEXT NOT NULL,
    stable INTEGER NOT NULL DEFAULT 0,
    build_number INTEGER,
    released_on TEXT,
    discovered_on TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_version ON game_versions(version);

CREATE TABLE IF NOT EXISTS exe_hash_cache (
    path TEXT PRIMARY KEY,
    size INTEGER NOT NULL,
    mtime INTEGER NOT NULL,
    sha256 TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS release_changelogs (
    tag TEXT PRIMARY KEY,
    body TEXT NOT NULL,
    fetched_on TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


@dataclass
class VersionInfo:
    """Version details of a game build."""

    version: str
    stable: bool
    released_on: str | None = None


class Database:
    """Persistent cache keyed by executable SHA256 hashes.

    Known stable release hashes are supplied as a mapping and are consulted
    before the database itself.
    """

    def __init__(self, path, stable_versions: Mapping[str, str] | None = None):
        self.path = path
        self._stable_versions = dict(stable_versions or {})
        self._conn = sqlite3.connect(str(path))
        self._conn.executescript(_SCHEMA)

    @staticmethod
    def db_path() -> Path:
        """Return the database file path, creating its directory."""
        data_dir = Path(platformdirs.user_data_path("Phoenix", "phoenix", roaming=True))
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / "phoenix.db"

    @classmethod
    def open(cls, stable_versions: Mapping[str, str] | None = None) -> "Database":
        """Open or create the database at the default location."""
        path = cls.db_path()
        db = cls(path, stable_versions)
        log.info("Opened database at %s", path)
        return db

    def get_version(self, sha256: str) -> VersionInfo | None:
        """Look up a version, checking known stable hashes first."""
        stable = self._stable_versions.get(sha256)
        if stable is not None:
            return VersionInfo(version=stable, stable=True, released_on=None)

        row = self._conn.execute(
            "SELECT version, stable, build_number, released_on "
            "FROM game_versions WHERE sha256 = ?",
            (sha256,),
        ).fetchone()
        if row is None:
            return None
        version, stable_flag, _build_number, released_on = row
        return VersionInfo(version=version, stable=stable_flag != 0, released_on=released_on)

    def get_cached_hash(self, path: str, size: int, mtime: int) -> str | None:
        """Return the cached hash if the file metadata still matches."""
        row = self._conn.execute(
            "SELECT sha256 FROM exe_hash_cache WHERE path = ? AND size = ? AND mtime = ?",
            (path, size, mtime),
        ).fetchone()
        return row[0] if row else None

    def store_cached_hash(self, path: str, size: int, mtime: int, sha256: str) -> None:
        """Store a hash together with the file metadata it belongs to."""
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO exe_hash_cache (path, size, mtime, sha256) "
                "VALUES (?, ?, ?, ?)",
                (path, size, mtime, sha256),
            )

    def count_cached_versions(self) -> int:
        """Count entries in the executable hash cache."""
        (count,) = self._conn.execute("SELECT COUNT(*) FROM exe_hash_cache").fetchone()
        return int(count)

    def clear_hash_cache(self) -> int:
        """Empty the executable hash cache and return how many entries it held."""
        count = self.count_cached_versions()
        with self._conn:
            self._conn.execute("DELETE FROM exe_hash_cache")
        return count

    def get_changelog(self, tag: str) -> str | None:
        """Return the cached changelog for a release tag."""
        row = self._conn.execute(
            "SELECT body FROM release_changelogs WHERE tag = ?", (tag,)
        ).fetchone()
        return row[0] if row else None

    def store_changelog(self, tag: str, body: str) -> None:
        """Store or replace the changelog for a release tag."""
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO release_changelogs (tag, body) VALUES (?, ?)",
                (tag, body),
            )

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *args) -> None:
        self.close()