"""Game detection, version identification and launching."""

from __future__ import annotations

import dataclasses
import hashlib
import logging
import os
import sqlite3
import subprocess
from dataclasses import dataclass
from pathlib import Path

from phoenixlauncher.db import Database, VersionInfo

log = logging.getLogger(__name__)

_HASH_CHUNK = 1 << 20


@dataclass(frozen=True)
class GameConfig:
    """Names and formats used to find and identify a game installation."""

    executable_names: tuple[str, ...] = ("cataclysm-tiles.exe", "cataclysm.exe")
    save_dir: str = "save"
    version_filename: str = "VERSION.txt"
    commit_sha_prefix: str = "commit sha:"
    commit_date_prefix: str = "commit date:"
    build_number_prefix: str = "build number:"
    sha_display_length: int = 7
    min_build_number_length: int = 10
    date_dash_positions: tuple[int, ...] = (4, 7)


@dataclass
class GameInfo:
    """A detected game installation."""

    executable: Path
    version_info: VersionInfo | None = None
    saves_size: int = 0

    def version_display(self) -> str:
        """The version string, or "Unknown" when none was detected."""
        return self.version_info.version if self.version_info else "Unknown"

    def is_stable(self) -> bool:
        """Whether the detected version is a stable release."""
        return bool(self.version_info and self.version_info.stable)


def detect_game_fast(directory, config: GameConfig | None = None) -> GameInfo | None:
    """Detect a game using VERSION.txt only, without hashing the executable."""
    config = config or GameConfig()
    directory = Path(directory)

    executable = next(
        (directory / name for name in config.executable_names if (directory / name).exists()),
        None,
    )
    if executable is None:
        return None

    version_info = read_version_txt(directory, config)

    saves_dir = directory / config.save_dir
    saves_size = 0
    if saves_dir.exists():
        try:
            saves_size = calculate_dir_size(saves_dir)
        except OSError:
            saves_size = 0

    return GameInfo(executable=executable, version_info=version_info, saves_size=saves_size)


def refine_version_with_hash(info: GameInfo, db: Database | None = None) -> GameInfo:
    """Hash the executable and prefer a known stable version if it matches."""
    sha256 = _get_or_calculate_sha256(info.executable, db)

    stable_info = None
    if db is not None:
        try:
            stable_info = db.get_version(sha256)
        except sqlite3.Error as exc:
            log.warning("Failed to look up version: %s", exc)

    return dataclasses.replace(
        info, version_info=stable_info if stable_info is not None else info.version_info
    )


def detect_game_with_db(
    directory, db: Database | None = None, config: GameConfig | None = None
) -> GameInfo | None:
    """Full detection: fast detection followed by hash refinement."""
    info = detect_game_fast(directory, config)
    if info is None:
        return None
    return refine_version_with_hash(info, db)


def _file_metadata(path: Path) -> tuple[int, int]:
    st = path.stat()
    mtime = int(st.st_mtime) if st.st_mtime >= 0 else 0
    return st.st_size, mtime


def _get_or_calculate_sha256(executable: Path, db: Database | None) -> str:
    path_str = str(executable)
    size, mtime = _file_metadata(Path(executable))

    if db is not None:
        try:
            cached = db.get_cached_hash(path_str, size, mtime)
        except sqlite3.Error:
            cached = None
        if cached is not None:
            log.debug("Using cached SHA256 for %s", executable)
            return cached

    log.debug("Calculating SHA256 for %s (not cached)", executable)
    sha256 = calculate_sha256(executable)

    if db is not None:
        try:
            db.store_cached_hash(path_str, size, mtime, sha256)
        except sqlite3.Error as exc:
            log.warning("Failed to cache SHA256: %s", exc)

    return sha256


def read_version_txt(directory, config: GameConfig | None = None) -> VersionInfo | None:
    """Parse the version file of an experimental build, if present."""
    config = config or GameConfig()
    version_file = Path(directory) / config.version_filename
    if not version_file.exists():
        return None
    try:
        content = version_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None

    commit_sha = commit_date = build_number = None
    for line in content.splitlines():
        if line.startswith(config.commit_sha_prefix):
            sha = line[len(config.commit_sha_prefix):].strip()
            if len(sha) >= config.sha_display_length:
                commit_sha = sha[: config.sha_display_length]
        elif line.startswith(config.commit_date_prefix):
            commit_date = line[len(config.commit_date_prefix):].strip()
        elif line.startswith(config.build_number_prefix):
            build_number = line[len(config.build_number_prefix):].strip()

    if commit_sha is None:
        return None

    display_date = commit_date
    if build_number is not None:
        has_date_format = len(build_number) >= config.min_build_number_length and all(
            pos < len(build_number) and build_number[pos] == "-"
            for pos in config.date_dash_positions
        )
        if has_date_format:
            display_date = build_number[:10]

    version = f"{display_date} ({commit_sha})" if display_date is not None else commit_sha
    released_on = build_number if build_number is not None else commit_date
    return VersionInfo(version=version, stable=False, released_on=released_on)


def calculate_sha256(path) -> str:
    """Hex SHA256 digest of a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_HASH_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def calculate_dir_size(path) -> int:
    """Total size in bytes of the files below a directory."""
    path = Path(path)
    if not path.is_dir():
        return 0
    total = 0
    with os.scandir(path) as entries:
        for entry in entries:
            if entry.is_dir():
                total += calculate_dir_size(entry.path)
            else:
                total += entry.stat(follow_symlinks=False).st_size
    return total


def launch_game(executable, params: str = "") -> subprocess.Popen:
    """Start the game in its own directory with whitespace-separated parameters."""
    executable = Path(executable)
    working_dir = executable.parent
    if working_dir == executable:
        raise ValueError("Executable has no parent directory")
    log.info("Launching game: %s with working dir: %s", executable, working_dir)
    return subprocess.Popen([str(executable), *params.split()], cwd=working_dir)