"""Installed soundpacks: scanning, enabling, deleting and archive extraction."""

from __future__ import annotations

import json
import logging
import shutil
import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

from phoenixlauncher.content_scan import SOUNDPACK_INFO_DISABLED_FILE, SOUNDPACK_INFO_FILE

log = logging.getLogger(__name__)

DATA_DIR = "data"
SOUND_DIR = "sound"
MIN_SEARCH_DEPTH = 1
MAX_SEARCH_DEPTH = 3
EXTRACTION_PROGRESS_BATCH = 10

ProgressCallback = Callable[["SoundpackProgress"], None]


@dataclass(frozen=True)
class RepoSoundpack:
    """A soundpack offered by the repository."""

    name: str
    viewname: str
    url: str
    homepage: str
    size: int | None = None
    download_type: str = "direct_download"

    @classmethod
    def from_json(cls, data) -> "RepoSoundpack":
        if not isinstance(data, dict):
            raise ValueError("soundpack entry must be a JSON object")
        fields = {}
        for key in ("name", "viewname", "url", "homepage"):
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"field '{key}' must be a string")
            fields[key] = value
        size = data.get("size")
        if size is not None and (isinstance(size, bool) or not isinstance(size, int) or size < 0):
            raise ValueError("field 'size' must be a non-negative integer")
        download_type = data.get("download_type", "direct_download")
        if not isinstance(download_type, str):
            raise ValueError("field 'download_type' must be a string")
        return cls(size=size, download_type=download_type, **fields)


@dataclass
class InstalledSoundpack:
    """A soundpack present in the game directory."""

    name: str
    view_name: str
    path: Path
    enabled: bool
    size: int


class SoundpackPhase(Enum):
    """Stage of a soundpack operation."""

    IDLE = "idle"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    INSTALLING = "installing"
    DELETING = "deleting"
    COMPLETE = "complete"
    FAILED = "failed"

    def description(self) -> str:
        """Human-readable description of the phase."""
        return _PHASE_DESCRIPTIONS[self]


_PHASE_DESCRIPTIONS = {
    SoundpackPhase.IDLE: "Ready",
    SoundpackPhase.DOWNLOADING: "Downloading soundpack...",
    SoundpackPhase.EXTRACTING: "Extracting archive...",
    SoundpackPhase.INSTALLING: "Installing soundpack...",
    SoundpackPhase.DELETING: "Deleting soundpack...",
    SoundpackPhase.COMPLETE: "Operation complete!",
    SoundpackPhase.FAILED: "Operation failed",
}


@dataclass
class SoundpackProgress:
    """Progress of a soundpack operation."""

    phase: SoundpackPhase = SoundpackPhase.IDLE
    bytes_downloaded: int = 0
    total_bytes: int = 0
    speed: int = 0
    files_extracted: int = 0
    total_files: int = 0
    current_file: str = ""
    error: str | None = None

    def download_fraction(self) -> float:
        """Downloaded share between 0.0 and 1.0."""
        return 0.0 if self.total_bytes == 0 else self.bytes_downloaded / self.total_bytes

    def extract_fraction(self) -> float:
        """Extracted share between 0.0 and 1.0."""
        return 0.0 if self.total_files == 0 else self.files_extracted / self.total_files


class ArchiveFormat(Enum):
    """Supported archive formats."""

    ZIP = "zip"


class SoundpackError(Exception):
    """Base class of soundpack operation failures."""


class SoundpackNotFound(SoundpackError):
    def __init__(self, path: str):
        super().__init__(f"Soundpack not found: {path}")
        self.path = path


class InvalidArchiveFormat(SoundpackError):
    def __init__(self, extension: str):
        super().__init__(f"Invalid archive format: {extension}")
        self.extension = extension


class ExtractionFailed(SoundpackError):
    def __init__(self, reason: str):
        super().__init__(f"Archive extraction failed: {reason}")
        self.reason = reason


class NoSoundpackTxt(SoundpackError):
    def __init__(self):
        super().__init__("No soundpack.txt found in archive")


class AlreadyExists(SoundpackError):
    def __init__(self, name: str):
        super().__init__(f"Soundpack already exists: {name}")
        self.name = name


class DownloadFailed(SoundpackError):
    def __init__(self, reason: str):
        super().__init__(f"Download failed: {reason}")
        self.reason = reason


class Cancelled(SoundpackError):
    def __init__(self):
        super().__init__("Task cancelled")


def _report(progress: ProgressCallback | None, update: SoundpackProgress) -> None:
    if progress is not None:
        progress(update)


def load_repository(path) -> list[RepoSoundpack]:
    """Load the soundpack repository from a JSON file holding a list of entries."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError("soundpack repository must be a JSON array")
    return [RepoSoundpack.from_json(item) for item in data]


def soundpacks_dir(game_dir) -> Path:
    """Directory holding the soundpacks of a game installation."""
    return Path(game_dir) / DATA_DIR / SOUND_DIR


def parse_soundpack_txt(soundpack_dir) -> tuple[str, str, bool] | None:
    """Read NAME and VIEW from soundpack.txt; returns (name, view, enabled)."""
    soundpack_dir = Path(soundpack_dir)
    normal = soundpack_dir / SOUNDPACK_INFO_FILE
    disabled = soundpack_dir / SOUNDPACK_INFO_DISABLED_FILE
    if normal.exists():
        file_path, enabled = normal, True
    elif disabled.exists():
        file_path, enabled = disabled, False
    else:
        return None
    try:
        text = file_path.read_bytes().decode("utf-8", errors="replace")
    except OSError:
        return None

    name = view = None
    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("NAME"):
            value = line[len("NAME"):].strip().replace(",", "")
            if value:
                name = value
        elif line.startswith("VIEW"):
            value = line[len("VIEW"):].strip()
            if value:
                view = value
        if name is not None and view is not None:
            break

    if name is None:
        return None
    return name, view if view is not None else name, enabled


def _dir_size(path: Path) -> int:
    total = 0
    try:
        children = list(path.iterdir())
    except OSError:
        return 0
    for child in children:
        if child.is_dir():
            total += _dir_size(child)
        else:
            try:
                total += child.stat().st_size
            except OSError:
                pass
    return total


def list_installed_soundpacks(game_dir) -> list[InstalledSoundpack]:
    """Installed soundpacks, sorted by display name ignoring case."""
    sound_dir = soundpacks_dir(game_dir)
    if not sound_dir.exists():
        return []
    soundpacks = []
    for entry in sound_dir.iterdir():
        if not entry.is_dir():
            continue
        parsed = parse_soundpack_txt(entry)
        if parsed is None:
            continue
        name, view_name, enabled = parsed
        soundpacks.append(
            InstalledSoundpack(
                name=name, view_name=view_name, path=entry, enabled=enabled, size=_dir_size(entry)
            )
        )
    soundpacks.sort(key=lambda s: s.view_name.lower())
    return soundpacks


def set_soundpack_enabled(soundpack_path, enabled: bool) -> None:
    """Enable or disable a soundpack by renaming its soundpack.txt."""
    soundpack_path = Path(soundpack_path)
    txt_file = soundpack_path / SOUNDPACK_INFO_FILE
    disabled_file = soundpack_path / SOUNDPACK_INFO_DISABLED_FILE
    if enabled:
        if disabled_file.exists():
            disabled_file.rename(txt_file)
            log.info("Enabled soundpack: %s", soundpack_path)
    elif txt_file.exists():
        txt_file.rename(disabled_file)
        log.info("Disabled soundpack: %s", soundpack_path)


def delete_soundpack(soundpack_path) -> None:
    """Remove a soundpack directory and everything in it."""
    soundpack_path = Path(soundpack_path)
    if not soundpack_path.exists():
        raise SoundpackNotFound(str(soundpack_path))
    shutil.rmtree(soundpack_path)


def detect_archive_format(path) -> ArchiveFormat | None:
    """Archive format from the file extension; only ZIP is supported."""
    suffix = Path(path).suffix.lower()
    return ArchiveFormat.ZIP if suffix == ".zip" else None


def _enclosed_name(name: str) -> Path | None:
    if "\0" in name:
        return None
    posix = PurePosixPath(name.replace("\\", "/"))
    if posix.is_absolute():
        return None
    parts = [p for p in posix.parts if p not in ("", ".")]
    if not parts or ".." in parts or ":" in parts[0]:
        return None
    return Path(*parts)


def extract_archive(archive_path, dest_dir, progress: ProgressCallback | None = None) -> None:
    """Extract an archive into a directory, reporting progress."""
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)
    if detect_archive_format(archive_path) is None:
        raise InvalidArchiveFormat(archive_path.suffix[1:] or "none")

    _report(progress, SoundpackProgress(phase=SoundpackPhase.EXTRACTING))
    try:
        archive = zipfile.ZipFile(archive_path)
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        raise ExtractionFailed(str(exc)) from exc

    with archive:
        members = archive.infolist()
        total = len(members)
        for index, info in enumerate(members):
            relative = _enclosed_name(info.filename)
            if relative is None:
                continue
            outpath = dest_dir / relative
            if info.filename.endswith("/"):
                outpath.mkdir(parents=True, exist_ok=True)
            else:
                outpath.parent.mkdir(parents=True, exist_ok=True)
                try:
                    with archive.open(info) as src, open(outpath, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                except (zipfile.BadZipFile, RuntimeError, NotImplementedError) as exc:
                    raise ExtractionFailed(str(exc)) from exc

            if index % EXTRACTION_PROGRESS_BATCH == 0 or index == total - 1:
                _report(
                    progress,
                    SoundpackProgress(
                        phase=SoundpackPhase.EXTRACTING,
                        files_extracted=index + 1,
                        total_files=total,
                        current_file=info.filename,
                    ),
                )


def find_soundpack_dir(extract_dir) -> Path | None:
    """Find the directory holding soundpack.txt below an extraction directory."""
    names = {SOUNDPACK_INFO_FILE, SOUNDPACK_INFO_DISABLED_FILE}

    def walk(directory: Path, depth: int) -> Path | None:
        try:
            children = sorted(directory.iterdir())
        except OSError:
            return None
        for child in children:
            if depth >= MIN_SEARCH_DEPTH and child.name in names:
                return child.parent
            if child.is_dir() and depth < MAX_SEARCH_DEPTH:
                found = walk(child, depth + 1)
                if found is not None:
                    return found
        return None

    return walk(Path(extract_dir), 1)


def extract_filename_from_url(url: str) -> str:
    """Last path segment of a URL without its query string."""
    return url.rsplit("/", 1)[-1].split("?", 1)[0]