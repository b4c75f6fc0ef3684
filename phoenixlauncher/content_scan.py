"""Identify mods, tilesets, soundpacks and fonts found in a game directory."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

log = logging.getLogger(__name__)

MOD_INFO_FILE = "modinfo.json"
MOD_INFO_DISABLED_FILE = "modinfo.json.disabled"
TILESET_INFO_FILE = "tileset.txt"
SOUNDPACK_INFO_FILE = "soundpack.txt"
SOUNDPACK_INFO_DISABLED_FILE = "soundpack.txt.disabled"
NAME_FIELD = "NAME"
SOUNDPACK_CONTENT_EXTENSIONS = frozenset({"ogg", "wav", "json", "mp3", "flac"})

_T = TypeVar("_T")


@dataclass(frozen=True)
class ModInfo:
    """A mod identified by the id in its modinfo.json."""

    id: str
    path: Path


@dataclass(frozen=True)
class TilesetInfo:
    """A tileset identified by the NAME field of its tileset.txt."""

    name: str
    path: Path


@dataclass(frozen=True)
class SoundpackInfo:
    """A soundpack identified by the NAME field of its soundpack.txt."""

    name: str
    path: Path


def _first_existing(directory: Path, *names: str) -> Path | None:
    return next(
        (directory / name for name in names if (directory / name).exists()),
        None,
    )


def _mod_id(entry) -> str | None:
    if isinstance(entry, dict) and entry.get("type") == "MOD_INFO":
        ident = entry.get("id")
        if isinstance(ident, str):
            return ident
    return None


def parse_mod_ident(mod_dir) -> ModInfo | None:
    """Read the mod id from modinfo.json (or its disabled variant).

    Accepts a single MOD_INFO object or an array holding one.
    """
    mod_dir = Path(mod_dir)
    file_path = _first_existing(mod_dir, MOD_INFO_FILE, MOD_INFO_DISABLED_FILE)
    if file_path is None:
        return None
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError):
        return None

    candidates = data if isinstance(data, list) else [data]
    for entry in candidates:
        ident = _mod_id(entry)
        if ident is not None:
            return ModInfo(id=ident, path=mod_dir)
    return None


def _parse_asset_name(asset_dir: Path, filename: str, disabled_filename: str) -> str | None:
    file_path = _first_existing(asset_dir, filename, disabled_filename)
    if file_path is None:
        return None
    try:
        text = file_path.read_bytes().decode("utf-8", errors="replace")
    except OSError:
        return None

    for line in text.splitlines():
        if not line.startswith(NAME_FIELD):
            continue
        space = line.find(" ")
        if space == -1:
            continue
        name = line[space:].strip().replace(",", "")
        if name:
            return name
    return None


def parse_tileset_info(tileset_dir) -> TilesetInfo | None:
    """Read a tileset's NAME from tileset.txt (or tileset.txt.disabled)."""
    tileset_dir = Path(tileset_dir)
    name = _parse_asset_name(tileset_dir, TILESET_INFO_FILE, f"{TILESET_INFO_FILE}.disabled")
    return TilesetInfo(name=name, path=tileset_dir) if name is not None else None


def parse_soundpack_info(soundpack_dir) -> SoundpackInfo | None:
    """Read a soundpack's NAME from soundpack.txt (or its disabled variant)."""
    soundpack_dir = Path(soundpack_dir)
    name = _parse_asset_name(soundpack_dir, SOUNDPACK_INFO_FILE, SOUNDPACK_INFO_DISABLED_FILE)
    return SoundpackInfo(name=name, path=soundpack_dir) if name is not None else None


def _subdirectories(directory: Path) -> Iterator[Path]:
    if not directory.is_dir():
        return
    try:
        children = sorted(directory.iterdir())
    except OSError:
        return
    yield from (child for child in children if child.is_dir())


def _scan_keyed(
    directory, parse: Callable[[Path], _T | None], key: Callable[[_T], str]
) -> dict[str, _T]:
    found: dict[str, _T] = {}
    for child in _subdirectories(Path(directory)):
        info = parse(child)
        if info is not None:
            found.setdefault(key(info), info)
    return found


def scan_mods_directory(mods_dir) -> dict[str, ModInfo]:
    """Map mod id to mod for every mod directory; the first one found wins."""
    return _scan_keyed(mods_dir, parse_mod_ident, lambda m: m.id)


def scan_tilesets_directory(gfx_dir) -> dict[str, TilesetInfo]:
    """Map tileset name to tileset; the first one found wins."""
    return _scan_keyed(gfx_dir, parse_tileset_info, lambda t: t.name)


def scan_soundpacks_directory(sound_dir) -> dict[str, SoundpackInfo]:
    """Map soundpack name to soundpack; the first one found wins."""
    return _scan_keyed(sound_dir, parse_soundpack_info, lambda s: s.name)


def scan_fonts_directory(font_dir) -> set[str]:
    """Names of all entries in a font directory."""
    font_dir = Path(font_dir)
    if not font_dir.is_dir():
        return set()
    try:
        return {entry.name for entry in font_dir.iterdir()}
    except OSError:
        return set()


def scan_soundpack_files(soundpack_dir) -> set[Path]:
    """Relative paths of the audio and JSON files inside a soundpack."""
    soundpack_dir = Path(soundpack_dir)
    if not soundpack_dir.is_dir():
        return set()

    files: set[Path] = set()
    for root, _dirs, names in os.walk(soundpack_dir):
        for name in names:
            path = Path(root) / name
            if not path.is_file():
                continue
            suffix = path.suffix[1:].lower()
            if suffix in SOUNDPACK_CONTENT_EXTENSIONS:
                files.add(path.relative_to(soundpack_dir))
    return files